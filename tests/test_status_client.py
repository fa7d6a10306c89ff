import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from server_status_bot import status_client
from server_status_bot.models import (
    UNKNOWN_MAP,
    FetchFailure,
    ServerSnapshot,
    ServerStatus,
)
from server_status_bot.status_client import (
    A2SFetcher,
    BattleMetricsFetcher,
    create_fetcher,
)

BATTLEMETRICS_PAYLOAD = {
    "data": {
        "type": "server",
        "id": "1234",
        "attributes": {
            "name": "Glow's Battlegrounds",
            "players": 3,
            "maxPlayers": 100,
            "status": "online",
            "details": {"map": "Carentan"},
        },
    },
    "included": [
        {"type": "player", "id": "1", "attributes": {"name": "Alice"}},
        {"type": "player", "id": "2", "attributes": {"name": "Bob"}},
        {"type": "player", "id": "3", "attributes": {"name": ""}},
        {"type": "player", "id": "4", "attributes": {"name": "Alice"}},
        {"type": "identifier", "id": "5", "attributes": {"name": "not a player"}},
    ],
}


def battlemetrics(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BattleMetricsFetcher("1234", client=client, **kwargs)


def respond_with(payload, status_code=200):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(status_code, json=payload)

    return handler, requests


async def test_battlemetrics_snapshot():
    handler, requests = respond_with(BATTLEMETRICS_PAYLOAD)
    fetcher = battlemetrics(handler, token="secret")

    snapshot = await fetcher.fetch()

    assert isinstance(snapshot, ServerSnapshot)
    assert snapshot.name == "Glow's Battlegrounds"
    assert snapshot.map == "Carentan"
    assert snapshot.player_names == {"Alice", "Bob"}
    assert snapshot.player_count == 3
    assert snapshot.max_players == 100
    assert snapshot.status is ServerStatus.ONLINE

    (request,) = requests
    assert request.url.path == "/servers/1234"
    assert request.url.params["include"] == "player"
    assert request.headers["Authorization"] == "Bearer secret"


async def test_battlemetrics_without_roster_keeps_count():
    payload = {"data": {"attributes": {**BATTLEMETRICS_PAYLOAD["data"]["attributes"]}}}
    del payload["data"]["attributes"]["details"]
    handler, _ = respond_with(payload)

    snapshot = await battlemetrics(handler).fetch()

    assert snapshot.player_names == frozenset()
    assert snapshot.player_count == 3
    assert snapshot.map == UNKNOWN_MAP


@pytest.mark.parametrize(
    "status, expected",
    [
        ("online", ServerStatus.ONLINE),
        ("offline", ServerStatus.OFFLINE),
        ("dead", ServerStatus.OFFLINE),
        ("invalid", ServerStatus.UNKNOWN),
        (None, ServerStatus.UNKNOWN),
    ],
)
def test_battlemetrics_status_mapping(status, expected):
    payload = json.loads(json.dumps(BATTLEMETRICS_PAYLOAD))
    payload["data"]["attributes"]["status"] = status
    assert BattleMetricsFetcher.parse(payload).status is expected


async def test_battlemetrics_http_error_is_failure():
    handler, _ = respond_with({"errors": []}, status_code=503)

    result = await battlemetrics(handler).fetch()

    assert isinstance(result, FetchFailure)
    assert "HTTP 503" in result.reason


async def test_battlemetrics_timeout_is_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await battlemetrics(handler).fetch()

    assert isinstance(result, FetchFailure)
    assert "timed out" in result.reason


async def test_battlemetrics_invalid_json_is_failure():
    fetcher = battlemetrics(lambda request: httpx.Response(200, text="<html>"))
    result = await fetcher.fetch()

    assert isinstance(result, FetchFailure)


@pytest.mark.parametrize("missing", ["name", "players", "maxPlayers"])
async def test_battlemetrics_missing_field_is_failure(missing):
    payload = json.loads(json.dumps(BATTLEMETRICS_PAYLOAD))
    del payload["data"]["attributes"][missing]
    handler, _ = respond_with(payload)

    result = await battlemetrics(handler).fetch()

    assert isinstance(result, FetchFailure)
    assert missing in result.reason


async def test_battlemetrics_mistyped_count_is_failure():
    payload = json.loads(json.dumps(BATTLEMETRICS_PAYLOAD))
    payload["data"]["attributes"]["players"] = "lots"
    handler, _ = respond_with(payload)

    assert isinstance(await battlemetrics(handler).fetch(), FetchFailure)


def a2s_info(**overrides):
    info = dict(
        server_name="Source Server",
        map_name="cp_badlands",
        player_count=2,
        max_players=24,
    )
    info.update(overrides)
    return SimpleNamespace(**info)


@pytest.fixture
def fake_a2s(monkeypatch):
    calls = []
    state = SimpleNamespace(
        info=a2s_info(),
        players=[
            SimpleNamespace(name="Alice"),
            SimpleNamespace(name=""),
            SimpleNamespace(name="Bob"),
        ],
        error=None,
    )

    async def ainfo(address, timeout):
        calls.append(("info", address, timeout))
        if state.error:
            raise state.error
        return state.info

    async def aplayers(address, timeout):
        calls.append(("players", address, timeout))
        return state.players

    monkeypatch.setattr(status_client.a2s, "ainfo", ainfo)
    monkeypatch.setattr(status_client.a2s, "aplayers", aplayers)
    state.calls = calls
    return state


async def test_a2s_snapshot(fake_a2s):
    snapshot = await A2SFetcher(("127.0.0.1", 27015), timeout=3.0).fetch()

    assert snapshot.name == "Source Server"
    assert snapshot.map == "cp_badlands"
    assert snapshot.player_names == {"Alice", "Bob"}
    assert snapshot.player_count == 2
    assert snapshot.max_players == 24
    assert snapshot.status is ServerStatus.ONLINE
    assert fake_a2s.calls[0] == ("info", ("127.0.0.1", 27015), 3.0)


@pytest.mark.parametrize(
    "error", [asyncio.TimeoutError(), ConnectionRefusedError("refused")]
)
async def test_a2s_unreachable_is_failure(fake_a2s, error):
    fake_a2s.error = error

    result = await A2SFetcher(("127.0.0.1", 27015)).fetch()

    assert isinstance(result, FetchFailure)
    assert result.reason.startswith("A2S query failed")


async def test_a2s_nameless_server_is_failure(fake_a2s):
    fake_a2s.info = a2s_info(server_name="")

    assert isinstance(await A2SFetcher(("127.0.0.1", 27015)).fetch(), FetchFailure)


def test_create_fetcher():
    config = SimpleNamespace(
        status_source="a2s",
        a2s_address=("example.com", 27015),
        fetch_timeout=5.0,
    )
    fetcher = create_fetcher(config)
    assert isinstance(fetcher, A2SFetcher)
    assert fetcher.timeout == 5.0
