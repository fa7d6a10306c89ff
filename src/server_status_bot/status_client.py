import abc
import asyncio
import logging

import a2s
import httpx

from server_status_bot.models import (
    FetchFailure,
    ServerSnapshot,
    ServerStatus,
    UNKNOWN_MAP,
)


class StatusSourceError(Exception):
    pass


class StatusFetcher(abc.ABC):
    """
    Reads one game server's status and normalizes it to a `ServerSnapshot`.

    `fetch` never raises for source problems; unreachable, timed out or
    malformed sources come back as a `FetchFailure`.
    """

    source_name = "status source"

    def __init__(self, timeout: float = 10.0):
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout

    async def fetch(self) -> ServerSnapshot | FetchFailure:
        try:
            snapshot = await self.query()
        except Exception as e:
            reason = f"{self.source_name} query failed: {describe_error(e)}"
            self.logger.warning(reason)
            return FetchFailure(reason)
        self.logger.debug(f"Fetched snapshot from {self.source_name}: {snapshot}")
        return snapshot

    @abc.abstractmethod
    async def query(self) -> ServerSnapshot:
        """Perform the request; any exception is turned into a `FetchFailure`."""

    async def close(self):
        pass


def describe_error(error: Exception) -> str:
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return "timed out"
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    if isinstance(error, KeyError):
        return f"missing field {error}"
    return str(error) or type(error).__name__


def required(mapping: dict, key: str, kind: type):
    """Fetch a required field from a payload, rejecting missing or mistyped values."""
    try:
        value = mapping[key]
    except (KeyError, TypeError):
        raise StatusSourceError(f'malformed payload, missing "{key}"')
    # bool is an int subclass but never a valid count
    if not isinstance(value, kind) or isinstance(value, bool):
        raise StatusSourceError(f'malformed payload, "{key}" is not {kind.__name__}')
    return value


class BattleMetricsFetcher(StatusFetcher):
    """
    Reads a server from the BattleMetrics public API
    (https://www.battlemetrics.com/developers).

    The player roster is only returned when `include=player` is requested;
    servers hiding their roster still report a player count.
    """

    source_name = "BattleMetrics"

    def __init__(
        self,
        server_id: str,
        *,
        base_url: str = "https://api.battlemetrics.com",
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(timeout)
        self.server_id = server_id
        self.url = f"{base_url.rstrip('/')}/servers/{server_id}"
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.client = client or httpx.AsyncClient()

    async def close(self):
        await self.client.aclose()

    async def query(self) -> ServerSnapshot:
        response = await self.client.get(
            self.url,
            params={"include": "player"},
            headers=self.headers,
            timeout=httpx.Timeout(self.timeout),
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError:
            raise StatusSourceError("response is not valid JSON")
        return self.parse(payload)

    @staticmethod
    def parse(payload: dict) -> ServerSnapshot:
        data = required(payload, "data", dict)
        attributes = required(data, "attributes", dict)

        details = attributes.get("details")
        server_map = details.get("map") if isinstance(details, dict) else None

        player_names = []
        for item in payload.get("included") or []:
            if not isinstance(item, dict) or item.get("type") != "player":
                continue
            name = (item.get("attributes") or {}).get("name")
            if isinstance(name, str):
                player_names.append(name)

        return ServerSnapshot(
            name=required(attributes, "name", str),
            map=server_map if isinstance(server_map, str) else UNKNOWN_MAP,
            player_names=frozenset(player_names),
            player_count=required(attributes, "players", int),
            max_players=required(attributes, "maxPlayers", int),
            status=ServerStatus.from_source(attributes.get("status")),
        )


class A2SFetcher(StatusFetcher):
    """
    Queries a server directly over the Source engine UDP query protocol (A2S).

    Answering both A2S_INFO and A2S_PLAYER means the server is online.
    """

    source_name = "A2S"

    def __init__(self, address: tuple[str, int], *, timeout: float = 10.0):
        super().__init__(timeout)
        self.address = address

    async def query(self) -> ServerSnapshot:
        info = await a2s.ainfo(self.address, timeout=self.timeout)
        players = await a2s.aplayers(self.address, timeout=self.timeout)

        if not info.server_name:
            raise StatusSourceError("server did not report a name")

        return ServerSnapshot(
            name=info.server_name,
            map=info.map_name or UNKNOWN_MAP,
            player_names=frozenset(player.name for player in players),
            player_count=info.player_count,
            max_players=info.max_players,
            status=ServerStatus.ONLINE,
        )


def create_fetcher(config) -> StatusFetcher:
    """Build the fetcher selected by `STATUS_SOURCE`."""
    match config.status_source:
        case "battlemetrics":
            return BattleMetricsFetcher(
                config.battlemetrics_id,
                base_url=config.battlemetrics_url,
                token=config.battlemetrics_token,
                timeout=config.fetch_timeout,
            )
        case "a2s":
            return A2SFetcher(config.a2s_address, timeout=config.fetch_timeout)
        case _:
            raise ValueError(f'Unknown status source "{config.status_source}"')
