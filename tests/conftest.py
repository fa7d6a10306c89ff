import itertools
from types import SimpleNamespace

import discord
import pytest

from server_status_bot.models import ServerSnapshot, ServerStatus
from server_status_bot.status_client import StatusFetcher
from server_status_bot.transport import TransportNotFound


def http_error(cls, status, reason="error"):
    response = SimpleNamespace(status=status, reason=reason)
    return cls(response, reason)


def make_snapshot(*names, name="Test Server", status=ServerStatus.ONLINE, **kwargs):
    kwargs.setdefault("player_count", len(names))
    kwargs.setdefault("max_players", 32)
    kwargs.setdefault("map", "de_dust2")
    return ServerSnapshot(
        name=name, player_names=frozenset(names), status=status, **kwargs
    )


class FakeTransport:
    """Records every call; message ids are handed out in increasing order."""

    def __init__(self):
        self.calls = []
        self.messages = {}
        self.ids = itertools.count(1000)
        self.fail_send = None
        self.fail_edit = None
        self.fail_delete = None

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]

    async def send_message(self, embed):
        self.calls.append(("send", embed))
        if self.fail_send:
            raise self.fail_send
        message_id = next(self.ids)
        self.messages[message_id] = embed
        return message_id

    async def edit_message(self, message_id, embed):
        self.calls.append(("edit", message_id, embed))
        if self.fail_edit:
            raise self.fail_edit
        if message_id not in self.messages:
            raise TransportNotFound(f"{message_id} missing")
        self.messages[message_id] = embed

    async def delete_message(self, message_id):
        self.calls.append(("delete", message_id))
        if self.fail_delete:
            raise self.fail_delete
        if self.messages.pop(message_id, None) is None:
            raise TransportNotFound(f"{message_id} missing")


class ScriptedFetcher(StatusFetcher):
    source_name = "Test Source"

    def __init__(self, *outcomes):
        super().__init__()
        self.outcomes = list(outcomes)

    async def fetch(self):
        return self.outcomes.pop(0)

    async def query(self):
        raise NotImplementedError


class FakeChannel:
    id = 42

    def __init__(self):
        self.sent = []
        self.partials = {}
        self.send_error = None

    async def send(self, *, embed):
        if self.send_error:
            raise self.send_error
        self.sent.append(embed)
        return SimpleNamespace(id=len(self.sent))

    def get_partial_message(self, message_id):
        return self.partials.setdefault(message_id, FakePartialMessage(message_id))


class FakePartialMessage:
    def __init__(self, message_id):
        self.id = message_id
        self.edits = []
        self.deleted = False
        self.error = None

    async def edit(self, *, embed):
        if self.error:
            raise self.error
        self.edits.append(embed)

    async def delete(self):
        if self.error:
            raise self.error
        self.deleted = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def not_found():
    return http_error(discord.NotFound, 404, "Unknown Message")


@pytest.fixture
def forbidden():
    return http_error(discord.Forbidden, 403, "Missing Permissions")
