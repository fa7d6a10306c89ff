import asyncio
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import NamedTuple

from server_status_bot import render
from server_status_bot.models import FetchFailure, ServerSnapshot
from server_status_bot.status_client import StatusFetcher
from server_status_bot.transport import TransportError, TransportNotFound


class ChannelPresence(enum.Enum):
    NO_MESSAGE = "no message"
    LIVE = "live"
    OFFLINE_ANNOUNCED = "offline announced"


@dataclass(frozen=True)
class SessionState:
    """
    Everything the engine remembers between cycles.

    `is_online` starts out True so that a server which is already down at
    startup still gets announced as offline.
    """

    last_player_set: frozenset[str] = field(default_factory=frozenset)
    last_message_ref: int | None = None
    is_online: bool = True
    last_server_name: str | None = None

    @property
    def presence(self) -> ChannelPresence:
        if self.last_message_ref is None:
            return ChannelPresence.NO_MESSAGE
        if self.is_online:
            return ChannelPresence.LIVE
        return ChannelPresence.OFFLINE_ANNOUNCED


class Activity(NamedTuple):
    joined: frozenset[str]
    left: frozenset[str]


def compute_activity(previous: frozenset[str], current: frozenset[str]) -> Activity:
    return Activity(joined=current - previous, left=previous - current)


class ReconciliationEngine:
    """
    Keeps a single status message in a channel in step with a game server.

    Each cycle either edits the live message, replaces it when it was deleted
    from under us, or tears it down and announces the server as offline.
    `state` is only replaced once every required transport call succeeded, so
    a `TransportFatal` leaves the previous state in place.
    """

    def __init__(
        self,
        fetcher: StatusFetcher,
        transport,
        state: SessionState | None = None,
    ):
        self.fetcher = fetcher
        self.transport = transport
        self.state = state or SessionState()
        self.logger = logging.getLogger(__name__)
        self._cycle_lock = asyncio.Lock()

    @property
    def presence(self) -> ChannelPresence:
        return self.state.presence

    @property
    def busy(self) -> bool:
        return self._cycle_lock.locked()

    async def run_cycle(self) -> ServerSnapshot | FetchFailure | None:
        """
        Fetch the server status and reconcile the channel with it.

        Returns the fetch outcome, or None when a cycle was already running
        and this one was dropped.
        """
        if self.busy:
            self.logger.info("Previous status cycle still running, skipping this one")
            return None

        async with self._cycle_lock:
            outcome = await self.fetcher.fetch()
            await self.reconcile(outcome)
            return outcome

    async def reconcile(
        self, outcome: ServerSnapshot | FetchFailure
    ) -> ChannelPresence:
        if isinstance(outcome, FetchFailure):
            new_state = await self.handle_failure(outcome)
        else:
            new_state = await self.handle_snapshot(outcome)

        self.state = new_state
        self.logger.debug(
            f"Cycle complete, channel presence is now {self.presence.value}"
        )
        return self.presence

    async def handle_snapshot(self, snapshot: ServerSnapshot) -> SessionState:
        state = self.state
        activity = compute_activity(state.last_player_set, snapshot.player_names)
        if activity.joined or activity.left:
            self.logger.info(
                f'Player activity on "{snapshot.name}": joined={sorted(activity.joined)} left={sorted(activity.left)}'
            )

        embed = render.status_embed(
            snapshot,
            activity.joined,
            activity.left,
            source_name=self.fetcher.source_name,
        )

        match state.presence:
            case ChannelPresence.LIVE:
                message_ref = await self.edit_or_replace(state.last_message_ref, embed)
            case ChannelPresence.OFFLINE_ANNOUNCED:
                # The offline notice is not a status message, so post a fresh one
                self.logger.info(f'Server "{snapshot.name}" is back online')
                message_ref = await self.transport.send_message(embed)
                await self.discard(state.last_message_ref)
            case ChannelPresence.NO_MESSAGE:
                message_ref = await self.transport.send_message(embed)

        return replace(
            state,
            last_player_set=snapshot.player_names,
            last_message_ref=message_ref,
            is_online=True,
            last_server_name=snapshot.name,
        )

    async def handle_failure(self, failure: FetchFailure) -> SessionState:
        state = self.state
        if not state.is_online:
            self.logger.debug(
                f"Server still offline ({failure.reason}), not announcing again"
            )
            return state

        self.logger.warning(f"Server went offline: {failure.reason}")
        if state.presence is ChannelPresence.LIVE:
            await self.discard(state.last_message_ref)

        message_ref = await self.transport.send_message(
            render.offline_embed(
                failure.reason,
                server_name=state.last_server_name,
                source_name=self.fetcher.source_name,
            )
        )

        # The roster is kept so that on recovery the activity is relative to
        # who was on the server when it went down.
        return replace(state, last_message_ref=message_ref, is_online=False)

    async def edit_or_replace(self, message_ref: int, embed) -> int:
        try:
            await self.transport.edit_message(message_ref, embed)
        except TransportNotFound:
            self.logger.info(
                f"Status message {message_ref} was deleted, sending a new one"
            )
            return await self.transport.send_message(embed)
        return message_ref

    async def discard(self, message_ref: int):
        """Best-effort delete; the message may already be gone."""
        try:
            await self.transport.delete_message(message_ref)
        except TransportError as e:
            self.logger.debug(f"Ignoring failure to delete message {message_ref}: {e}")
