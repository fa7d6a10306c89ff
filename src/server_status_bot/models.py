import enum
from dataclasses import dataclass, field

UNKNOWN_MAP = "Unknown"


class ServerStatus(enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"

    @classmethod
    def from_source(cls, value) -> "ServerStatus":
        """
        Normalize a status string reported by a status source.

        BattleMetrics reports `dead` and `removed` for servers it has lost
        track of; those count as offline.
        """
        match str(value).lower():
            case "online":
                return cls.ONLINE
            case "offline" | "dead" | "removed":
                return cls.OFFLINE
            case _:
                return cls.UNKNOWN


@dataclass(frozen=True)
class ServerSnapshot:
    """
    One point-in-time normalized read of a game server.

    `player_count` is what the source reports and is kept apart from
    `player_names`; sources may report a count without every name.
    """

    name: str
    player_count: int
    max_players: int
    status: ServerStatus
    map: str = UNKNOWN_MAP
    player_names: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        # Normalize whatever iterable was given into a deduplicated set with no blanks
        names = frozenset(
            name.strip() for name in self.player_names if name and name.strip()
        )
        object.__setattr__(self, "player_names", names)
        if not self.map:
            object.__setattr__(self, "map", UNKNOWN_MAP)


@dataclass(frozen=True)
class FetchFailure:
    """A status source could not be read; `reason` is a diagnostic message."""

    reason: str

    def __str__(self):
        return self.reason
