from collections.abc import Iterable
from datetime import datetime, timezone

import discord

from server_status_bot.models import ServerSnapshot, ServerStatus

# Discord rejects embed field values longer than this
FIELD_VALUE_LIMIT = 1024

NO_CHANGE = "No change"

STATUS_COLOURS = {
    ServerStatus.ONLINE: discord.Colour.green(),
    ServerStatus.OFFLINE: discord.Colour.red(),
    ServerStatus.UNKNOWN: discord.Colour.light_grey(),
}


def discord_timestamp(when: datetime, style: str = "R") -> str:
    return f"<t:{int(when.timestamp())}:{style}>"


def truncate(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    suffix = "\n…"
    cut = text[: limit - len(suffix)]
    # Avoid leaving half a line behind
    if "\n" in cut:
        cut = cut[: cut.rindex("\n")]
    return cut + suffix


def format_activity(joined: Iterable[str], left: Iterable[str]) -> str:
    """
    Render the player activity section: one line per player that joined or
    left since the last cycle, or a neutral line when nobody did.
    """
    lines = [f"➕ {name} joined" for name in sorted(joined, key=str.casefold)]
    lines += [f"➖ {name} left" for name in sorted(left, key=str.casefold)]
    if not lines:
        return NO_CHANGE
    return truncate("\n".join(lines))


def status_embed(
    snapshot: ServerSnapshot,
    joined: Iterable[str],
    left: Iterable[str],
    *,
    source_name: str,
    now: datetime | None = None,
) -> discord.Embed:
    now = now or datetime.now(timezone.utc)

    embed = discord.Embed(
        title=f"📡 {snapshot.name}",
        colour=STATUS_COLOURS[snapshot.status],
        timestamp=now,
    )
    embed.add_field(name="Status", value=snapshot.status.value.upper(), inline=True)
    embed.add_field(name="Map", value=snapshot.map, inline=True)
    embed.add_field(
        name="Players",
        value=f"{snapshot.player_count}/{snapshot.max_players}",
        inline=True,
    )
    embed.add_field(
        name="Player activity", value=format_activity(joined, left), inline=False
    )
    embed.add_field(name="Last update", value=discord_timestamp(now), inline=False)
    embed.set_footer(text=f"Data provided by {source_name}")
    return embed


def offline_embed(
    reason: str,
    *,
    server_name: str | None = None,
    source_name: str,
    now: datetime | None = None,
) -> discord.Embed:
    now = now or datetime.now(timezone.utc)

    description = (
        f"**{server_name or 'The server'}** could not be reached.",
        f"Went offline {discord_timestamp(now)}.",
    )
    embed = discord.Embed(
        title="🔴 Server offline",
        description="\n".join(description),
        colour=discord.Colour.red(),
        timestamp=now,
    )
    embed.add_field(name="Reason", value=truncate(f"`{reason}`"), inline=False)
    embed.set_footer(text=f"Data provided by {source_name}")
    return embed
