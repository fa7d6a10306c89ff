import logging

import discord

from server_status_bot.transport import NETWORK_ERRORS


class ErrorReporter:
    """
    Posts diagnostics to an optional error channel.

    Only the first problem after a healthy cycle is posted; `resolve` re-arms
    the reporter once a cycle succeeds again, so a long outage produces a
    single post rather than one per poll.
    """

    def __init__(self, channel: discord.TextChannel | discord.Thread | None = None):
        self.channel = channel
        self.logger = logging.getLogger(__name__)
        self.armed = True

    async def report(self, title: str, detail: str) -> bool:
        """Returns True when a diagnostic was posted."""
        if not self.armed:
            self.logger.debug(
                f'Already reported an ongoing problem, not posting "{title}"'
            )
            return False
        self.armed = False

        if self.channel is None:
            return False

        embed = discord.Embed(
            title=f"⚠️ {title}",
            description=f"`{detail}`",
            colour=discord.Colour.orange(),
        )
        try:
            await self.channel.send(embed=embed)
        except (discord.HTTPException, *NETWORK_ERRORS):
            self.logger.exception(f'Failed to post "{title}" to the error channel')
            return False
        return True

    def resolve(self):
        if not self.armed:
            self.logger.info("Status cycle healthy again")
        self.armed = True
