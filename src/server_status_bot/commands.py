import logging

import discord
from discord import ApplicationCommandInvokeError
from discord.commands import SlashCommandGroup
from discord.ext import commands

from server_status_bot.main import StatusBot
from server_status_bot.models import FetchFailure
from server_status_bot.service import StatusService


class EphemeralError(Exception):
    pass


class StatusCommands(commands.Cog):
    """
    Cog to manage status command discord interactions.
    """

    status = SlashCommandGroup("status", "Game server status commands")

    def __init__(self, bot: StatusBot):
        self.bot = bot
        self.logger = logging.getLogger(__name__)

    def get_service(self) -> StatusService:
        cog = self.bot.get_cog("StatusTasks")
        if cog is None or cog.service is None:
            raise EphemeralError(
                "The status service is still starting up, try again shortly."
            )
        return cog.service

    @status.command()
    async def refresh(self, ctx: discord.ApplicationContext) -> None:
        """Update the status message now"""
        await ctx.defer(ephemeral=True)

        service = self.get_service()
        if service.engine.busy:
            raise EphemeralError("A status update is already in progress.")

        self.logger.debug(
            f"Manual refresh requested by {ctx.author.name}/{ctx.author.id}"
        )
        outcome = await service.cycle()
        if outcome is None:
            message = "The status update could not be completed, check the logs."
        elif isinstance(outcome, FetchFailure):
            message = f"The server could not be reached: `{outcome.reason}`"
        else:
            message = (
                f"Status updated: `{outcome.player_count}/{outcome.max_players}` players on `{outcome.name}`."
            )
        await ctx.respond(message, ephemeral=True)

    @status.command()
    async def show(self, ctx: discord.ApplicationContext) -> None:
        """Show what the status service currently knows"""
        service = self.get_service()
        state = service.engine.state

        message = (
            f"Source: `{service.engine.fetcher.source_name}`",
            f"Channel presence: `{state.presence.value}`",
            f"Online: `{state.is_online}`",
            f"Known players: `{len(state.last_player_set)}`",
        )
        if state.last_message_ref is not None:
            message += (f"Status message: `{state.last_message_ref}`",)
        await ctx.respond("\n".join(message), ephemeral=True)

    async def cog_command_error(
        self, ctx: discord.ApplicationContext, error: Exception
    ) -> None:
        """Handle exceptions and discord errors"""
        if isinstance(error, ApplicationCommandInvokeError):
            error = error.original

        if isinstance(error, EphemeralError):
            await ctx.respond(str(error), ephemeral=True)
        else:
            self.logger.error("An unexpected error occured", exc_info=error)
            await ctx.respond(
                f"Something went wrong running that command: `{error}`", ephemeral=True
            )

    def cog_unload(self):
        pass


def setup(bot: StatusBot):
    bot.add_cog(StatusCommands(bot))


def teardown(bot: StatusBot):
    pass
