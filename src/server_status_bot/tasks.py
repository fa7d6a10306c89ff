import logging

import discord
import stamina
from discord.ext import commands, tasks

from server_status_bot.engine import ReconciliationEngine
from server_status_bot.main import StatusBot
from server_status_bot.reporting import ErrorReporter
from server_status_bot.service import StatusService
from server_status_bot.transport import NETWORK_ERRORS, DiscordChannelTransport

# Seconds - replaced by POLL_INTERVAL when the cog starts
DEFAULT_POLL_INTERVAL = 60


class StatusTasks(commands.Cog):
    """
    Cog to keep the status channel in step with the game server.
    """

    def __init__(self, bot: StatusBot):
        self.bot = bot
        self.config = bot.config
        self.fetcher = bot.fetcher
        self.logger = logging.getLogger(__name__)

        # Built once the bot is ready and the channels can be resolved
        self.service: StatusService | None = None

        # Start tasks during init
        self.poll_status.change_interval(seconds=self.config.poll_interval)
        self.poll_status.start()

    @stamina.retry(on=discord.DiscordServerError, attempts=5)
    async def resolve_channel(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id)
        return channel

    @tasks.loop(seconds=DEFAULT_POLL_INTERVAL)
    async def poll_status(self):
        """
        Fetch the server status and update the status channel.
        The loop awaits each cycle, so scheduled cycles never overlap.
        """
        try:
            await self.service.cycle()
        except Exception:
            # Keep the loop alive; the next cycle starts from the last committed state
            self.logger.exception("Unexpected error during status cycle")

    @poll_status.before_loop
    async def before_poll_status(self):
        await self.bot.wait_until_ready()

        try:
            channel = await self.resolve_channel(self.config.status_channel_id)
        except (discord.HTTPException, *NETWORK_ERRORS):
            self.logger.critical(
                f"Unable to access status channel {self.config.status_channel_id}, shutting down"
            )
            # Nothing useful can run without the status channel
            self.bot.exit_code = 1
            await self.bot.close()
            raise

        error_channel = None
        if self.config.error_channel_id is not None:
            try:
                error_channel = await self.resolve_channel(self.config.error_channel_id)
            except discord.HTTPException:
                self.logger.exception(
                    f"Unable to access error channel {self.config.error_channel_id}, diagnostics will only be logged"
                )

        engine = ReconciliationEngine(self.fetcher, DiscordChannelTransport(channel))
        self.service = StatusService(engine, ErrorReporter(error_channel))
        self.logger.info(
            f'Publishing {self.fetcher.source_name} status to channel "{channel}" every {self.config.poll_interval}s'
        )

    def cog_unload(self):
        self.poll_status.cancel()
        self.bot.loop.create_task(self.fetcher.close())


def setup(bot: StatusBot):
    bot.add_cog(StatusTasks(bot))


def teardown(bot: StatusBot):
    pass
