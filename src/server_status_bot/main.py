import logging
import sys

import discord

from server_status_bot.config import Configuration, ConfigurationError
from server_status_bot.status_client import StatusFetcher, create_fetcher

EXTENSIONS = (
    "server_status_bot.tasks",
    "server_status_bot.commands",
)


class StatusBot(discord.Bot):
    """
    Discord bot carrying the configuration and status source shared by its cogs.
    """

    def __init__(self, config: Configuration, fetcher: StatusFetcher, **kwargs):
        if config.discord_guild_id is not None:
            kwargs.setdefault("debug_guilds", [config.discord_guild_id])
        super().__init__(intents=discord.Intents.default(), **kwargs)
        self.config = config
        self.fetcher = fetcher
        # Set by cogs that shut the bot down on unrecoverable errors
        self.exit_code = 0


def run_discord_bot():
    """
    Entry point for discord bot.
    """
    try:
        config = Configuration()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger(__package__).critical(f"Invalid configuration: {e}")
        sys.exit(1)

    logging.basicConfig(level=config.log_level)
    logger = logging.getLogger(__package__)

    # Disable Discord verbose logging - it's spammy
    logging.getLogger("discord").setLevel(logging.WARNING)

    bot = StatusBot(config, create_fetcher(config))
    for extension in EXTENSIONS:
        bot.load_extension(extension)

    logger.info(
        f'Starting discord services, polling {config.status_source} every {config.poll_interval}s...'
    )
    try:
        bot.loop.run_until_complete(bot.start(config.discord_token))
    except discord.LoginFailure:
        logger.critical("Discord rejected the configured DISCORD_TOKEN")
        bot.exit_code = 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        if not bot.is_closed():
            bot.loop.run_until_complete(bot.close())
        bot.loop.run_until_complete(bot.fetcher.close())
        bot.loop.close()
    sys.exit(bot.exit_code)


if __name__ == "__main__":
    run_discord_bot()
