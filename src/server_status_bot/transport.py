import asyncio
import logging

import aiohttp
import discord

# Errors raised below py-cord when Discord cannot be reached at all
NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class TransportError(Exception):
    pass


class TransportNotFound(TransportError):
    """The targeted message no longer exists."""


class TransportFatal(TransportError):
    """Discord rejected the call, or never answered it, for any other reason."""


class DiscordChannelTransport:
    """
    Sends, edits and deletes embeds in a single Discord channel.

    Messages are identified by their snowflake id, which is all the engine
    needs to keep between cycles.
    """

    def __init__(self, channel: discord.TextChannel | discord.Thread):
        self.channel = channel
        self.logger = logging.getLogger(__name__)

    @property
    def channel_id(self) -> int:
        return self.channel.id

    async def send_message(self, embed: discord.Embed) -> int:
        try:
            message = await self.channel.send(embed=embed)
        except (discord.HTTPException, *NETWORK_ERRORS) as e:
            raise TransportFatal(
                f"Failed to send message to channel {self.channel_id}: {e!r}"
            ) from e
        self.logger.debug(f"Sent message {message.id} to channel {self.channel_id}")
        return message.id

    async def edit_message(self, message_id: int, embed: discord.Embed) -> None:
        try:
            await self.channel.get_partial_message(message_id).edit(embed=embed)
        except discord.NotFound as e:
            raise TransportNotFound(
                f"Message {message_id} no longer exists in channel {self.channel_id}"
            ) from e
        except (discord.HTTPException, *NETWORK_ERRORS) as e:
            raise TransportFatal(
                f"Failed to edit message {message_id} "
                f"in channel {self.channel_id}: {e!r}"
            ) from e

    async def delete_message(self, message_id: int) -> None:
        try:
            await self.channel.get_partial_message(message_id).delete()
        except discord.NotFound as e:
            raise TransportNotFound(
                f"Message {message_id} no longer exists in channel {self.channel_id}"
            ) from e
        except (discord.HTTPException, *NETWORK_ERRORS) as e:
            raise TransportFatal(
                f"Failed to delete message {message_id} "
                f"in channel {self.channel_id}: {e!r}"
            ) from e
