"""Forward messages from allowed channels into the summarization pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import discord
from discord.ext import commands

from chatdigest.summarization import MessageEvent

__all__ = ["MessageListener"]

_LOG = logging.getLogger(__name__)


class MessageListener(commands.Cog):
    """Pushes every message of an allow-listed channel onto the message queue.

    Messages from any other channel are dropped silently. The queue is
    bounded, so a backed-up batcher slows this listener down rather than
    losing messages.
    """

    def __init__(
        self,
        bot: commands.Bot,
        queue: asyncio.Queue[MessageEvent | None],
        allowed_channel_ids: Iterable[int],
    ) -> None:
        """Initialize the listener.

        Args:
            bot: The Discord bot instance
            queue: Inbound queue consumed by the message batcher
            allowed_channel_ids: Channels whose messages are summarized
        """
        self.bot = bot
        self.queue = queue
        self.allowed_channel_ids = frozenset(allowed_channel_ids)
        if not self.allowed_channel_ids:
            _LOG.warning("No summary channels configured; no messages will be recorded")

    @staticmethod
    def to_event(message: discord.Message) -> MessageEvent:
        return MessageEvent(
            channel_id=message.channel.id,
            author_name=message.author.name,
            text=message.content,
            timestamp=message.created_at,
        )

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.channel.id not in self.allowed_channel_ids:
            return
        await self.queue.put(self.to_event(message))

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        _LOG.info("%s is connected!", self.bot.user)
