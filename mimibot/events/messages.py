"""
MimiBot - Message Events
========================

Feeds every guild message into the event router (anti-spam, then keyword
replies).

Author: MimiDLC
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from mimibot.core.logger import logger
from mimibot.utils.error_handler import ErrorHandler

from .router import dispatch, from_message

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return

        try:
            result = await dispatch(self.bot.router, from_message(message))
        except Exception as e:
            ErrorHandler.handle(e, "MessageEvents.on_message", message=message)
            return

        if result.error is not None:
            logger.warning("Message Handling Rejected", [
                ("Guild ID", str(message.guild.id)),
                ("User ID", str(message.author.id)),
                ("Error", result.error.message[:100]),
            ])


async def setup(bot: "MimiBot") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")
