"""
MimiBot - Interaction Events
============================

Every button, select and modal submit goes through one listener and one
router. Slash commands reach the same router through the command cogs,
which pass their parsed arguments along, so they are skipped here.

DESIGN:
    Handlers answer the interaction themselves on success. A MimiError
    comes back as RouteResult.error and is shown here as an ephemeral
    failure embed; anything unexpected is logged by ErrorHandler and the
    user gets a generic failure.

Author: MimiDLC
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from mimibot.core.logger import logger
from mimibot.utils.error_handler import ErrorHandler
from mimibot.utils.interaction import respond_result

from .router import EventKind, dispatch, from_interaction

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


GENERIC_FAILURE = "Something went wrong while handling that. Please try again later."


class InteractionEvents(commands.Cog):
    """Component and modal routing."""

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        event = from_interaction(interaction)
        if event is None or event.kind == EventKind.COMMAND:
            return

        try:
            result = await dispatch(self.bot.router, event)
        except Exception as e:
            ErrorHandler.handle(e, f"InteractionEvents.{event.kind.value}", interaction=interaction)
            await respond_result(interaction, GENERIC_FAILURE, success=False)
            return

        if not result.handled:
            logger.debug(f"Unrouted {event.kind.value} interaction: {event.custom_id[:60]}")
            return

        if result.error is not None:
            await respond_result(interaction, result.error.message, success=False)


async def setup(bot: "MimiBot") -> None:
    """Add the interaction events cog to the bot."""
    await bot.add_cog(InteractionEvents(bot))
    logger.debug("Interaction Events Loaded")
