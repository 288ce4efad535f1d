"""
MimiBot - Command Helpers
=========================

Shared routing and error handling for slash-command cogs.

DESIGN:
    Cogs declare the command signatures Discord needs and nothing else.
    route_command() hands the interaction to the same Router that buttons,
    modals and messages go through, with the parsed arguments attached as
    options. A MimiError raised by the route handler is shown as a failure
    embed; anything else reaches cog_app_command_error.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Any

import discord
from discord import app_commands

from mimibot.core.errors import MimiError
from mimibot.core.logger import logger
from mimibot.events.router import dispatch, from_interaction
from mimibot.utils.error_handler import ErrorHandler
from mimibot.utils.interaction import respond_result

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


GENERIC_FAILURE = "Something went wrong while running that command. Please try again later."


class CommandErrorMixin:
    """
    Routes a cog's app commands and turns their errors into failure embeds.

    MimiError carries its own user-facing message; failed checks get a
    permission message; everything else is logged by ErrorHandler.
    """

    bot: "MimiBot"

    async def route_command(self, interaction: discord.Interaction, **options: Any) -> None:
        event = from_interaction(interaction)
        event.payload["options"] = options

        result = await dispatch(self.bot.router, event)
        if not result.handled:
            logger.warning("Unrouted Command", [
                ("Command", event.custom_id or "-"),
                ("User ID", str(event.subject_id)),
            ])
            await respond_result(interaction, GENERIC_FAILURE, success=False)
            return

        if result.error is not None:
            await respond_result(interaction, result.error.message, success=False)

    async def cog_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = getattr(error, "original", error)

        if isinstance(original, MimiError):
            await respond_result(interaction, original.message, success=False)
            return

        if isinstance(error, app_commands.CheckFailure):
            await respond_result(interaction, "You don't have permission to use this command.", success=False)
            return

        command = interaction.command.qualified_name if interaction.command else "unknown"
        ErrorHandler.handle(original, f"/{command}", interaction=interaction)
        await respond_result(interaction, GENERIC_FAILURE, success=False)


__all__ = ["CommandErrorMixin", "GENERIC_FAILURE"]
