"""
MimiBot - Panel Cog
===================

/panel setup posts the ticket panel to the configured channel.

Handler lives in events/routes/admin_commands.py.

Author: MimiDLC
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from mimibot.core.config import is_admin

from ..common import CommandErrorMixin

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


class PanelCog(CommandErrorMixin, commands.Cog):

    panel_group = app_commands.Group(
        name="panel",
        description="Ticket panel",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return is_admin(interaction.user)

    @panel_group.command(name="setup", description="Post or refresh the ticket panel")
    async def panel_setup(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)


__all__ = ["PanelCog"]
