"""
MimiBot - Config Cog
====================

/config set | view | clear | antispam | antispam-reset

Handlers live in events/routes/admin_commands.py.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from mimibot.core.config import is_admin
from mimibot.services.settings import FIELD_ALIASES

from ..common import CommandErrorMixin

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


FIELD_CHOICES = [app_commands.Choice(name=name, value=name) for name in FIELD_ALIASES]


class ConfigCog(CommandErrorMixin, commands.Cog):
    """Guild configuration commands (administrators)."""

    config_group = app_commands.Group(
        name="config",
        description="Server configuration",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return is_admin(interaction.user)

    # =========================================================================
    # Settings
    # =========================================================================

    @config_group.command(name="set", description="Set a server setting")
    @app_commands.describe(field="Setting to change", value="Channel, role, category (mention or ID) or text")
    @app_commands.choices(field=FIELD_CHOICES)
    async def config_set(
        self,
        interaction: discord.Interaction,
        field: app_commands.Choice[str],
        value: str,
    ) -> None:
        await self.route_command(interaction, field=field.value, value=value)

    @config_group.command(name="clear", description="Clear a server setting")
    @app_commands.describe(field="Setting to clear")
    @app_commands.choices(field=FIELD_CHOICES)
    async def config_clear(self, interaction: discord.Interaction, field: app_commands.Choice[str]) -> None:
        await self.route_command(interaction, field=field.value)

    @config_group.command(name="view", description="Show the current server settings")
    async def config_view(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)

    # =========================================================================
    # Anti-Spam
    # =========================================================================

    @config_group.command(name="antispam", description="Tune the anti-spam thresholds")
    @app_commands.describe(
        threshold="Messages in one channel that count as spam",
        time_window="Window for the single-channel rule (e.g. 10s)",
        multi_threshold="Distinct channels that count as spam",
        multi_window="Window for the multi-channel rule (e.g. 12s)",
        timeout="Timeout length (e.g. 10m)",
    )
    async def config_antispam(
        self,
        interaction: discord.Interaction,
        threshold: Optional[app_commands.Range[int, 2, 100]] = None,
        time_window: Optional[str] = None,
        multi_threshold: Optional[app_commands.Range[int, 2, 50]] = None,
        multi_window: Optional[str] = None,
        timeout: Optional[str] = None,
    ) -> None:
        await self.route_command(
            interaction,
            threshold=threshold,
            time_window=time_window,
            multi_threshold=multi_threshold,
            multi_window=multi_window,
            timeout=timeout,
        )

    @config_group.command(name="antispam-reset", description="Restore the default anti-spam thresholds")
    async def config_antispam_reset(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)


__all__ = ["ConfigCog"]
