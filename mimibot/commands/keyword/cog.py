"""
MimiBot - Keyword Cog
=====================

/keyword add | remove | list

Handlers live in events/routes/admin_commands.py.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from mimibot.core.config import is_admin
from mimibot.core.database.keywords import MatchType

from ..common import CommandErrorMixin

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


MATCH_CHOICES = [
    app_commands.Choice(name="Contains", value=MatchType.CONTAINS.value),
    app_commands.Choice(name="Exact", value=MatchType.EXACT.value),
]


class KeywordCog(CommandErrorMixin, commands.Cog):
    """Keyword auto-reply management (administrators)."""

    keyword_group = app_commands.Group(
        name="keyword",
        description="Keyword auto-replies",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return is_admin(interaction.user)

    @keyword_group.command(name="add", description="Add or replace a keyword reply")
    @app_commands.describe(keyword="Text to look for", reply="What the bot answers", match_type="How the keyword matches")
    @app_commands.choices(match_type=MATCH_CHOICES)
    async def keyword_add(
        self,
        interaction: discord.Interaction,
        keyword: str,
        reply: str,
        match_type: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await self.route_command(
            interaction,
            keyword=keyword,
            reply=reply,
            match_type=match_type.value if match_type else None,
        )

    @keyword_group.command(name="remove", description="Remove a keyword reply")
    @app_commands.describe(keyword="Keyword to remove")
    async def keyword_remove(self, interaction: discord.Interaction, keyword: str) -> None:
        await self.route_command(interaction, keyword=keyword)

    @keyword_group.command(name="list", description="List keyword replies")
    async def keyword_list(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)


__all__ = ["KeywordCog"]
