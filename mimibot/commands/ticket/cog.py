"""
MimiBot - Ticket Cog
====================

/ticket open | claim | close | request-close | add | remove | history |
purge | type-add | type-remove

Handlers live in events/routes/ticket_commands.py.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from mimibot.services.tickets.constants import RESOLUTIONS

from ..common import CommandErrorMixin

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


RESOLUTION_CHOICES = [
    app_commands.Choice(name=info["label"], value=value)
    for value, info in RESOLUTIONS.items()
]


class TicketCog(CommandErrorMixin, commands.Cog):
    """Slash commands for the ticket desk."""

    ticket_group = app_commands.Group(
        name="ticket",
        description="Support tickets",
        guild_only=True,
    )

    def __init__(self, bot: "MimiBot") -> None:
        self.bot = bot

    # =========================================================================
    # Open / Claim / Close
    # =========================================================================

    @ticket_group.command(name="open", description="Open a support ticket")
    @app_commands.describe(description="What do you need help with?", ticket_type="Ticket type id, if the server has types")
    async def ticket_open(
        self,
        interaction: discord.Interaction,
        description: str,
        ticket_type: Optional[str] = None,
    ) -> None:
        await self.route_command(interaction, description=description, ticket_type=ticket_type)

    @ticket_group.command(name="claim", description="Claim the ticket in this channel")
    async def ticket_claim(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)

    @ticket_group.command(name="close", description="Close the ticket in this channel")
    @app_commands.describe(reason="Why is this ticket being closed?", resolution="How did it end?")
    @app_commands.choices(resolution=RESOLUTION_CHOICES)
    async def ticket_close(
        self,
        interaction: discord.Interaction,
        reason: Optional[str] = None,
        resolution: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await self.route_command(interaction, reason=reason, resolution=resolution.value if resolution else None)

    @ticket_group.command(name="request-close", description="Ask the owner to confirm closing this ticket")
    @app_commands.describe(reason="Why should the ticket be closed?")
    async def ticket_request_close(self, interaction: discord.Interaction, reason: Optional[str] = None) -> None:
        await self.route_command(interaction, reason=reason)

    # =========================================================================
    # Members
    # =========================================================================

    @ticket_group.command(name="add", description="Give a member access to this ticket")
    @app_commands.describe(user="Member to add")
    async def ticket_add(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self.route_command(interaction, user=user)

    @ticket_group.command(name="remove", description="Remove a member from this ticket")
    @app_commands.describe(user="Member to remove")
    async def ticket_remove(self, interaction: discord.Interaction, user: discord.Member) -> None:
        await self.route_command(interaction, user=user)

    # =========================================================================
    # History
    # =========================================================================

    @ticket_group.command(name="history", description="Show ticket history")
    @app_commands.describe(user="Whose tickets to show (staff only for other users)")
    async def ticket_history(self, interaction: discord.Interaction, user: Optional[discord.Member] = None) -> None:
        await self.route_command(interaction, user=user)

    # =========================================================================
    # Admin
    # =========================================================================

    @ticket_group.command(name="purge", description="Delete ALL tickets of this server (admin)")
    async def ticket_purge(self, interaction: discord.Interaction) -> None:
        await self.route_command(interaction)

    @ticket_group.command(name="type-add", description="Add or relabel a ticket type (admin)")
    @app_commands.describe(
        type_id="Short id, e.g. billing",
        label="Name shown on the panel",
        emoji="Emoji shown next to the label",
    )
    async def ticket_type_add(
        self,
        interaction: discord.Interaction,
        type_id: str,
        label: str,
        emoji: Optional[str] = None,
    ) -> None:
        await self.route_command(interaction, type_id=type_id, label=label, emoji=emoji)

    @ticket_group.command(name="type-remove", description="Remove a ticket type (admin)")
    @app_commands.describe(type_id="Id of the type to remove")
    async def ticket_type_remove(self, interaction: discord.Interaction, type_id: str) -> None:
        await self.route_command(interaction, type_id=type_id)


__all__ = ["TicketCog"]
