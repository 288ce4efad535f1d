"""
MimiBot - Ticket Command Routes
===============================

/ticket slash commands, routed like every other inbound event.

Author: MimiDLC
"""

from typing import TYPE_CHECKING

import discord

from mimibot.core.config import EmbedColors, has_staff_role, is_admin
from mimibot.core.errors import Unauthorized, ValidationError
from mimibot.core.logger import logger
from mimibot.services.tickets.embeds import build_history_embed, ticket_number
from mimibot.services.tickets.views import build_purge_confirm_view
from mimibot.utils.footer import set_footer
from mimibot.utils.interaction import respond_result, safe_respond

from ..router import EventKind, InboundEvent, Router

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


def register_ticket_command_routes(router: Router, bot: "MimiBot") -> None:
    """Attach the /ticket command handlers to the router."""

    async def channel_ticket(event: InboundEvent):
        return await bot.ticket_service.get_ticket_for_channel(event.channel_id)

    # =========================================================================
    # Open / Claim / Close
    # =========================================================================

    @router.route("ticket open", EventKind.COMMAND)
    async def ticket_open(event: InboundEvent) -> None:
        interaction: discord.Interaction = event.raw
        await interaction.response.defer(ephemeral=True, thinking=True)
        ticket = await bot.ticket_service.open_ticket(
            interaction.user,
            interaction.guild,
            event.options.get("description", ""),
            ticket_type=event.options.get("ticket_type"),
        )
        await respond_result(interaction, f"Your ticket has been created: <#{ticket['channel_id']}>")

    @router.route("ticket claim", EventKind.COMMAND)
    async def ticket_claim(event: InboundEvent) -> None:
        ticket = await channel_ticket(event)
        ticket = await bot.ticket_service.claim_ticket(ticket["id"], event.raw.user)
        await respond_result(event.raw, f"You claimed ticket {ticket_number(ticket)}.")

    @router.route("ticket close", EventKind.COMMAND)
    async def ticket_close(event: InboundEvent) -> None:
        ticket = await channel_ticket(event)
        ticket = await bot.ticket_service.close_ticket(
            ticket["id"],
            event.raw.user,
            event.options.get("reason"),
            event.options.get("resolution"),
        )
        await respond_result(event.raw, f"Ticket {ticket_number(ticket)} closed.")

    @router.route("ticket request-close", EventKind.COMMAND)
    async def ticket_request_close(event: InboundEvent) -> None:
        ticket = await channel_ticket(event)
        await bot.ticket_service.request_close(ticket["id"], event.raw.user, event.options.get("reason"))
        await respond_result(event.raw, "Close request sent to the ticket owner.")

    # =========================================================================
    # Members
    # =========================================================================

    @router.route("ticket add", EventKind.COMMAND)
    async def ticket_add(event: InboundEvent) -> None:
        member = event.options.get("user")
        if member is None:
            raise ValidationError("Pick a member to add.")
        ticket = await channel_ticket(event)
        await bot.ticket_service.add_member(ticket["id"], member, event.raw.user)
        await respond_result(event.raw, f"{member.mention} can now see ticket {ticket_number(ticket)}.")

    @router.route("ticket remove", EventKind.COMMAND)
    async def ticket_remove(event: InboundEvent) -> None:
        member = event.options.get("user")
        if member is None:
            raise ValidationError("Pick a member to remove.")
        ticket = await channel_ticket(event)
        await bot.ticket_service.remove_member(ticket["id"], member, event.raw.user)
        await respond_result(event.raw, f"{member.mention} was removed from ticket {ticket_number(ticket)}.")

    # =========================================================================
    # History
    # =========================================================================

    @router.route("ticket history", EventKind.COMMAND)
    async def ticket_history(event: InboundEvent) -> None:
        interaction: discord.Interaction = event.raw
        settings = await bot.settings_service.get_settings(event.guild_id)
        is_staff = has_staff_role(interaction.user, settings.staff_role_id)

        user = event.options.get("user")
        if user is None and not is_staff:
            user = interaction.user
        if user is not None and user.id != interaction.user.id and not is_staff:
            raise Unauthorized("Only staff can view other members' tickets.")

        service = bot.ticket_service
        if user is None:
            tickets = await service.get_history(event.guild_id)
            stats = await service.get_stats(event.guild_id)
            title = f"🎫 Ticket History • {interaction.guild.name}"
        else:
            tickets = await service.get_history(event.guild_id, owner_id=user.id)
            stats = None
            title = f"🎫 Ticket History • {user.display_name}"

        await safe_respond(interaction, embed=build_history_embed(tickets, title, stats))

    # =========================================================================
    # Admin: Purge / Types
    # =========================================================================

    @router.route("ticket purge", EventKind.COMMAND)
    async def ticket_purge(event: InboundEvent) -> None:
        interaction: discord.Interaction = event.raw
        if not is_admin(interaction.user):
            raise Unauthorized("Only administrators can purge tickets.")

        stats = await bot.ticket_service.get_stats(event.guild_id)
        embed = discord.Embed(
            title="⚠️ Purge All Tickets?",
            description=(
                f"This permanently deletes **{stats['total']}** ticket record(s) of this server "
                "and resets ticket numbering. Channels are not touched.\n\n"
                "Press the button below to confirm."
            ),
            color=EmbedColors.WARNING,
        )
        set_footer(embed)
        await safe_respond(interaction, embed=embed, view=build_purge_confirm_view(interaction.user.id))

        logger.tree("Purge Requested", [
            ("Guild", f"{interaction.guild.name} ({event.guild_id})"),
            ("By", f"{interaction.user} ({interaction.user.id})"),
            ("Tickets", str(stats["total"])),
        ], emoji="⚠️")

    @router.route("ticket type-add", EventKind.COMMAND)
    async def ticket_type_add(event: InboundEvent) -> None:
        if not is_admin(event.raw.user):
            raise Unauthorized("Only administrators can manage ticket types.")
        record = await bot.ticket_service.add_ticket_type(
            event.guild_id,
            event.options.get("type_id", ""),
            event.options.get("label", ""),
            event.options.get("emoji"),
        )
        await respond_result(
            event.raw,
            f"Ticket type `{record['type_id']}` saved as **{record['label']}**. "
            "Run `/panel setup` to refresh the panel.",
        )

    @router.route("ticket type-remove", EventKind.COMMAND)
    async def ticket_type_remove(event: InboundEvent) -> None:
        if not is_admin(event.raw.user):
            raise Unauthorized("Only administrators can manage ticket types.")
        type_id = event.options.get("type_id", "")
        if not await bot.ticket_service.remove_ticket_type(event.guild_id, type_id):
            raise ValidationError(f"No ticket type `{type_id}` found.")
        await respond_result(event.raw, f"Ticket type `{type_id}` removed. Run `/panel setup` to refresh the panel.")


__all__ = ["register_ticket_command_routes"]
