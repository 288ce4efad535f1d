"""
MimiBot - Ticket Routes
=======================

Button, modal and select handlers of the ticket desk.

Author: MimiDLC
"""

from typing import TYPE_CHECKING

import discord

from mimibot.core.config import has_staff_role
from mimibot.core.errors import DuplicateActiveTicket, InvalidTransition, Unauthorized, ValidationError
from mimibot.core.logger import logger
from mimibot.services.tickets.annotations import validate_rating
from mimibot.services.tickets.constants import (
    CANCEL_CLOSE_REQUEST_PREFIX,
    CLAIM_TICKET_ID,
    CLOSE_REASON_FIELD,
    CLOSE_TICKET_ID,
    CLOSE_TICKET_MODAL_ID,
    CONFIRM_CLOSE_REQUEST_PREFIX,
    CONFIRM_PURGE_PREFIX,
    CREATE_TICKET_ID,
    CREATE_TICKET_MENU_ID,
    CREATE_TICKET_MODAL_ID,
    DESCRIPTION_FIELD,
    FEEDBACK_COMMENT_FIELD,
    FEEDBACK_MODAL_PREFIX,
    LOG_MENU_BACK,
    LOG_MENU_CATEGORY,
    LOG_MENU_HISTORY,
    LOG_MENU_MAIN,
    LOG_MENU_PREFIX,
    LOG_MENU_RATING,
    LOG_MENU_STATUS,
    RATE_TICKET_PREFIX,
    STATUS_CLOSED,
)
from mimibot.services.tickets.embeds import build_close_request_cancelled_embed, ticket_number
from mimibot.services.tickets.views import (
    MAIN_MENU_OPTIONS,
    CloseTicketModal,
    FeedbackModal,
    OpenTicketModal,
    build_log_menu_view,
)
from mimibot.utils.interaction import respond_result, result_embed

from ..router import EventKind, InboundEvent, Router
from .common import parse_id

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


def _require_guild(event: InboundEvent) -> int:
    if event.guild_id is None:
        raise ValidationError("This only works inside a server.")
    return event.guild_id


def register_ticket_routes(router: Router, bot: "MimiBot") -> None:
    """Attach every ticket desk component handler to the router."""

    # =========================================================================
    # Open
    # =========================================================================

    async def ready_to_open(event: InboundEvent) -> int:
        guild_id = _require_guild(event)
        await bot.ticket_service.ensure_configured(guild_id)
        existing = await bot.ticket_service.get_active_ticket(guild_id, event.subject_id)
        if existing:
            raise DuplicateActiveTicket(channel_id=existing.get("channel_id"))
        return guild_id

    @router.route(CREATE_TICKET_ID, EventKind.BUTTON)
    async def open_button(event: InboundEvent) -> None:
        await ready_to_open(event)
        await event.raw.response.send_modal(OpenTicketModal())

    @router.route(CREATE_TICKET_MENU_ID, EventKind.SELECT_MENU)
    async def open_menu(event: InboundEvent) -> None:
        guild_id = await ready_to_open(event)
        if not event.values:
            raise ValidationError("Nothing was selected.")
        ticket_type = await bot.ticket_service.resolve_ticket_type(guild_id, event.values[0])
        await event.raw.response.send_modal(OpenTicketModal(ticket_type))

    @router.route(CREATE_TICKET_MODAL_ID, EventKind.MODAL)
    async def open_submit(event: InboundEvent, ticket_type: str = "") -> None:
        _require_guild(event)
        interaction: discord.Interaction = event.raw
        await interaction.response.defer(ephemeral=True, thinking=True)
        ticket = await bot.ticket_service.open_ticket(
            interaction.user,
            interaction.guild,
            event.fields.get(DESCRIPTION_FIELD, ""),
            ticket_type=ticket_type or None,
        )
        await respond_result(interaction, f"Your ticket has been created: <#{ticket['channel_id']}>")

    # =========================================================================
    # Claim / Close
    # =========================================================================

    @router.route(CLAIM_TICKET_ID, EventKind.BUTTON)
    async def claim_button(event: InboundEvent) -> None:
        ticket = await bot.ticket_service.get_ticket_for_channel(event.channel_id)
        await bot.ticket_service.claim_ticket(ticket["id"], event.raw.user)
        await respond_result(event.raw, f"You claimed ticket {ticket_number(ticket)}.")

    @router.route(CLOSE_TICKET_ID, EventKind.BUTTON)
    async def close_button(event: InboundEvent) -> None:
        ticket = await bot.ticket_service.get_ticket_for_channel(event.channel_id)
        if ticket.get("status") == STATUS_CLOSED:
            raise InvalidTransition("This ticket is already closed.")
        await event.raw.response.send_modal(CloseTicketModal())

    @router.route(CLOSE_TICKET_MODAL_ID, EventKind.MODAL)
    async def close_submit(event: InboundEvent) -> None:
        ticket = await bot.ticket_service.get_ticket_for_channel(event.channel_id)
        ticket = await bot.ticket_service.close_ticket(
            ticket["id"],
            event.raw.user,
            event.fields.get(CLOSE_REASON_FIELD),
        )
        await respond_result(event.raw, f"Ticket {ticket_number(ticket)} closed.")

    # =========================================================================
    # Close Requests
    # =========================================================================

    @router.route(CONFIRM_CLOSE_REQUEST_PREFIX, EventKind.BUTTON)
    async def confirm_close_request(event: InboundEvent, ticket_id: str) -> None:
        await bot.ticket_service.authorize_close_request(parse_id(ticket_id), event.raw.user)
        await event.raw.response.send_modal(CloseTicketModal())

    @router.route(CANCEL_CLOSE_REQUEST_PREFIX, EventKind.BUTTON)
    async def cancel_close_request(event: InboundEvent, ticket_id: str) -> None:
        interaction: discord.Interaction = event.raw
        await bot.ticket_service.cancel_close_request(parse_id(ticket_id), interaction.user)
        await interaction.response.edit_message(
            embed=build_close_request_cancelled_embed(interaction.user),
            view=None,
        )

    # =========================================================================
    # Owner Feedback (DM)
    # =========================================================================

    @router.route(RATE_TICKET_PREFIX, EventKind.BUTTON)
    async def rate_button(event: InboundEvent, rating: str, ticket_id: str) -> None:
        rating_value = validate_rating(parse_id(rating))
        ticket = await bot.ticket_service.get_ticket(parse_id(ticket_id))
        if ticket["owner_id"] != event.subject_id:
            raise Unauthorized("Only the ticket owner can rate it.")
        await event.raw.response.send_modal(FeedbackModal(rating_value, ticket["id"]))

    @router.route(FEEDBACK_MODAL_PREFIX, EventKind.MODAL)
    async def feedback_submit(event: InboundEvent, rating: str, ticket_id: str) -> None:
        interaction: discord.Interaction = event.raw
        ticket = await bot.ticket_service.set_feedback(
            parse_id(ticket_id),
            parse_id(rating),
            event.fields.get(FEEDBACK_COMMENT_FIELD),
            submitted_by=event.subject_id,
        )

        # One rating per DM
        if interaction.message is not None:
            try:
                await interaction.message.edit(view=None)
            except discord.HTTPException as e:
                logger.debug(f"Rating buttons removal failed: {e}")

        await respond_result(
            interaction,
            f"Thanks for rating ticket {ticket_number(ticket)} {'⭐' * ticket['rating']}!",
        )

    # =========================================================================
    # Log Menu
    # =========================================================================

    @router.route(LOG_MENU_PREFIX, EventKind.SELECT_MENU)
    async def log_menu(event: InboundEvent, menu: str, ticket_id: str) -> None:
        guild_id = _require_guild(event)
        interaction: discord.Interaction = event.raw
        settings = await bot.settings_service.get_settings(guild_id)
        if not has_staff_role(interaction.user, settings.staff_role_id):
            raise Unauthorized("Only staff can manage ticket logs.")

        if not event.values:
            raise ValidationError("Nothing was selected.")
        value = event.values[0]
        tid = parse_id(ticket_id)

        if value == LOG_MENU_BACK:
            await interaction.response.edit_message(view=build_log_menu_view(tid))
            return

        service = bot.ticket_service

        if menu == LOG_MENU_MAIN:
            if value not in MAIN_MENU_OPTIONS:
                raise ValidationError("Unknown menu option.")
            history = None
            if value == LOG_MENU_HISTORY:
                ticket = await service.get_ticket(tid)
                history = await service.get_history(guild_id, owner_id=ticket["owner_id"])
                if not history:
                    raise ValidationError("This user has no ticket history.")
            await interaction.response.edit_message(view=build_log_menu_view(tid, value, history))
            return

        if menu == LOG_MENU_HISTORY:
            selected = await service.get_ticket(parse_id(value))
            if selected["guild_id"] != guild_id:
                raise Unauthorized("That ticket belongs to another server.")
            closed_at = selected.get("closed_at")
            lines = [
                f"**Ticket {ticket_number(selected)}**",
                f"Status: {selected.get('status')}",
                f"Closed: {f'<t:{int(closed_at)}:f>' if closed_at else '-'}",
                f"Reason: {selected.get('close_reason') or 'No reason'}",
            ]
            if selected.get("transcript_url"):
                lines.append(f"[View Transcript]({selected['transcript_url']})")
            await interaction.response.send_message("\n".join(lines), ephemeral=True)
            return

        if menu == LOG_MENU_STATUS:
            ticket = await service.set_resolution(tid, value)
            done = f"Resolution set to **{ticket['resolution']}**."
        elif menu == LOG_MENU_CATEGORY:
            ticket = await service.set_category(tid, value)
            done = f"Category set to **{ticket['category']}**."
        elif menu == LOG_MENU_RATING:
            ticket = await service.set_rating(tid, parse_id(value))
            done = f"Rating set to **{ticket['rating']}/5**."
        else:
            raise ValidationError("Unknown menu.")

        await interaction.response.edit_message(view=build_log_menu_view(tid))
        await interaction.followup.send(embed=result_embed(done), ephemeral=True)

    # =========================================================================
    # Purge
    # =========================================================================

    @router.route(CONFIRM_PURGE_PREFIX, EventKind.BUTTON)
    async def confirm_purge(event: InboundEvent, user_id: str) -> None:
        guild_id = _require_guild(event)
        if event.subject_id != parse_id(user_id):
            raise Unauthorized("This confirmation is not for you.")
        interaction: discord.Interaction = event.raw
        deleted = await bot.ticket_service.purge(guild_id, interaction.user)
        await interaction.response.edit_message(
            embed=result_embed(
                f"Deleted **{deleted}** ticket(s). Numbering starts again at #1.",
                title="🗑️ Tickets Purged",
            ),
            view=None,
        )


__all__ = ["register_ticket_routes"]
