"""
MimiBot - Ticket Access & Close Requests
========================================

Staff-side controls on an active ticket: adding or removing members from
the channel, and asking the owner to confirm a close.

DESIGN:
    A close request is only a message with two buttons in the ticket
    channel; nothing is stored. Either the owner or the staff member who
    claimed the ticket may answer it. Confirming leads to the normal close
    modal, so a confirmed request closes through close_ticket like any
    other close.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional, Tuple

import discord

from mimibot.core.config import has_staff_role
from mimibot.core.database.models import TicketRecord
from mimibot.core.errors import InvalidTransition, Unauthorized, ValidationError
from mimibot.core.logger import logger

from .constants import CLOSE_REASON_MAX, STATUS_CLOSED
from .embeds import build_close_request_embed, build_member_access_embed, ticket_number
from .views import build_close_request_view

if TYPE_CHECKING:
    from mimibot.services.settings import GuildSettings
    from .service import TicketService


ALREADY_CLOSED = "This ticket is already closed."


class AccessMixin:
    """Mixin class for channel membership and close requests."""

    async def _active_ticket_for_staff(
        self: "TicketService",
        ticket_id: int,
        member: discord.Member,
        denied: str,
    ) -> Tuple[TicketRecord, "GuildSettings"]:
        ticket = await self.get_ticket(ticket_id)
        settings = await self.settings.get_settings(ticket["guild_id"])
        if not has_staff_role(member, settings.staff_role_id):
            raise Unauthorized(denied)
        if ticket.get("status") == STATUS_CLOSED:
            raise InvalidTransition(ALREADY_CLOSED)
        if not ticket.get("channel_id"):
            raise ValidationError("This ticket has no channel.")
        return ticket, settings

    # =========================================================================
    # Members
    # =========================================================================

    async def add_member(
        self: "TicketService",
        ticket_id: int,
        member: discord.Member,
        added_by: discord.Member,
    ) -> TicketRecord:
        """
        Let member see and write in the ticket channel.

        Raises:
            Unauthorized: added_by is not staff.
            InvalidTransition: Ticket is closed.
            ValidationError: member is the owner or a bot.
            SideEffectFailure: Discord refused the permission change.
        """
        ticket, _ = await self._active_ticket_for_staff(ticket_id, added_by, "Only staff can add members to tickets.")
        if member.id == ticket["owner_id"]:
            raise ValidationError("The ticket owner already has access.")
        if getattr(member, "bot", False):
            raise ValidationError("Bots can't be added to tickets.")

        async with self._hold(self._ticket_locks, ticket_id):
            current = self.db.get_ticket(ticket_id) or ticket
            if current.get("status") == STATUS_CLOSED:
                raise InvalidTransition(ALREADY_CLOSED)
            await self.dispatcher.add_member(ticket["channel_id"], member.id)

        await self._best_effort(
            "member_notice",
            self.dispatcher.send_message(
                ticket["channel_id"],
                embed=build_member_access_embed(member, added_by, added=True),
            ),
            ticket,
        )
        logger.tree("Ticket Member Added", [
            ("Ticket", f"{ticket_number(ticket)} (id {ticket_id})"),
            ("Member", f"{member} ({member.id})"),
            ("By", f"{added_by} ({added_by.id})"),
        ], emoji="➕")
        return ticket

    async def remove_member(
        self: "TicketService",
        ticket_id: int,
        member: discord.Member,
        removed_by: discord.Member,
    ) -> TicketRecord:
        """
        Drop member's access to the ticket channel.

        Raises:
            Unauthorized: removed_by is not staff.
            InvalidTransition: Ticket is closed.
            ValidationError: member is the owner.
            SideEffectFailure: Discord refused the permission change.
        """
        ticket, _ = await self._active_ticket_for_staff(
            ticket_id, removed_by, "Only staff can remove members from tickets."
        )
        if member.id == ticket["owner_id"]:
            raise ValidationError("The ticket owner can't be removed. Close the ticket instead.")

        async with self._hold(self._ticket_locks, ticket_id):
            current = self.db.get_ticket(ticket_id) or ticket
            if current.get("status") == STATUS_CLOSED:
                raise InvalidTransition(ALREADY_CLOSED)
            await self.dispatcher.remove_member(ticket["channel_id"], member.id)

        await self._best_effort(
            "member_notice",
            self.dispatcher.send_message(
                ticket["channel_id"],
                embed=build_member_access_embed(member, removed_by, added=False),
            ),
            ticket,
        )
        logger.tree("Ticket Member Removed", [
            ("Ticket", f"{ticket_number(ticket)} (id {ticket_id})"),
            ("Member", f"{member} ({member.id})"),
            ("By", f"{removed_by} ({removed_by.id})"),
        ], emoji="➖")
        return ticket

    # =========================================================================
    # Close Requests
    # =========================================================================

    async def request_close(
        self: "TicketService",
        ticket_id: int,
        requested_by: discord.Member,
        reason: Optional[str] = None,
    ) -> TicketRecord:
        """
        Post a confirm/cancel prompt in the ticket channel.

        Raises:
            Unauthorized: requested_by is not staff.
            InvalidTransition: Ticket is closed.
            SideEffectFailure: The prompt could not be posted.
        """
        ticket, _ = await self._active_ticket_for_staff(
            ticket_id, requested_by, "Only staff can ask for a ticket to be closed."
        )
        reason = (reason or "").strip()[:CLOSE_REASON_MAX] or None

        await self.dispatcher.send_message(
            ticket["channel_id"],
            content=f"<@{ticket['owner_id']}>",
            embed=build_close_request_embed(ticket, requested_by, reason),
            view=build_close_request_view(ticket_id),
        )
        logger.tree("Close Requested", [
            ("Ticket", f"{ticket_number(ticket)} (id {ticket_id})"),
            ("By", f"{requested_by} ({requested_by.id})"),
            ("Reason", (reason or "None")[:50]),
        ], emoji="🔔")
        return ticket

    async def authorize_close_request(
        self: "TicketService",
        ticket_id: int,
        member: discord.abc.User,
    ) -> TicketRecord:
        """
        The ticket, if member may answer its close request.

        Raises:
            InvalidTransition: Ticket is already closed.
            Unauthorized: member is neither the owner nor the claimer.
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket.get("status") == STATUS_CLOSED:
            raise InvalidTransition(ALREADY_CLOSED)
        if member.id not in (ticket["owner_id"], ticket.get("claimed_by")):
            raise Unauthorized("Only the ticket owner or the staff member handling it can answer this request.")
        return ticket

    async def cancel_close_request(
        self: "TicketService",
        ticket_id: int,
        member: discord.abc.User,
    ) -> TicketRecord:
        ticket = await self.authorize_close_request(ticket_id, member)
        logger.tree("Close Request Cancelled", [
            ("Ticket", f"{ticket_number(ticket)} (id {ticket_id})"),
            ("By", f"{member} ({member.id})"),
        ], emoji="↩️")
        return ticket


__all__ = ["AccessMixin"]
