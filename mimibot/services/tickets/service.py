"""
MimiBot - Ticket Service
========================

Core lifecycle of the ticket desk: OPEN -> CLAIMED -> CLOSED.

DESIGN:
    Transitions are conditional writes in the database (claim only if still
    open, close only if still active), taken under a per-ticket asyncio.Lock.
    Opens are serialized per (guild, owner) and by the unique partial index
    on active tickets, so an owner never holds two active tickets.

    Opening is all-or-nothing: if any step after the row is reserved fails
    (channel, first message or the channel id write), the channel is
    removed and the reserved row discarded before the error propagates.
    Closing commits first; transcript, log message, archive and owner DM
    then run in the background, and their failures are logged and reported
    to the guild log channel without touching the committed state.

Author: MimiDLC
"""

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Dict, Hashable, List, Optional, Set, Tuple

import discord

from mimibot.core.config import has_staff_role, is_admin
from mimibot.core.database.models import TicketRecord, TicketStatsRecord
from mimibot.core.errors import (
    ConfigurationMissing,
    DuplicateActiveTicket,
    InvalidTransition,
    SideEffectFailure,
    TicketNotFound,
    TransientStoreError,
    Unauthorized,
    ValidationError,
)
from mimibot.core.logger import logger
from mimibot.utils.async_utils import create_safe_task
from mimibot.utils.retry import retry_read

from .access import AccessMixin
from .annotations import AnnotationsMixin, validate_resolution
from .constants import (
    CLOSE_REASON_MAX,
    DESCRIPTION_MAX,
    DESCRIPTION_MIN,
    HISTORY_LIMIT,
    STATUS_CLAIMED,
)
from .dispatcher import NotificationDispatcher
from .embeds import build_claim_embed, build_ticket_embed
from .post_close import PostCloseMixin
from .ticket_types import TicketTypesMixin
from .views import build_control_view

if TYPE_CHECKING:
    from mimibot.bot import MimiBot
    from mimibot.services.settings import GuildSettings, SettingsService


def validate_description(description: Optional[str]) -> str:
    text = (description or "").strip()
    if len(text) < DESCRIPTION_MIN:
        raise ValidationError(f"Please describe your issue in at least {DESCRIPTION_MIN} characters.")
    if len(text) > DESCRIPTION_MAX:
        raise ValidationError(f"Issue descriptions are limited to {DESCRIPTION_MAX} characters.")
    return text


class TicketService(AccessMixin, TicketTypesMixin, AnnotationsMixin, PostCloseMixin):
    """Support tickets as private channels with a three-state lifecycle."""

    def __init__(
        self,
        db,
        settings: "SettingsService",
        dispatcher: NotificationDispatcher,
        config,
        bot: Optional["MimiBot"] = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.dispatcher = dispatcher
        self.config = config
        self.bot = bot

        self._ticket_locks: Dict[int, asyncio.Lock] = {}
        self._open_locks: Dict[Tuple[int, int], asyncio.Lock] = {}
        self._pending: Set[asyncio.Task] = set()

        logger.tree("Ticket Service Loaded", [
            ("Dispatcher", type(dispatcher).__name__),
            ("Delete Delay", f"{config.ticket_delete_delay}s"),
        ], emoji="🎫")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _track(self, coro, name: str) -> asyncio.Task:
        task = create_safe_task(coro, name)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for background post-close work to finish."""
        pending = [t for t in self._pending if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._pending if not t.done()]

    async def stop(self) -> None:
        if self._pending:
            logger.info("Waiting For Ticket Side Effects", [("Pending", str(len(self._pending)))])
        try:
            await asyncio.wait_for(self.drain(), timeout=self.config.dispatch_timeout * 2)
        except asyncio.TimeoutError:
            for task in list(self._pending):
                task.cancel()
            logger.warning("Ticket Side Effects Cancelled On Shutdown")

    @asynccontextmanager
    async def _hold(self, locks: Dict[Hashable, asyncio.Lock], key: Hashable) -> AsyncIterator[None]:
        """
        Hold the lock for key, creating it on first use.

        The entry is dropped on release unless another task is queued on it,
        so the maps only ever hold keys that are in use.
        """
        lock = locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                yield
        finally:
            if not lock.locked() and not getattr(lock, "_waiters", None) and locks.get(key) is lock:
                del locks[key]

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_ticket(self, ticket_id: int) -> TicketRecord:
        ticket = await retry_read(self.db.get_ticket, ticket_id)
        if ticket is None:
            raise TicketNotFound()
        return ticket

    async def get_ticket_for_channel(self, channel_id: int) -> TicketRecord:
        ticket = await retry_read(self.db.get_ticket_by_channel, channel_id)
        if ticket is None:
            raise TicketNotFound("This channel is not a ticket.")
        return ticket

    async def get_active_ticket(self, guild_id: int, owner_id: int) -> Optional[TicketRecord]:
        return await retry_read(self.db.get_active_ticket, guild_id, owner_id)

    async def ensure_configured(self, guild_id: int) -> "GuildSettings":
        """Settings for a guild whose ticket category and staff role are set."""
        settings = await self.settings.get_settings(guild_id)
        if not settings.ticket_ready:
            raise ConfigurationMissing(
                "The ticket system is not set up yet. An admin needs to run "
                "`/config set ticket_category` and `/config set staff_role` first."
            )
        return settings

    # =========================================================================
    # Open
    # =========================================================================

    async def open_ticket(
        self,
        owner: discord.Member,
        guild: discord.Guild,
        description: str,
        ticket_type: Optional[str] = None,
    ) -> TicketRecord:
        """
        Open a ticket and its private channel.

        Raises:
            ConfigurationMissing: Category or staff role not configured.
            ValidationError: Description too short or too long, or an
                unknown ticket type.
            DuplicateActiveTicket: Owner already has an active ticket here.
            SideEffectFailure: The channel could not be set up; nothing is kept.
            TransientStoreError: Storage was busy; nothing is kept.
        """
        settings = await self.ensure_configured(guild.id)
        description = validate_description(description)
        type_info = await self.resolve_ticket_type(guild.id, ticket_type)

        async with self._hold(self._open_locks, (guild.id, owner.id)):
            existing = await retry_read(self.db.get_active_ticket, guild.id, owner.id)
            if existing:
                raise DuplicateActiveTicket(channel_id=existing.get("channel_id"))

            ticket = self.db.create_ticket(
                guild.id,
                owner.id,
                open_reason=description,
                ticket_type=type_info["type_id"] if type_info else None,
            )
            channel_id: Optional[int] = None

            try:
                channel_id = await self.dispatcher.create_channel(
                    guild,
                    owner,
                    "ticket",
                    f"{type_info['type_id'] if type_info else 'ticket'}-{ticket['guild_ticket_id']}",
                    settings.staff_role_id,
                    settings.ticket_category_id,
                )
                self.db.set_ticket_channel(ticket["id"], channel_id)
                await self.dispatcher.send_message(
                    channel_id,
                    content=f"{owner.mention} <@&{settings.staff_role_id}>",
                    embed=build_ticket_embed(ticket, owner, type_info),
                    view=build_control_view(),
                )
            except Exception as e:
                await self._rollback_open(ticket, channel_id, e)
                if isinstance(e, SideEffectFailure):
                    raise SideEffectFailure(
                        "Your ticket channel could not be created. Please try again later.",
                        operation=e.operation,
                    ) from e
                raise

        ticket = self.db.get_ticket(ticket["id"])

        logger.tree("TICKET OPENED", [
            ("Ticket", f"#{ticket['guild_ticket_id']} (id {ticket['id']})"),
            ("Owner", f"{owner} ({owner.id})"),
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Type", type_info["label"] if type_info else "General"),
            ("Channel ID", str(channel_id)),
            ("Issue", description[:50]),
        ], emoji="🎫")

        return ticket

    async def _rollback_open(
        self,
        ticket: TicketRecord,
        channel_id: Optional[int],
        error: Exception,
    ) -> None:
        """Undo a half-finished open: channel removed, reserved row discarded."""
        logger.error("Ticket Open Failed", [
            ("Ticket ID", str(ticket["id"])),
            ("Operation", getattr(error, "operation", None) or "-"),
            ("Type", type(error).__name__),
            ("Error", str(error)[:100]),
        ])
        if channel_id is not None:
            try:
                await self.dispatcher.delete_channel(channel_id)
            except SideEffectFailure as e:
                logger.warning("Orphaned Ticket Channel", [
                    ("Channel ID", str(channel_id)),
                    ("Error", e.message[:100]),
                ])
        try:
            self.db.discard_ticket(ticket["id"])
        except TransientStoreError as e:
            logger.critical("Ticket Row Not Discarded", [
                ("Ticket ID", str(ticket["id"])),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Claim
    # =========================================================================

    async def claim_ticket(self, ticket_id: int, staff: discord.Member) -> TicketRecord:
        """
        OPEN -> CLAIMED.

        Raises:
            Unauthorized: staff lacks the staff role.
            InvalidTransition: Ticket is no longer open.
        """
        ticket = await self.get_ticket(ticket_id)
        settings = await self.settings.get_settings(ticket["guild_id"])
        if not has_staff_role(staff, settings.staff_role_id):
            raise Unauthorized("Only staff can claim tickets.")

        async with self._hold(self._ticket_locks, ticket_id):
            if not self.db.claim_ticket(ticket_id, staff.id):
                current = self.db.get_ticket(ticket_id) or ticket
                if current.get("status") == STATUS_CLAIMED:
                    raise InvalidTransition(f"This ticket was already claimed by <@{current['claimed_by']}>.")
                raise InvalidTransition("This ticket is already closed.")
            ticket = self.db.get_ticket(ticket_id)

        if ticket.get("channel_id"):
            await self._best_effort(
                "claim_notice",
                self.dispatcher.send_message(ticket["channel_id"], embed=build_claim_embed(ticket, staff)),
                ticket,
            )
        return ticket

    # =========================================================================
    # Close
    # =========================================================================

    async def close_ticket(
        self,
        ticket_id: int,
        closed_by: discord.Member,
        reason: Optional[str] = None,
        resolution: Optional[str] = None,
    ) -> TicketRecord:
        """
        OPEN|CLAIMED -> CLOSED, then schedule the post-close side effects.

        Raises:
            Unauthorized: Neither the owner nor staff.
            ValidationError: Unknown resolution.
            InvalidTransition: Ticket already closed.
        """
        ticket = await self.get_ticket(ticket_id)
        settings = await self.settings.get_settings(ticket["guild_id"])
        is_owner = closed_by.id == ticket["owner_id"]
        if not is_owner and not has_staff_role(closed_by, settings.staff_role_id):
            raise Unauthorized("Only the ticket owner or staff can close this ticket.")

        resolution = validate_resolution(resolution)
        reason = (reason or "").strip()[:CLOSE_REASON_MAX] or None

        async with self._hold(self._ticket_locks, ticket_id):
            if not self.db.close_ticket(ticket_id, closed_by.id, reason, resolution):
                raise InvalidTransition("This ticket is already closed.")
            ticket = self.db.get_ticket(ticket_id)

        logger.tree("TICKET CLOSED", [
            ("Ticket", f"#{ticket['guild_ticket_id']} (id {ticket_id})"),
            ("Closed By", f"{closed_by} ({closed_by.id})"),
            ("Owner ID", str(ticket["owner_id"])),
            ("Reason", (reason or "None")[:50]),
        ], emoji="🔒")

        self._track(self.run_post_close(ticket, settings, closed_by), f"Ticket {ticket_id} Post-Close")
        return ticket

    # =========================================================================
    # History & Purge
    # =========================================================================

    async def get_history(
        self,
        guild_id: int,
        owner_id: Optional[int] = None,
        limit: int = HISTORY_LIMIT,
    ) -> List[TicketRecord]:
        """Tickets of a guild or one owner, newest first."""
        return await retry_read(self.db.get_guild_tickets, guild_id, owner_id, limit)

    async def get_stats(self, guild_id: int) -> TicketStatsRecord:
        return await retry_read(self.db.get_ticket_stats, guild_id)

    async def purge(self, guild_id: int, requested_by: Optional[discord.Member] = None) -> int:
        """
        Delete every ticket of the guild and reset its numbering.

        Raises:
            Unauthorized: requested_by is given and is not an admin.
        """
        if requested_by is not None and not is_admin(requested_by):
            raise Unauthorized("Only administrators can purge tickets.")

        deleted = self.db.purge_tickets(guild_id)

        logger.tree("TICKETS PURGED", [
            ("Guild ID", str(guild_id)),
            ("Deleted", str(deleted)),
            ("By", f"{requested_by} ({requested_by.id})" if requested_by else "system"),
        ], emoji="🗑️")
        return deleted


__all__ = ["TicketService", "validate_description", "validate_resolution"]
