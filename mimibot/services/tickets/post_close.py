"""
MimiBot - Ticket Post-Close Side Effects
========================================

Everything that happens after a close has committed: transcript upload,
log message with the annotation menu, owner DM with rating buttons, and
archiving or deleting the ticket channel.

DESIGN:
    Each step is independent and best-effort. A SideEffectFailure, or a
    busy database while recording a step's result, is logged, reported to
    the guild log channel and then ignored; the ticket stays CLOSED
    whatever happens here.

Author: MimiDLC
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

import discord

from mimibot.core.database.models import TicketRecord
from mimibot.core.errors import SideEffectFailure, TransientStoreError
from mimibot.core.logger import logger

from .constants import MAX_TRANSCRIPT_MESSAGES
from .embeds import (
    build_close_notice_embed,
    build_log_embed,
    build_rating_request_embed,
    build_side_effect_failure_embed,
    ticket_number,
)
from .transcript import build_transcript, transcript_filename
from .views import build_log_menu_view, build_rating_view

if TYPE_CHECKING:
    from mimibot.services.settings import GuildSettings
    from .service import TicketService


class PostCloseMixin:
    """Mixin class for best-effort side effects after a transition."""

    async def _best_effort(
        self: "TicketService",
        operation: str,
        awaitable: Awaitable[Any],
        ticket: Optional[TicketRecord] = None,
    ) -> Any:
        """Await a dispatcher call; on SideEffectFailure log, report and return None."""
        try:
            return await awaitable
        except SideEffectFailure as e:
            logger.warning("Ticket Side Effect Failed", [
                ("Ticket ID", str(ticket["id"]) if ticket else "-"),
                ("Operation", operation),
                ("Error", e.message[:100]),
            ])
            if ticket is not None:
                await self._report_failure(ticket, operation, e.message)
            return None

    async def _report_failure(self: "TicketService", ticket: TicketRecord, operation: str, message: str) -> None:
        settings = await self.settings.get_settings(ticket["guild_id"])
        if not settings.log_channel_id:
            return
        try:
            await self.dispatcher.send_message(
                settings.log_channel_id,
                embed=build_side_effect_failure_embed(ticket, operation, message),
            )
        except SideEffectFailure as e:
            logger.error("Side Effect Report Failed", [
                ("Ticket ID", str(ticket["id"])),
                ("Operation", operation),
                ("Error", e.message[:100]),
            ])

    async def _record_step(
        self: "TicketService",
        ticket: TicketRecord,
        column: str,
        write: Callable[[int, Any], None],
        value: Any,
    ) -> TicketRecord:
        """
        Store the result of a side effect on the ticket row.

        A busy database is reported like a failed side effect; the value is
        kept on the returned copy so later steps still see it.
        """
        try:
            write(ticket["id"], value)
        except TransientStoreError as e:
            logger.warning("Ticket Side Effect Not Recorded", [
                ("Ticket ID", str(ticket["id"])),
                ("Column", column),
                ("Error", str(e)[:100]),
            ])
            await self._report_failure(ticket, f"record_{column}", "The result could not be saved; the database was busy.")
        return {**ticket, column: value}

    # =========================================================================
    # Close Pipeline
    # =========================================================================

    async def run_post_close(
        self: "TicketService",
        ticket: TicketRecord,
        settings: "GuildSettings",
        closed_by: discord.abc.User,
    ) -> TicketRecord:
        ticket_id = ticket["id"]
        channel_id = ticket.get("channel_id")
        guild = getattr(closed_by, "guild", None)
        guild_name = getattr(guild, "name", None) or "the server"

        if channel_id and settings.log_channel_id:
            url = await self._best_effort(
                "transcript",
                self._upload_transcript(ticket, settings.log_channel_id, guild_name),
                ticket,
            )
            if url:
                ticket = await self._record_step(ticket, "transcript_url", self.db.set_ticket_transcript_url, url)

        if settings.log_channel_id:
            message_id = await self._best_effort(
                "log_message",
                self.dispatcher.send_message(
                    settings.log_channel_id,
                    embed=build_log_embed(ticket),
                    view=build_log_menu_view(ticket_id),
                ),
                ticket,
            )
            if message_id:
                ticket = await self._record_step(ticket, "log_message_id", self.db.set_ticket_log_message, message_id)
        else:
            logger.debug(f"No log channel for guild {ticket['guild_id']}, skipping ticket log")

        await self._best_effort(
            "dm_owner",
            self.dispatcher.dm_user(
                ticket["owner_id"],
                embed=build_rating_request_embed(ticket, guild_name),
                view=build_rating_view(ticket_id),
            ),
            ticket,
        )

        if channel_id:
            await self._retire_channel(ticket, settings, closed_by)

        logger.tree("Ticket Post-Close Done", [
            ("Ticket", f"{ticket_number(ticket)} (id {ticket_id})"),
            ("Transcript", "Yes" if ticket.get("transcript_url") else "No"),
            ("Log Message", str(ticket.get("log_message_id") or "-")),
            ("Channel", "Archived" if settings.archive_category_id else "Deleted"),
        ], emoji="📦")
        return ticket

    async def _upload_transcript(
        self: "TicketService",
        ticket: TicketRecord,
        log_channel_id: int,
        guild_name: str,
    ) -> str:
        messages = await self.dispatcher.fetch_history(ticket["channel_id"], MAX_TRANSCRIPT_MESSAGES)
        text = build_transcript(ticket, messages, guild_name)
        return await self.dispatcher.upload_file(
            log_channel_id,
            transcript_filename(ticket),
            text.encode("utf-8"),
            content=f"📜 Transcript for ticket {ticket_number(ticket)}",
        )

    async def _retire_channel(
        self: "TicketService",
        ticket: TicketRecord,
        settings: "GuildSettings",
        closed_by: discord.abc.User,
    ) -> None:
        channel_id = ticket["channel_id"]

        if settings.archive_category_id:
            await self._best_effort(
                "close_notice",
                self.dispatcher.send_message(channel_id, embed=build_close_notice_embed(ticket, closed_by)),
                ticket,
            )
            await self._best_effort(
                "archive_channel",
                self.dispatcher.archive_channel(channel_id, settings.archive_category_id, ticket["owner_id"]),
                ticket,
            )
            return

        delay = self.config.ticket_delete_delay
        await self._best_effort(
            "close_notice",
            self.dispatcher.send_message(
                channel_id,
                embed=build_close_notice_embed(ticket, closed_by, delete_in=delay),
            ),
            ticket,
        )
        if delay:
            await asyncio.sleep(delay)
        await self._best_effort("delete_channel", self.dispatcher.delete_channel(channel_id), ticket)

    # =========================================================================
    # Log Message
    # =========================================================================

    async def refresh_log_message(self: "TicketService", ticket: TicketRecord) -> None:
        """Re-render the log embed after an annotation."""
        if not ticket.get("log_message_id"):
            return
        settings = await self.settings.get_settings(ticket["guild_id"])
        if not settings.log_channel_id:
            return
        await self._best_effort(
            "refresh_log_message",
            self.dispatcher.edit_message(
                settings.log_channel_id,
                ticket["log_message_id"],
                embed=build_log_embed(ticket),
            ),
            ticket,
        )


__all__ = ["PostCloseMixin"]
