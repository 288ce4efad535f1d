"""
MimiBot - Database Ticket Operations
====================================

Ticket rows, per-guild ticket numbering and guarded status transitions.

DESIGN:
    Every status change is a conditional UPDATE ("... WHERE status = 'open'")
    and callers look at rowcount, so two racing claims or closes cannot both
    succeed. Opening allocates the guild ticket number and inserts the row
    inside one BEGIN IMMEDIATE transaction, and a partial unique index keeps
    at most one active ticket per owner per guild even if a caller skips the
    pre-check.

Author: MimiDLC
"""

import sqlite3
import time
from typing import TYPE_CHECKING, List, Optional

from mimibot.core.errors import DuplicateActiveTicket
from mimibot.core.logger import logger
from mimibot.core.database.models import TicketRecord, TicketStatsRecord, TicketTypeRecord

if TYPE_CHECKING:
    from mimibot.core.database.manager import DatabaseManager


ACTIVE_STATUSES = ("open", "claimed")


class TicketsMixin:
    """Mixin for ticket database operations."""

    # =========================================================================
    # Numbering
    # =========================================================================

    @staticmethod
    def _allocate_guild_ticket_id(tx: sqlite3.Cursor, guild_id: int) -> int:
        tx.execute(
            """INSERT INTO guild_ticket_counters (guild_id, last_ticket_id) VALUES (?, 1)
               ON CONFLICT(guild_id) DO UPDATE SET last_ticket_id = last_ticket_id + 1""",
            (guild_id,)
        )
        tx.execute(
            "SELECT last_ticket_id FROM guild_ticket_counters WHERE guild_id = ?",
            (guild_id,)
        )
        return tx.fetchone()["last_ticket_id"]

    def get_next_guild_ticket_id(self: "DatabaseManager", guild_id: int) -> int:
        """Atomically reserve and return the next ticket number for a guild."""
        with self.transaction() as tx:
            return self._allocate_guild_ticket_id(tx, guild_id)

    # =========================================================================
    # Create / Discard
    # =========================================================================

    def create_ticket(
        self: "DatabaseManager",
        guild_id: int,
        owner_id: int,
        open_reason: Optional[str] = None,
        channel_id: Optional[int] = None,
        ticket_type: Optional[str] = None,
    ) -> TicketRecord:
        """
        Insert a new OPEN ticket with its guild ticket number.

        Raises:
            DuplicateActiveTicket: If the owner already has an open or
                claimed ticket in this guild.
        """
        now = time.time()
        try:
            with self.transaction() as tx:
                tx.execute(
                    """SELECT id, channel_id FROM tickets
                       WHERE guild_id = ? AND owner_id = ? AND status IN ('open', 'claimed')""",
                    (guild_id, owner_id)
                )
                existing = tx.fetchone()
                if existing:
                    raise DuplicateActiveTicket(channel_id=existing["channel_id"])

                guild_ticket_id = self._allocate_guild_ticket_id(tx, guild_id)
                tx.execute(
                    """INSERT INTO tickets (
                        guild_id, guild_ticket_id, owner_id, channel_id,
                        status, open_reason, ticket_type, created_at
                    ) VALUES (?, ?, ?, ?, 'open', ?, ?, ?)""",
                    (guild_id, guild_ticket_id, owner_id, channel_id, open_reason, ticket_type, now)
                )
                ticket_id = tx.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateActiveTicket() from e

        logger.tree("Ticket Row Created", [
            ("Ticket", f"#{guild_ticket_id} (id {ticket_id})"),
            ("Guild ID", str(guild_id)),
            ("Owner ID", str(owner_id)),
        ], emoji="🎫")

        return self.get_ticket(ticket_id)

    def set_ticket_channel(self: "DatabaseManager", ticket_id: int, channel_id: int) -> bool:
        cursor = self.execute(
            "UPDATE tickets SET channel_id = ? WHERE id = ?",
            (channel_id, ticket_id)
        )
        return cursor.rowcount > 0

    def discard_ticket(self: "DatabaseManager", ticket_id: int) -> bool:
        """Remove a ticket whose open never completed (no channel could be made)."""
        cursor = self.execute(
            "DELETE FROM tickets WHERE id = ? AND status = 'open'",
            (ticket_id,)
        )
        if cursor.rowcount > 0:
            logger.warning("Ticket Row Discarded", [("Ticket ID", str(ticket_id))])
        return cursor.rowcount > 0

    # =========================================================================
    # Reads
    # =========================================================================

    def get_ticket(self: "DatabaseManager", ticket_id: int) -> Optional[TicketRecord]:
        row = self.fetchone("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
        return dict(row) if row else None

    def get_ticket_by_channel(self: "DatabaseManager", channel_id: int) -> Optional[TicketRecord]:
        row = self.fetchone(
            "SELECT * FROM tickets WHERE channel_id = ? ORDER BY id DESC LIMIT 1",
            (channel_id,)
        )
        return dict(row) if row else None

    def get_active_ticket(self: "DatabaseManager", guild_id: int, owner_id: int) -> Optional[TicketRecord]:
        row = self.fetchone(
            """SELECT * FROM tickets
               WHERE guild_id = ? AND owner_id = ? AND status IN ('open', 'claimed')""",
            (guild_id, owner_id)
        )
        return dict(row) if row else None

    def get_guild_tickets(
        self: "DatabaseManager",
        guild_id: int,
        owner_id: Optional[int] = None,
        limit: int = 25,
    ) -> List[TicketRecord]:
        """Tickets of a guild (optionally one owner), newest first."""
        if owner_id is not None:
            rows = self.fetchall(
                """SELECT * FROM tickets WHERE guild_id = ? AND owner_id = ?
                   ORDER BY created_at DESC, id DESC LIMIT ?""",
                (guild_id, owner_id, limit)
            )
        else:
            rows = self.fetchall(
                """SELECT * FROM tickets WHERE guild_id = ?
                   ORDER BY created_at DESC, id DESC LIMIT ?""",
                (guild_id, limit)
            )
        return [dict(row) for row in rows]

    def count_owner_tickets(self: "DatabaseManager", guild_id: int, owner_id: int) -> int:
        row = self.fetchone(
            "SELECT COUNT(*) AS c FROM tickets WHERE guild_id = ? AND owner_id = ?",
            (guild_id, owner_id)
        )
        return row["c"] if row else 0

    def get_ticket_stats(self: "DatabaseManager", guild_id: int) -> TicketStatsRecord:
        row = self.fetchone(
            """SELECT
                   COUNT(*) AS total,
                   SUM(CASE WHEN status = 'open' THEN 1 ELSE 0 END) AS open,
                   SUM(CASE WHEN status = 'claimed' THEN 1 ELSE 0 END) AS claimed,
                   SUM(CASE WHEN status = 'closed' THEN 1 ELSE 0 END) AS closed,
                   AVG(rating) AS avg_rating
               FROM tickets WHERE guild_id = ?""",
            (guild_id,)
        )
        return {
            "total": row["total"] or 0,
            "open": row["open"] or 0,
            "claimed": row["claimed"] or 0,
            "closed": row["closed"] or 0,
            "avg_rating": row["avg_rating"],
        }

    # =========================================================================
    # Transitions
    # =========================================================================

    def claim_ticket(self: "DatabaseManager", ticket_id: int, staff_id: int) -> bool:
        """OPEN -> CLAIMED. False if the ticket was not OPEN."""
        cursor = self.execute(
            """UPDATE tickets SET status = 'claimed', claimed_by = ?, claimed_at = ?
               WHERE id = ? AND status = 'open'""",
            (staff_id, time.time(), ticket_id)
        )
        if cursor.rowcount > 0:
            logger.tree("Ticket Claimed", [
                ("Ticket ID", str(ticket_id)),
                ("Staff ID", str(staff_id)),
            ], emoji="✋")
            return True
        return False

    def close_ticket(
        self: "DatabaseManager",
        ticket_id: int,
        closed_by: int,
        close_reason: Optional[str] = None,
        resolution: Optional[str] = None,
    ) -> bool:
        """OPEN|CLAIMED -> CLOSED. False if already closed or missing."""
        cursor = self.execute(
            """UPDATE tickets
               SET status = 'closed', closed_at = ?, closed_by = ?, close_reason = ?,
                   resolution = COALESCE(?, resolution)
               WHERE id = ? AND status IN ('open', 'claimed')""",
            (time.time(), closed_by, close_reason, resolution, ticket_id)
        )
        if cursor.rowcount > 0:
            logger.tree("Ticket Closed", [
                ("Ticket ID", str(ticket_id)),
                ("Closed By", str(closed_by)),
                ("Reason", (close_reason or "None")[:50]),
            ], emoji="🔒")
            return True
        return False

    # =========================================================================
    # Post-Closure Annotations
    # =========================================================================

    def _annotate_closed(self: "DatabaseManager", ticket_id: int, column: str, value) -> bool:
        cursor = self.execute(
            f"UPDATE tickets SET {column} = ? WHERE id = ? AND status = 'closed'",
            (value, ticket_id)
        )
        return cursor.rowcount > 0

    def set_ticket_category(self: "DatabaseManager", ticket_id: int, category: str) -> bool:
        return self._annotate_closed(ticket_id, "category", category)

    def set_ticket_resolution(self: "DatabaseManager", ticket_id: int, resolution: str) -> bool:
        return self._annotate_closed(ticket_id, "resolution", resolution)

    def set_ticket_rating(self: "DatabaseManager", ticket_id: int, rating: int) -> bool:
        return self._annotate_closed(ticket_id, "rating", rating)

    def set_ticket_feedback(
        self: "DatabaseManager",
        ticket_id: int,
        rating: int,
        comment: Optional[str],
    ) -> bool:
        cursor = self.execute(
            "UPDATE tickets SET rating = ?, feedback = ? WHERE id = ? AND status = 'closed'",
            (rating, comment, ticket_id)
        )
        return cursor.rowcount > 0

    def set_ticket_log_message(self: "DatabaseManager", ticket_id: int, message_id: int) -> None:
        self.execute(
            "UPDATE tickets SET log_message_id = ? WHERE id = ?",
            (message_id, ticket_id)
        )

    def set_ticket_transcript_url(self: "DatabaseManager", ticket_id: int, url: str) -> None:
        self.execute(
            "UPDATE tickets SET transcript_url = ? WHERE id = ?",
            (url, ticket_id)
        )

    # =========================================================================
    # Purge
    # =========================================================================

    def purge_tickets(self: "DatabaseManager", guild_id: int) -> int:
        """Delete every ticket of a guild and reset its counter in one transaction."""
        with self.transaction() as tx:
            tx.execute("DELETE FROM tickets WHERE guild_id = ?", (guild_id,))
            deleted = tx.rowcount
            tx.execute("DELETE FROM guild_ticket_counters WHERE guild_id = ?", (guild_id,))

        logger.tree("Tickets Purged", [
            ("Guild ID", str(guild_id)),
            ("Deleted", str(deleted)),
        ], emoji="🗑️")
        return deleted

    # =========================================================================
    # Ticket Types
    # =========================================================================

    def upsert_ticket_type(
        self: "DatabaseManager",
        guild_id: int,
        type_id: str,
        label: str,
        emoji: Optional[str] = None,
    ) -> TicketTypeRecord:
        """Add a ticket type, or relabel it if type_id already exists."""
        self.execute(
            """INSERT INTO ticket_types (guild_id, type_id, label, emoji, created_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(guild_id, type_id) DO UPDATE SET label = excluded.label, emoji = excluded.emoji""",
            (guild_id, type_id, label, emoji, time.time())
        )
        return self.get_ticket_type(guild_id, type_id)

    def delete_ticket_type(self: "DatabaseManager", guild_id: int, type_id: str) -> bool:
        cursor = self.execute(
            "DELETE FROM ticket_types WHERE guild_id = ? AND type_id = ?",
            (guild_id, type_id)
        )
        return cursor.rowcount > 0

    def get_ticket_type(self: "DatabaseManager", guild_id: int, type_id: str) -> Optional[TicketTypeRecord]:
        row = self.fetchone(
            "SELECT type_id, label, emoji FROM ticket_types WHERE guild_id = ? AND type_id = ?",
            (guild_id, type_id)
        )
        return dict(row) if row else None

    def get_ticket_types(self: "DatabaseManager", guild_id: int) -> List[TicketTypeRecord]:
        """Types of a guild in the order they were added."""
        rows = self.fetchall(
            "SELECT type_id, label, emoji FROM ticket_types WHERE guild_id = ? ORDER BY id",
            (guild_id,)
        )
        return [dict(row) for row in rows]
