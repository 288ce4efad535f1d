"""
MimiBot - Database Punishment Operations
========================================

Durable copy of anti-spam punishment windows, so a restart (or a second
process without the shared cache) still knows who is timed out and how many
offenses they have.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional

from mimibot.core.database.models import PunishmentRecord

if TYPE_CHECKING:
    from mimibot.core.database.manager import DatabaseManager


class PunishmentsMixin:
    """Mixin for punishment rows. All times are epoch milliseconds."""

    def get_punishment_row(
        self: "DatabaseManager",
        guild_id: int,
        subject_id: int,
    ) -> Optional[PunishmentRecord]:
        row = self.fetchone(
            "SELECT * FROM punishments WHERE guild_id = ? AND subject_id = ?",
            (guild_id, subject_id)
        )
        return dict(row) if row else None

    def upsert_punishment(
        self: "DatabaseManager",
        guild_id: int,
        subject_id: int,
        punished_until: int,
        offense_count: int,
        created_at: int,
        reason: Optional[str] = None,
    ) -> None:
        self.execute(
            """INSERT INTO punishments
                   (guild_id, subject_id, punished_until, offense_count, reason, created_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(guild_id, subject_id) DO UPDATE SET
                   punished_until = excluded.punished_until,
                   offense_count = excluded.offense_count,
                   reason = excluded.reason,
                   created_at = excluded.created_at""",
            (guild_id, subject_id, punished_until, offense_count, reason, created_at)
        )

    def end_punishment(self: "DatabaseManager", guild_id: int, subject_id: int, now_ms: int) -> bool:
        """Cut an active window short, keeping the offense count."""
        cursor = self.execute(
            """UPDATE punishments SET punished_until = ?
               WHERE guild_id = ? AND subject_id = ? AND punished_until > ?""",
            (now_ms, guild_id, subject_id, now_ms)
        )
        return cursor.rowcount > 0

    def delete_stale_punishments(self: "DatabaseManager", before_ms: int) -> int:
        """Drop rows whose window ended before before_ms (offense history expired)."""
        cursor = self.execute(
            "DELETE FROM punishments WHERE punished_until < ?",
            (before_ms,)
        )
        return cursor.rowcount
