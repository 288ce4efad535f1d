"""
MimiBot - Database Settings Operations
======================================

Guild settings and per-guild anti-spam thresholds.

Author: MimiDLC
"""

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from mimibot.core.logger import logger
from mimibot.core.database.models import AntiSpamSettingsRecord, GuildSettingsRecord

if TYPE_CHECKING:
    from mimibot.core.database.manager import DatabaseManager


GUILD_SETTINGS_COLUMNS = (
    "staff_role_id",
    "ticket_category_id",
    "log_channel_id",
    "panel_channel_id",
    "archive_category_id",
    "antispam_log_channel_id",
    "panel_title",
    "panel_description",
    "panel_thumbnail_url",
    "panel_message_id",
)

ANTISPAM_COLUMNS = (
    "message_threshold",
    "time_window_ms",
    "multi_channel_threshold",
    "multi_channel_window_ms",
    "timeout_duration_ms",
)


def _upsert(db: "DatabaseManager", table: str, guild_id: int, fields: Dict[str, Any]) -> None:
    columns = list(fields)
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns)
    db.execute(
        f"""INSERT INTO {table} (guild_id, {", ".join(columns)}, updated_at)
            VALUES (?, {placeholders}, ?)
            ON CONFLICT(guild_id) DO UPDATE SET {updates}, updated_at = excluded.updated_at""",
        (guild_id, *fields.values(), time.time())
    )


class SettingsMixin:
    """Mixin for guild settings rows."""

    # =========================================================================
    # Guild Settings
    # =========================================================================

    def get_guild_settings(self: "DatabaseManager", guild_id: int) -> Optional[GuildSettingsRecord]:
        row = self.fetchone("SELECT * FROM guild_settings WHERE guild_id = ?", (guild_id,))
        return dict(row) if row else None

    def upsert_guild_settings(self: "DatabaseManager", guild_id: int, **fields: Any) -> None:
        """
        Insert or update a guild's settings row.

        Raises:
            KeyError: If a field is not a guild settings column.
        """
        unknown = [f for f in fields if f not in GUILD_SETTINGS_COLUMNS]
        if unknown:
            raise KeyError(f"Unknown settings field(s): {', '.join(unknown)}")
        if not fields:
            return
        _upsert(self, "guild_settings", guild_id, fields)
        logger.tree("Guild Settings Updated", [
            ("Guild ID", str(guild_id)),
            ("Fields", ", ".join(fields)),
        ], emoji="⚙️")

    # =========================================================================
    # Anti-Spam Settings
    # =========================================================================

    def get_antispam_settings(self: "DatabaseManager", guild_id: int) -> Optional[AntiSpamSettingsRecord]:
        row = self.fetchone("SELECT * FROM antispam_settings WHERE guild_id = ?", (guild_id,))
        return dict(row) if row else None

    def upsert_antispam_settings(self: "DatabaseManager", guild_id: int, **fields: Any) -> None:
        unknown = [f for f in fields if f not in ANTISPAM_COLUMNS]
        if unknown:
            raise KeyError(f"Unknown anti-spam field(s): {', '.join(unknown)}")
        if not fields:
            return
        _upsert(self, "antispam_settings", guild_id, fields)
        logger.tree("Anti-Spam Settings Updated", [
            ("Guild ID", str(guild_id)),
            *[(k, str(v)) for k, v in fields.items()],
        ], emoji="🛡️")

    def delete_antispam_settings(self: "DatabaseManager", guild_id: int) -> bool:
        cursor = self.execute("DELETE FROM antispam_settings WHERE guild_id = ?", (guild_id,))
        return cursor.rowcount > 0
