"""
MimiBot - Database Schema
=========================

Table and index creation.

Author: MimiDLC
"""

import sqlite3
from typing import TYPE_CHECKING

from mimibot.core.logger import logger

if TYPE_CHECKING:
    from mimibot.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """Create all tables if they don't exist."""
        conn = self._conn
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Tickets
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                guild_ticket_id INTEGER NOT NULL,
                owner_id INTEGER NOT NULL,
                channel_id INTEGER,
                status TEXT NOT NULL DEFAULT 'open'
                    CHECK (status IN ('open', 'claimed', 'closed')),
                claimed_by INTEGER,
                claimed_at REAL,
                closed_by INTEGER,
                close_reason TEXT,
                category TEXT,
                resolution TEXT,
                rating INTEGER CHECK (rating IS NULL OR rating BETWEEN 1 AND 5),
                feedback TEXT,
                open_reason TEXT,
                ticket_type TEXT,
                log_message_id INTEGER,
                transcript_url TEXT,
                created_at REAL NOT NULL,
                closed_at REAL,
                UNIQUE (guild_id, guild_ticket_id)
            )
        """)
        # Databases created before ticket types
        for col in ["ticket_type TEXT"]:
            try:
                cursor.execute(f"ALTER TABLE tickets ADD COLUMN {col}")
            except sqlite3.OperationalError:
                pass
        # At most one active ticket per owner per guild
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_tickets_one_active
            ON tickets(guild_id, owner_id) WHERE status IN ('open', 'claimed')
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_tickets_channel ON tickets(channel_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_tickets_guild_created ON tickets(guild_id, created_at DESC)"
        )

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_ticket_counters (
                guild_id INTEGER PRIMARY KEY,
                last_ticket_id INTEGER NOT NULL DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS ticket_types (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                type_id TEXT NOT NULL,
                label TEXT NOT NULL,
                emoji TEXT,
                created_at REAL,
                UNIQUE (guild_id, type_id)
            )
        """)

        # -----------------------------------------------------------------
        # Guild Settings
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                staff_role_id INTEGER,
                ticket_category_id INTEGER,
                log_channel_id INTEGER,
                panel_channel_id INTEGER,
                archive_category_id INTEGER,
                antispam_log_channel_id INTEGER,
                panel_title TEXT,
                panel_description TEXT,
                panel_thumbnail_url TEXT,
                panel_message_id INTEGER,
                updated_at REAL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS antispam_settings (
                guild_id INTEGER PRIMARY KEY,
                message_threshold INTEGER,
                time_window_ms INTEGER,
                multi_channel_threshold INTEGER,
                multi_channel_window_ms INTEGER,
                timeout_duration_ms INTEGER,
                updated_at REAL
            )
        """)

        # -----------------------------------------------------------------
        # Punishments (epoch milliseconds)
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS punishments (
                guild_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                punished_until INTEGER NOT NULL,
                offense_count INTEGER NOT NULL DEFAULT 1,
                reason TEXT,
                created_at INTEGER NOT NULL,
                PRIMARY KEY (guild_id, subject_id)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_punishments_until ON punishments(punished_until)"
        )

        # -----------------------------------------------------------------
        # Keyword Replies
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS keywords (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                keyword TEXT NOT NULL,
                reply TEXT NOT NULL,
                match_type TEXT NOT NULL DEFAULT 'contains',
                created_by INTEGER,
                created_at REAL,
                UNIQUE (guild_id, keyword)
            )
        """)

        conn.commit()

        logger.debug("Database Tables Initialized", [
            ("Tables", "tickets, guild_ticket_counters, ticket_types, guild_settings, antispam_settings, punishments, keywords"),
        ])
