"""
MimiBot - Database Module
=========================

SQLite persistence for tickets, guild settings, punishments and keywords.

Author: MimiDLC
"""

from mimibot.core.database.manager import (
    DatabaseManager,
    get_db,
    DB_PATH,
)

from mimibot.core.database.models import (
    TicketRecord,
    TicketStatsRecord,
    TicketTypeRecord,
    GuildSettingsRecord,
    AntiSpamSettingsRecord,
    PunishmentRecord,
)
from mimibot.core.database.keywords import KeywordRule, MatchType, normalize_reply
from mimibot.core.database.settings import GUILD_SETTINGS_COLUMNS, ANTISPAM_COLUMNS

__all__ = [
    "DatabaseManager",
    "get_db",
    "DB_PATH",
    "TicketRecord",
    "TicketStatsRecord",
    "TicketTypeRecord",
    "GuildSettingsRecord",
    "AntiSpamSettingsRecord",
    "PunishmentRecord",
    "KeywordRule",
    "MatchType",
    "normalize_reply",
    "GUILD_SETTINGS_COLUMNS",
    "ANTISPAM_COLUMNS",
]
