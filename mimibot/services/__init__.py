"""
MimiBot - Services Package
==========================

Business logic, independent of how events arrive.

Services:
    - settings: Per-guild configuration and anti-spam thresholds
    - antispam: Spam detection, punishments and appeals
    - tickets: Ticket desk lifecycle and side effects
    - keywords: Keyword auto-replies

Author: MimiDLC
"""

from .antispam import AntiSpamService, PunishmentStore
from .keywords import KeywordService
from .settings import GuildSettings, SettingsService
from .tickets import DiscordDispatcher, NotificationDispatcher, TicketService

__all__ = [
    "AntiSpamService",
    "PunishmentStore",
    "KeywordService",
    "GuildSettings",
    "SettingsService",
    "TicketService",
    "NotificationDispatcher",
    "DiscordDispatcher",
]
