"""
MimiBot - Guild Settings Service
================================

Read-mostly per-guild configuration: ticket desk channels and roles, panel
text, and anti-spam thresholds.

DESIGN:
    Reads go through cached() built in __init__, so every lookup is
    cache-first with the shared TTL cache and falls back to the database
    (retried on TransientStoreError). Writes are validated with validated(),
    go to the database, then invalidate the cache entry. Staleness is bounded
    by the TTL for any process that missed the invalidation.

Author: MimiDLC
"""

import re
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, Optional

from mimibot.core.cache import CacheStore, antispam_settings_key, settings_key
from mimibot.core.database.settings import ANTISPAM_COLUMNS, GUILD_SETTINGS_COLUMNS
from mimibot.core.errors import TransientStoreError, ValidationError
from mimibot.core.logger import logger
from mimibot.services.antispam.models import SpamThresholds
from mimibot.utils.retry import retry_read
from mimibot.utils.wrappers import cached, validated


# =============================================================================
# Constants
# =============================================================================

ID_FIELDS = frozenset(f for f in GUILD_SETTINGS_COLUMNS if f.endswith("_id"))
TEXT_FIELDS = frozenset({"panel_title", "panel_description"})
URL_FIELDS = frozenset({"panel_thumbnail_url"})

# User-facing names accepted by /config set and /config clear
FIELD_ALIASES = {
    "staff_role": "staff_role_id",
    "ticket_category": "ticket_category_id",
    "log_channel": "log_channel_id",
    "panel_channel": "panel_channel_id",
    "archive_category": "archive_category_id",
    "anti_spam_log_channel": "antispam_log_channel_id",
    "panel_title": "panel_title",
    "panel_description": "panel_description",
    "panel_thumbnail": "panel_thumbnail_url",
}

PANEL_TITLE_MAX = 256
PANEL_DESCRIPTION_MAX = 4000

_MENTION_PATTERN = re.compile(r"^<(?:#|@&|@!?)(\d+)>$")


# =============================================================================
# Record
# =============================================================================

@dataclass(frozen=True)
class GuildSettings:
    guild_id: int
    staff_role_id: Optional[int] = None
    ticket_category_id: Optional[int] = None
    log_channel_id: Optional[int] = None
    panel_channel_id: Optional[int] = None
    archive_category_id: Optional[int] = None
    antispam_log_channel_id: Optional[int] = None
    panel_title: Optional[str] = None
    panel_description: Optional[str] = None
    panel_thumbnail_url: Optional[str] = None
    panel_message_id: Optional[int] = None

    @classmethod
    def from_record(cls, guild_id: int, record: Optional[Dict[str, Any]]) -> "GuildSettings":
        names = {f.name for f in dataclass_fields(cls)}
        values = {k: v for k, v in (record or {}).items() if k in names and k != "guild_id"}
        return cls(guild_id=guild_id, **values)

    @property
    def ticket_ready(self) -> bool:
        return bool(self.ticket_category_id and self.staff_role_id)


def resolve_field(name: str) -> str:
    """Map a user-facing or column name to a settings column."""
    key = name.strip().lower().replace("-", "_")
    column = FIELD_ALIASES.get(key, key)
    if column not in GUILD_SETTINGS_COLUMNS:
        raise ValidationError(f"Unknown setting `{name}`.")
    return column


def parse_field_value(column: str, raw: str) -> Any:
    """Turn command text into a column value (ids accept mentions)."""
    raw = raw.strip()
    if column in ID_FIELDS:
        match = _MENTION_PATTERN.match(raw)
        digits = match.group(1) if match else raw
        if not digits.isdigit():
            raise ValidationError(f"`{column}` expects an ID or a mention, got `{raw[:50]}`.")
        return int(digits)
    return raw


# =============================================================================
# Validators
# =============================================================================

def _check_settings(guild_id: int, **fields: Any) -> Optional[str]:
    if not fields:
        return "Nothing to update."
    for name, value in fields.items():
        if name not in GUILD_SETTINGS_COLUMNS:
            return f"Unknown setting `{name}`."
        if value is None:
            continue
        if name in ID_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                return f"`{name}` must be a positive ID."
        elif name in URL_FIELDS:
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                return f"`{name}` must be an http(s) URL."
        elif name == "panel_title" and len(str(value)) > PANEL_TITLE_MAX:
            return f"Panel title must be at most {PANEL_TITLE_MAX} characters."
        elif name == "panel_description" and len(str(value)) > PANEL_DESCRIPTION_MAX:
            return f"Panel description must be at most {PANEL_DESCRIPTION_MAX} characters."
    return None


def _threshold_checker(max_timeout_ms: int):
    def check(guild_id: int, **fields: Any) -> Optional[str]:
        if not fields:
            return "Nothing to update."
        for name, value in fields.items():
            if name not in ANTISPAM_COLUMNS:
                return f"Unknown anti-spam setting `{name}`."
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                return f"`{name}` must be a positive integer."
        if fields.get("timeout_duration_ms", 0) > max_timeout_ms:
            return f"Timeout cannot exceed {max_timeout_ms // 86400000} days."
        return None
    return check


# =============================================================================
# Service
# =============================================================================

class SettingsService:
    """Guild settings and anti-spam thresholds, cache-first."""

    def __init__(self, db, cache: CacheStore, config) -> None:
        self.db = db
        self.cache = cache
        self.config = config
        self.default_thresholds = SpamThresholds.from_config(config)

        ttl = config.settings_cache_ttl
        self._load_settings = cached(cache, settings_key, ttl, self._read_settings)
        self._load_thresholds = cached(cache, antispam_settings_key, ttl, self._read_thresholds)

        self._write_settings = validated(_check_settings, self.db.upsert_guild_settings)
        self._write_thresholds = validated(
            _threshold_checker(config.antispam_max_timeout_ms),
            self.db.upsert_antispam_settings,
        )

    # =========================================================================
    # Loaders
    # =========================================================================

    async def _read_settings(self, guild_id: int) -> Dict[str, Any]:
        row = await retry_read(self.db.get_guild_settings, guild_id)
        return dict(row) if row else {}

    async def _read_thresholds(self, guild_id: int) -> Dict[str, Any]:
        row = await retry_read(self.db.get_antispam_settings, guild_id)
        return dict(row) if row else {}

    async def _invalidate(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except TransientStoreError as e:
            logger.warning("Settings Cache Invalidation Failed", [
                ("Key", key),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Guild Settings
    # =========================================================================

    async def get_settings(self, guild_id: int) -> GuildSettings:
        record = await self._load_settings(guild_id)
        return GuildSettings.from_record(guild_id, record)

    async def update_settings(self, guild_id: int, **fields: Any) -> GuildSettings:
        """
        Validate and store settings, then drop the cached copy.

        Raises:
            ValidationError: Unknown field or bad value (nothing written).
            TransientStoreError: Database write failed.
        """
        self._write_settings(guild_id, **fields)
        await self._invalidate(settings_key(guild_id))
        return await self.get_settings(guild_id)

    async def set_field(self, guild_id: int, field: str, raw_value: str) -> GuildSettings:
        column = resolve_field(field)
        if column == "panel_message_id":
            raise ValidationError("`panel_message_id` is managed by `/panel setup`.")
        return await self.update_settings(guild_id, **{column: parse_field_value(column, raw_value)})

    async def clear_field(self, guild_id: int, field: str) -> GuildSettings:
        column = resolve_field(field)
        return await self.update_settings(guild_id, **{column: None})

    # =========================================================================
    # Anti-Spam Thresholds
    # =========================================================================

    async def get_thresholds(self, guild_id: int) -> SpamThresholds:
        """Guild overrides merged over the environment defaults."""
        try:
            row = await self._load_thresholds(guild_id)
        except TransientStoreError as e:
            logger.warning("Threshold Lookup Failed, Using Defaults", [
                ("Guild ID", str(guild_id)),
                ("Error", str(e)[:100]),
            ])
            return self.default_thresholds
        return SpamThresholds.merge(row, self.default_thresholds)

    async def update_thresholds(self, guild_id: int, **fields: Any) -> SpamThresholds:
        fields = {k: v for k, v in fields.items() if v is not None}
        self._write_thresholds(guild_id, **fields)
        await self._invalidate(antispam_settings_key(guild_id))
        return await self.get_thresholds(guild_id)

    async def reset_thresholds(self, guild_id: int) -> bool:
        removed = self.db.delete_antispam_settings(guild_id)
        await self._invalidate(antispam_settings_key(guild_id))
        return removed


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "SettingsService",
    "GuildSettings",
    "FIELD_ALIASES",
    "resolve_field",
    "parse_field_value",
]
