"""
MimiBot - Configuration Module
==============================

Process-wide configuration loaded from environment variables.

DESIGN:
    Anything that varies per guild (staff role, ticket category, spam
    thresholds) lives in the database. The environment only carries the
    token, storage locations and the defaults used when a guild has not
    configured something yet.

    - get_config() returns one Config instance per process
    - Validation happens once at load time
    - Permission helpers centralize staff/admin checks

Author: MimiDLC
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Set

from mimibot.core.logger import LOCAL_TZ


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        developer_id: User ID of the bot developer (bypasses staff checks).
        database_path: SQLite file path.
        redis_url: Redis connection URL; in-process cache when unset.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Identity
    # -------------------------------------------------------------------------

    developer_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # Optional: Storage
    # -------------------------------------------------------------------------

    database_path: str = "data/mimi.db"
    redis_url: Optional[str] = None
    cache_default_ttl: int = 3600
    settings_cache_ttl: int = 600

    # -------------------------------------------------------------------------
    # Optional: Anti-Spam Defaults (milliseconds)
    # -------------------------------------------------------------------------

    antispam_message_threshold: int = 5
    antispam_time_window_ms: int = 10_000
    antispam_multi_channel_threshold: int = 6
    antispam_multi_channel_window_ms: int = 12_000
    antispam_timeout_duration_ms: int = 86_400_000
    antispam_escalation_multiplier: float = 1.0  # 1.0 = flat duration
    antispam_escalation_reset_hours: int = 24
    antispam_max_timeout_ms: int = 28 * 86_400_000  # Discord's timeout ceiling
    antispam_ignored_user_ids: Set[int] = field(default_factory=set)
    antispam_ignored_role_ids: Set[int] = field(default_factory=set)

    # -------------------------------------------------------------------------
    # Optional: Side Effects
    # -------------------------------------------------------------------------

    dispatch_timeout: float = 10.0
    ticket_delete_delay: int = 5  # seconds before deleting an unarchived channel

    # -------------------------------------------------------------------------
    # Optional: Webhooks
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for Discord embeds."""

    PINK = 0xF4A7C0     # Brand / panels
    GREEN = 0x2ECC71    # Success
    GOLD = 0xE6B84A     # Warnings
    RED = 0xDC3545      # Failures, spam timeouts
    BLUE = 0x3498DB     # Informational logs
    PURPLE = 0x9B59B6   # Appeals

    SUCCESS = GREEN
    ERROR = RED
    WARNING = GOLD
    INFO = BLUE

    TICKET_OPEN = GREEN
    TICKET_CLAIMED = GOLD
    TICKET_CLOSED = RED
    APPEAL = PURPLE
    SPAM = RED


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_set(value: Optional[str]) -> Set[int]:
    """Parse comma-separated IDs ("123,456") into a set, skipping junk."""
    if not value:
        return set()
    result = set()
    for part in value.split(","):
        part = part.strip()
        if part:
            try:
                result.add(int(part))
            except ValueError:
                pass
    return result


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range clamping.

    Returns:
        Parsed integer within valid range, or default.
    """
    from mimibot.core.logger import logger

    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_float_with_default(
    value: Optional[str],
    default: float,
    name: str,
    min_val: Optional[float] = None,
) -> float:
    from mimibot.core.logger import logger

    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    if not value:
        return None
    if not value.startswith(("https://", "http://", "redis://", "rediss://", "unix://")):
        from mimibot.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigValidationError: If any required variable is missing or invalid.
    """
    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        raise ConfigValidationError("Missing required environment variables: DISCORD_TOKEN")

    return Config(
        discord_token=discord_token,
        developer_id=_parse_int_optional(os.getenv("DEVELOPER_ID")),
        database_path=os.getenv("DATABASE_PATH", "data/mimi.db"),
        redis_url=_validate_url(os.getenv("REDIS_URL"), "REDIS_URL"),
        cache_default_ttl=_parse_int_with_default(
            os.getenv("CACHE_DEFAULT_TTL"), 3600, "CACHE_DEFAULT_TTL", min_val=1
        ),
        settings_cache_ttl=_parse_int_with_default(
            os.getenv("SETTINGS_CACHE_TTL"), 600, "SETTINGS_CACHE_TTL", min_val=1
        ),
        antispam_message_threshold=_parse_int_with_default(
            os.getenv("ANTISPAM_MESSAGE_THRESHOLD"), 5, "ANTISPAM_MESSAGE_THRESHOLD", min_val=2, max_val=100
        ),
        antispam_time_window_ms=_parse_int_with_default(
            os.getenv("ANTISPAM_TIME_WINDOW_MS"), 10_000, "ANTISPAM_TIME_WINDOW_MS", min_val=1000
        ),
        antispam_multi_channel_threshold=_parse_int_with_default(
            os.getenv("ANTISPAM_MULTI_CHANNEL_THRESHOLD"), 6, "ANTISPAM_MULTI_CHANNEL_THRESHOLD", min_val=2, max_val=100
        ),
        antispam_multi_channel_window_ms=_parse_int_with_default(
            os.getenv("ANTISPAM_MULTI_CHANNEL_WINDOW_MS"), 12_000, "ANTISPAM_MULTI_CHANNEL_WINDOW_MS", min_val=1000
        ),
        antispam_timeout_duration_ms=_parse_int_with_default(
            os.getenv("ANTISPAM_TIMEOUT_DURATION_MS"), 86_400_000, "ANTISPAM_TIMEOUT_DURATION_MS", min_val=1000
        ),
        antispam_escalation_multiplier=_parse_float_with_default(
            os.getenv("ANTISPAM_ESCALATION_MULTIPLIER"), 1.0, "ANTISPAM_ESCALATION_MULTIPLIER", min_val=1.0
        ),
        antispam_escalation_reset_hours=_parse_int_with_default(
            os.getenv("ANTISPAM_ESCALATION_RESET_HOURS"), 24, "ANTISPAM_ESCALATION_RESET_HOURS", min_val=0
        ),
        antispam_max_timeout_ms=_parse_int_with_default(
            os.getenv("ANTISPAM_MAX_TIMEOUT_MS"), 28 * 86_400_000, "ANTISPAM_MAX_TIMEOUT_MS",
            min_val=1000, max_val=28 * 86_400_000,
        ),
        antispam_ignored_user_ids=_parse_int_set(os.getenv("ANTISPAM_IGNORED_USER_IDS")),
        antispam_ignored_role_ids=_parse_int_set(os.getenv("ANTISPAM_IGNORED_ROLE_IDS")),
        dispatch_timeout=_parse_float_with_default(
            os.getenv("DISPATCH_TIMEOUT"), 10.0, "DISPATCH_TIMEOUT", min_val=1.0
        ),
        ticket_delete_delay=_parse_int_with_default(
            os.getenv("TICKET_DELETE_DELAY"), 5, "TICKET_DELETE_DELAY", min_val=0, max_val=3600
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached Config so the next get_config() reloads it."""
    global _config
    _config = None


# =============================================================================
# Config Validation & Logging
# =============================================================================

def validate_and_log_config() -> None:
    """
    Validate configuration and log a summary at startup.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from mimibot.core.logger import logger

    config = get_config()

    if config.error_webhook_url:
        logger.set_webhook(config.error_webhook_url)
    else:
        logger.info("Optional config not set: ERROR_WEBHOOK_URL (errors stay in the log files)")

    if not config.redis_url:
        logger.info("Optional config not set: REDIS_URL (using in-process cache)")

    escalation = (
        "Flat" if config.antispam_escalation_multiplier == 1.0
        else f"x{config.antispam_escalation_multiplier}"
    )

    logger.tree("Configuration Validated", [
        ("Required", "✅ All required variables set"),
        ("Database", config.database_path),
        ("Cache", "Redis" if config.redis_url else "Memory"),
        ("Spam Single", f"{config.antispam_message_threshold} msgs / {config.antispam_time_window_ms}ms"),
        ("Spam Multi", f"{config.antispam_multi_channel_threshold} channels / {config.antispam_multi_channel_window_ms}ms"),
        ("Escalation", escalation),
    ], emoji="⚙️")


# =============================================================================
# Permission Helpers
# =============================================================================

def is_developer(user_id: int) -> bool:
    return user_id == get_config().developer_id


def is_admin(member) -> bool:
    """True if member is the developer or has Administrator / Manage Server."""
    if member is None:
        return False
    if is_developer(member.id):
        return True
    perms = getattr(member, "guild_permissions", None)
    if perms is None:
        return False
    return bool(perms.administrator or perms.manage_guild)


def has_staff_role(member, staff_role_id: Optional[int]) -> bool:
    """
    Check if a member may act as ticket staff.

    Args:
        member: Discord member object to check.
        staff_role_id: The guild's configured staff role, if any.

    Returns:
        True for admins and for holders of the staff role.
    """
    if member is None:
        return False
    if is_admin(member):
        return True
    if staff_role_id is None:
        return False
    return any(role.id == staff_role_id for role in getattr(member, "roles", []))


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "LOCAL_TZ",
    "load_config",
    "get_config",
    "reset_config",
    "validate_and_log_config",
    "is_developer",
    "is_admin",
    "has_staff_role",
]
