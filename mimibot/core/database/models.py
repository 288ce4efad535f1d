"""
MimiBot - Database Models
=========================

TypedDict definitions for rows returned by the database mixins.

Author: MimiDLC
"""

from typing import Optional, TypedDict


# =============================================================================
# Tickets
# =============================================================================

class TicketRecord(TypedDict, total=False):
    """A support ticket."""
    id: int
    guild_id: int
    guild_ticket_id: int
    owner_id: int
    channel_id: Optional[int]
    status: str  # 'open', 'claimed', 'closed'
    claimed_by: Optional[int]
    claimed_at: Optional[float]
    closed_by: Optional[int]
    close_reason: Optional[str]
    category: Optional[str]
    resolution: Optional[str]
    rating: Optional[int]
    feedback: Optional[str]
    open_reason: Optional[str]
    ticket_type: Optional[str]
    log_message_id: Optional[int]
    transcript_url: Optional[str]
    created_at: float
    closed_at: Optional[float]


class TicketStatsRecord(TypedDict):
    total: int
    open: int
    claimed: int
    closed: int
    avg_rating: Optional[float]


class TicketTypeRecord(TypedDict):
    """A panel option such as "billing" or "report"."""
    type_id: str
    label: str
    emoji: Optional[str]


# =============================================================================
# Guild Settings
# =============================================================================

class GuildSettingsRecord(TypedDict, total=False):
    """Per-guild configuration."""
    guild_id: int
    staff_role_id: Optional[int]
    ticket_category_id: Optional[int]
    log_channel_id: Optional[int]
    panel_channel_id: Optional[int]
    archive_category_id: Optional[int]
    antispam_log_channel_id: Optional[int]
    panel_title: Optional[str]
    panel_description: Optional[str]
    panel_thumbnail_url: Optional[str]
    panel_message_id: Optional[int]
    updated_at: Optional[float]


class AntiSpamSettingsRecord(TypedDict, total=False):
    """Per-guild spam thresholds. NULL columns fall back to config defaults."""
    guild_id: int
    message_threshold: Optional[int]
    time_window_ms: Optional[int]
    multi_channel_threshold: Optional[int]
    multi_channel_window_ms: Optional[int]
    timeout_duration_ms: Optional[int]
    updated_at: Optional[float]


# =============================================================================
# Punishments
# =============================================================================

class PunishmentRecord(TypedDict):
    """Durable copy of a spam punishment window (times in epoch ms)."""
    guild_id: int
    subject_id: int
    punished_until: int
    offense_count: int
    reason: Optional[str]
    created_at: int


__all__ = [
    "TicketRecord",
    "TicketStatsRecord",
    "TicketTypeRecord",
    "GuildSettingsRecord",
    "AntiSpamSettingsRecord",
    "PunishmentRecord",
]
