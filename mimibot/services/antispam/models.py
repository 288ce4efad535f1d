"""
Anti-Spam Data Models
=====================

Events, verdicts, thresholds and punishment state. All times are epoch ms.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class SpamEvent:
    """One message by a subject, kept in that subject's sliding window."""
    subject_id: int
    channel_id: int
    timestamp: int


class Verdict(str, Enum):
    CLEAN = "clean"
    SINGLE_CHANNEL_SPAM = "single_channel_spam"
    MULTI_CHANNEL_SPAM = "multi_channel_spam"

    @property
    def is_spam(self) -> bool:
        return self is not Verdict.CLEAN


@dataclass(frozen=True)
class SpamThresholds:
    """Per-guild detection thresholds."""
    message_threshold: int
    time_window_ms: int
    multi_channel_threshold: int
    multi_channel_window_ms: int
    timeout_duration_ms: int

    @property
    def horizon_ms(self) -> int:
        return max(self.time_window_ms, self.multi_channel_window_ms)

    @classmethod
    def from_config(cls, config) -> "SpamThresholds":
        return cls(
            message_threshold=config.antispam_message_threshold,
            time_window_ms=config.antispam_time_window_ms,
            multi_channel_threshold=config.antispam_multi_channel_threshold,
            multi_channel_window_ms=config.antispam_multi_channel_window_ms,
            timeout_duration_ms=config.antispam_timeout_duration_ms,
        )

    @classmethod
    def merge(cls, row: Optional[Mapping[str, Any]], defaults: "SpamThresholds") -> "SpamThresholds":
        """Guild row values where set, defaults elsewhere."""
        if not row:
            return defaults

        def pick(name: str) -> int:
            value = row.get(name)
            return int(value) if value is not None else getattr(defaults, name)

        return cls(
            message_threshold=pick("message_threshold"),
            time_window_ms=pick("time_window_ms"),
            multi_channel_threshold=pick("multi_channel_threshold"),
            multi_channel_window_ms=pick("multi_channel_window_ms"),
            timeout_duration_ms=pick("timeout_duration_ms"),
        )


@dataclass(frozen=True)
class PunishmentState:
    """An active punishment window for one subject in one guild."""
    subject_id: int
    guild_id: int
    punished_until: int
    offense_count: int = 1

    def is_active(self, now: int) -> bool:
        return now < self.punished_until


@dataclass(frozen=True)
class SpamOutcome:
    """Result of processing one message event."""
    verdict: Verdict
    reason: Optional[str] = None
    punishment: Optional[PunishmentState] = None
    now: int = 0
    skipped: bool = False  # subject already punished, message not evaluated
