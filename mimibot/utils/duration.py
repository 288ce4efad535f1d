"""
MimiBot - Duration Utilities
============================

Parse and format durations in milliseconds, the unit the anti-spam system
stores everything in.

Usage:
    from mimibot.utils.duration import parse_duration_ms, format_duration_ms

    parse_duration_ms("1d12h")    # 129600000
    parse_duration_ms("10")       # 10000 (bare numbers are seconds)
    format_duration_ms(90_000)    # "1m 30s"

Author: MimiDLC
"""

import re
from typing import Optional


# =============================================================================
# Time Constants
# =============================================================================

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
MS_PER_WEEK = 7 * MS_PER_DAY

TIME_UNIT_ALIASES = {
    "week": "w", "weeks": "w", "wk": "w",
    "day": "d", "days": "d",
    "hour": "h", "hours": "h", "hr": "h", "hrs": "h",
    "minute": "m", "minutes": "m", "min": "m", "mins": "m",
    "second": "s", "seconds": "s", "sec": "s", "secs": "s",
}

_COMBINED = re.compile(r"(?:(\d+)w)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?")


# =============================================================================
# Parsing
# =============================================================================

def _normalize(text: str) -> str:
    result = text.lower().strip()
    result = re.sub(r"(\d+)\s+", r"\1", result)
    for word, short in sorted(TIME_UNIT_ALIASES.items(), key=lambda x: -len(x[0])):
        result = re.sub(rf"(?<=\d){word}\b", short, result)
    return result.replace(" ", "")


def parse_duration_ms(text: Optional[str]) -> Optional[int]:
    """
    Parse "10s", "5m", "1d12h", "2 hours" or a bare number of seconds.

    Returns:
        Milliseconds, or None if the text is empty or not a duration.
    """
    if not text:
        return None

    normalized = _normalize(text)
    if normalized.isdigit():
        value = int(normalized) * MS_PER_SECOND
        return value if value > 0 else None

    match = _COMBINED.fullmatch(normalized)
    if not match or not any(match.groups()):
        return None

    weeks, days, hours, minutes, seconds = (int(g or 0) for g in match.groups())
    total = (
        weeks * MS_PER_WEEK
        + days * MS_PER_DAY
        + hours * MS_PER_HOUR
        + minutes * MS_PER_MINUTE
        + seconds * MS_PER_SECOND
    )
    return total if total > 0 else None


# =============================================================================
# Formatting
# =============================================================================

def format_duration_ms(ms: Optional[int]) -> str:
    """
    Compact human-readable duration: "1d 2h", "45m", "30s".

    Sub-second remainders are dropped; anything under a second is "0s".
    """
    if not ms or ms < MS_PER_SECOND:
        return "0s"

    days, rest = divmod(int(ms), MS_PER_DAY)
    hours, rest = divmod(rest, MS_PER_HOUR)
    minutes, rest = divmod(rest, MS_PER_MINUTE)
    seconds = rest // MS_PER_SECOND

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds and not days:
        parts.append(f"{seconds}s")

    return " ".join(parts) if parts else "0s"


__all__ = ["parse_duration_ms", "format_duration_ms"]
