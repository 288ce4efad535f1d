"""
MimiBot - Route Helpers
=======================

Author: MimiDLC
"""

from mimibot.core.errors import ValidationError


def parse_id(raw: str) -> int:
    """Integer part of a custom id; a malformed id is a ValidationError."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("This button is no longer valid.") from None


__all__ = ["parse_id"]
