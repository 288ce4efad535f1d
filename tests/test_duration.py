"""
Tests for mimibot/utils/duration.py

Covers parsing and formatting of the durations used by /config antispam.
"""

import pytest

from mimibot.utils.duration import (
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
    format_duration_ms,
    parse_duration_ms,
)


# =============================================================================
# parse_duration_ms() Tests
# =============================================================================

class TestParseDuration:

    @pytest.mark.parametrize("text, expected", [
        ("30s", 30 * MS_PER_SECOND),
        ("5m", 5 * MS_PER_MINUTE),
        ("6h", 6 * MS_PER_HOUR),
        ("7d", 7 * MS_PER_DAY),
        ("2w", 14 * MS_PER_DAY),
    ])
    def test_single_unit(self, text, expected):
        assert parse_duration_ms(text) == expected

    def test_combined_units(self):
        assert parse_duration_ms("1d12h") == MS_PER_DAY + 12 * MS_PER_HOUR
        assert parse_duration_ms("1h30m") == MS_PER_HOUR + 30 * MS_PER_MINUTE

    def test_word_units(self):
        assert parse_duration_ms("2 hours") == 2 * MS_PER_HOUR
        assert parse_duration_ms("10 min") == 10 * MS_PER_MINUTE
        assert parse_duration_ms("1 minute 30 seconds") == 90 * MS_PER_SECOND

    def test_bare_number_is_seconds(self):
        assert parse_duration_ms("45") == 45 * MS_PER_SECOND

    def test_case_and_whitespace(self):
        assert parse_duration_ms("  10S ") == 10 * MS_PER_SECOND

    @pytest.mark.parametrize("text", [None, "", "soon", "0", "0s", "5x", "m5"])
    def test_invalid(self, text):
        assert parse_duration_ms(text) is None


# =============================================================================
# format_duration_ms() Tests
# =============================================================================

class TestFormatDuration:

    def test_seconds(self):
        assert format_duration_ms(30 * MS_PER_SECOND) == "30s"

    def test_minutes_and_seconds(self):
        assert format_duration_ms(90 * MS_PER_SECOND) == "1m 30s"

    def test_days_drop_seconds(self):
        assert format_duration_ms(MS_PER_DAY + 2 * MS_PER_HOUR + 5 * MS_PER_SECOND) == "1d 2h"

    def test_under_a_second(self):
        assert format_duration_ms(None) == "0s"
        assert format_duration_ms(500) == "0s"

    def test_round_trip_of_common_values(self):
        for text in ("10s", "12s", "10m", "1h", "1d"):
            assert format_duration_ms(parse_duration_ms(text)) == text
