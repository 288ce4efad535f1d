"""
MimiBot - Spam Evaluator Tests
==============================

Pure verdict logic over sliding windows.
"""

from mimibot.services.antispam.evaluator import describe, evaluate, prune_window
from mimibot.services.antispam.models import SpamEvent, SpamThresholds, Verdict


THRESHOLDS = SpamThresholds(
    message_threshold=5,
    time_window_ms=10_000,
    multi_channel_threshold=6,
    multi_channel_window_ms=12_000,
    timeout_duration_ms=60_000,
)

SUBJECT = 42


def _feed(events):
    """Evaluate after each event, the way the service does."""
    window = []
    verdicts = []
    for channel_id, ts in events:
        window.append(SpamEvent(SUBJECT, channel_id, ts))
        window = prune_window(window, ts, THRESHOLDS)
        verdicts.append(evaluate(SUBJECT, channel_id, ts, window, THRESHOLDS))
    return verdicts


class TestSingleChannel:

    def test_fifth_message_in_window_is_spam(self):
        verdicts = _feed([(1, 1000 * i) for i in range(5)])
        assert verdicts[:4] == [Verdict.CLEAN] * 4
        assert verdicts[4] is Verdict.SINGLE_CHANNEL_SPAM

    def test_spread_out_messages_are_clean(self):
        verdicts = _feed([(1, 3000 * i) for i in range(5)])
        assert all(v is Verdict.CLEAN for v in verdicts)

    def test_window_edge_is_inclusive(self):
        # First event exactly time_window_ms before the fifth still counts
        events = [(1, 0), (1, 2500), (1, 5000), (1, 7500), (1, 10_000)]
        assert _feed(events)[-1] is Verdict.SINGLE_CHANNEL_SPAM

    def test_other_subjects_are_ignored(self):
        window = [SpamEvent(7, 1, 100 * i) for i in range(10)]
        window.append(SpamEvent(SUBJECT, 1, 1000))
        assert evaluate(SUBJECT, 1, 1000, window, THRESHOLDS) is Verdict.CLEAN


class TestMultiChannel:

    def test_sixth_distinct_channel_is_spam(self):
        verdicts = _feed([(100 + i, 2000 * i) for i in range(6)])
        assert verdicts[:5] == [Verdict.CLEAN] * 5
        assert verdicts[5] is Verdict.MULTI_CHANNEL_SPAM

    def test_channels_outside_window_do_not_count(self):
        verdicts = _feed([(100 + i, 3000 * i) for i in range(6)])
        assert verdicts[5] is Verdict.CLEAN

    def test_single_channel_rule_wins(self):
        # Five in channel 1 and six channels overall at the same instant
        window = [SpamEvent(SUBJECT, 1, 1000) for _ in range(5)]
        window += [SpamEvent(SUBJECT, c, 1000) for c in range(2, 7)]
        assert evaluate(SUBJECT, 1, 1000, window, THRESHOLDS) is Verdict.SINGLE_CHANNEL_SPAM


class TestHelpers:

    def test_prune_drops_events_past_horizon(self):
        window = [SpamEvent(SUBJECT, 1, 0), SpamEvent(SUBJECT, 1, 5000)]
        pruned = prune_window(window, 12_001, THRESHOLDS)
        assert pruned == [SpamEvent(SUBJECT, 1, 5000)]

    def test_describe_multi_channel_counts_channels(self):
        window = [SpamEvent(SUBJECT, c, 1000) for c in range(6)]
        text = describe(Verdict.MULTI_CHANNEL_SPAM, window, 1000, THRESHOLDS)
        assert "6 channels" in text

    def test_verdict_is_spam(self):
        assert not Verdict.CLEAN.is_spam
        assert Verdict.SINGLE_CHANNEL_SPAM.is_spam
        assert Verdict.MULTI_CHANNEL_SPAM.is_spam

    def test_thresholds_merge_prefers_row_values(self):
        merged = SpamThresholds.merge({"message_threshold": 3, "time_window_ms": None}, THRESHOLDS)
        assert merged.message_threshold == 3
        assert merged.time_window_ms == THRESHOLDS.time_window_ms
        assert SpamThresholds.merge(None, THRESHOLDS) is THRESHOLDS
