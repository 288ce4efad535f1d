"""
Anti-Spam Rate/Threshold Evaluator
==================================

Pure spam decision over a subject's recent events.

RULES (fixed priority, first match wins):
    1. Single-channel burst: events in the current channel with
       now - ts <= time_window_ms, count >= message_threshold.
    2. Multi-channel spread: distinct channels among events with
       now - ts <= multi_channel_window_ms, count >= multi_channel_threshold.
    3. Otherwise CLEAN.

The caller appends the newest event before evaluating and prunes with
prune_window() to bound memory. Nothing here touches I/O.
"""

from typing import Iterable, List

from .models import SpamEvent, SpamThresholds, Verdict


def evaluate(
    subject_id: int,
    channel_id: int,
    now: int,
    window: Iterable[SpamEvent],
    thresholds: SpamThresholds,
) -> Verdict:
    events = [e for e in window if e.subject_id == subject_id]

    same_channel = sum(
        1 for e in events
        if e.channel_id == channel_id and now - e.timestamp <= thresholds.time_window_ms
    )
    if same_channel >= thresholds.message_threshold:
        return Verdict.SINGLE_CHANNEL_SPAM

    if _distinct_channels(events, now, thresholds) >= thresholds.multi_channel_threshold:
        return Verdict.MULTI_CHANNEL_SPAM

    return Verdict.CLEAN


def prune_window(window: Iterable[SpamEvent], now: int, thresholds: SpamThresholds) -> List[SpamEvent]:
    """Keep only events young enough to matter to either rule."""
    horizon = thresholds.horizon_ms
    return [e for e in window if now - e.timestamp <= horizon]


def describe(
    verdict: Verdict,
    window: Iterable[SpamEvent],
    now: int,
    thresholds: SpamThresholds,
) -> str:
    """Human-readable reason for a verdict, used in notices and logs."""
    if verdict is Verdict.SINGLE_CHANNEL_SPAM:
        return "Fast single-channel spam"
    if verdict is Verdict.MULTI_CHANNEL_SPAM:
        return f"Multi-channel spam ({_distinct_channels(window, now, thresholds)} channels)"
    return "Clean"


def _distinct_channels(window: Iterable[SpamEvent], now: int, thresholds: SpamThresholds) -> int:
    return len({
        e.channel_id for e in window
        if now - e.timestamp <= thresholds.multi_channel_window_ms
    })


__all__ = ["evaluate", "prune_window", "describe"]
