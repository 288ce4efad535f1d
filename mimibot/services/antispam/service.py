"""
MimiBot - Anti-Spam Service
===========================

Per-subject sliding windows, punishment bookkeeping and the Discord
response to a spam verdict.

DESIGN:
    Each (guild, subject) has its own asyncio.Lock, held from the
    punishment lookup through the punishment write, so one subject's
    messages are handled in arrival order and a burst cannot produce two
    punishments. Different subjects never wait on each other.

    Discord notifications (timeout, notice, DM, log) run after the lock is
    released and are best-effort.

Author: MimiDLC
"""

import asyncio
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import discord

from mimibot.core.cache import MemoryCache
from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger
from mimibot.utils.async_utils import create_safe_task

from .appeals import AppealMixin
from .constants import MAX_TRACKED_SUBJECTS, RECONCILE_GRACE_MS, WINDOW_CLEANUP_INTERVAL
from .evaluator import describe, evaluate, prune_window
from .handlers import SpamHandlerMixin
from .models import PunishmentState, SpamEvent, SpamOutcome, Verdict
from .punishments import PunishmentStore

if TYPE_CHECKING:
    from mimibot.bot import MimiBot
    from mimibot.services.settings import SettingsService


SubjectKey = Tuple[int, int]


def now_ms() -> int:
    return int(time.time() * 1000)


class AntiSpamService(SpamHandlerMixin, AppealMixin):
    """Message-rate spam detection with timeouts and appeals."""

    def __init__(
        self,
        bot: "MimiBot",
        settings: "SettingsService",
        punishments: PunishmentStore,
        config,
    ) -> None:
        self.bot = bot
        self.settings = settings
        self.punishments = punishments
        self.config = config

        self._windows: Dict[SubjectKey, List[SpamEvent]] = {}
        self._locks: Dict[SubjectKey, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._horizons: Dict[int, int] = {}  # guild_id -> longest window seen (ms)
        self._punished_at: Dict[SubjectKey, int] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

        logger.tree("Anti-Spam Service Loaded", [
            ("Single Channel", f"{config.antispam_message_threshold} msgs / {config.antispam_time_window_ms}ms"),
            ("Multi Channel", f"{config.antispam_multi_channel_threshold} ch / {config.antispam_multi_channel_window_ms}ms"),
            ("Timeout", f"{config.antispam_timeout_duration_ms}ms"),
            ("Escalation", f"x{config.antispam_escalation_multiplier}"),
            ("Ignored Users", str(len(config.antispam_ignored_user_ids))),
            ("Ignored Roles", str(len(config.antispam_ignored_role_ids))),
        ], emoji="🛡️")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = create_safe_task(self._cleanup_loop(), "Anti-Spam Cleanup Loop")

    async def stop(self) -> None:
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(WINDOW_CLEANUP_INTERVAL)
            try:
                self.cleanup_windows(now_ms())
                pruned = self.punishments.prune_history(now_ms())
                if pruned:
                    logger.debug("Punishment History Pruned", [("Rows", str(pruned))])
                if isinstance(self.punishments.cache, MemoryCache):
                    self.punishments.cache.cleanup_expired()
            except TransientStoreError as e:
                logger.warning("Anti-Spam Cleanup Error", [("Error", str(e)[:100])])

    def cleanup_windows(self, now: int) -> int:
        """Drop windows whose newest event is past the guild's horizon."""
        default_horizon = max(self.config.antispam_time_window_ms, self.config.antispam_multi_channel_window_ms)
        removed = 0

        for key, window in list(self._windows.items()):
            horizon = self._horizons.get(key[0], default_horizon)
            if not window or now - window[-1].timestamp > horizon:
                self._windows.pop(key, None)
                removed += 1

        if len(self._windows) > MAX_TRACKED_SUBJECTS:
            oldest = sorted(self._windows.items(), key=lambda kv: kv[1][-1].timestamp if kv[1] else 0)
            for key, _ in oldest[:len(self._windows) - MAX_TRACKED_SUBJECTS]:
                self._windows.pop(key, None)
                removed += 1

        for key, punished_at in list(self._punished_at.items()):
            if now - punished_at >= RECONCILE_GRACE_MS:
                del self._punished_at[key]

        # Locks with queued waiters are kept
        for key, lock in list(self._locks.items()):
            if key not in self._windows and not lock.locked() and not getattr(lock, "_waiters", None):
                del self._locks[key]

        if removed:
            logger.debug("Anti-Spam Windows Pruned", [("Removed", str(removed))])
        return removed

    # =========================================================================
    # Exemptions
    # =========================================================================

    def is_exempt(self, message: discord.Message) -> bool:
        """
        Bots, DMs, webhooks, ignored users, ignored roles and admins are
        never evaluated.
        """
        if message.guild is None or message.author.bot or message.webhook_id:
            return True

        if message.author.id in self.config.antispam_ignored_user_ids:
            return True

        roles = getattr(message.author, "roles", None) or []
        if any(role.id in self.config.antispam_ignored_role_ids for role in roles):
            return True

        perms = getattr(message.author, "guild_permissions", None)
        if perms is not None and perms.administrator:
            return True

        return False

    @staticmethod
    def _discord_timed_out(member) -> Optional[bool]:
        """True/False from Discord's view, None when the member is unknown."""
        if not hasattr(member, "timed_out_until"):
            return None
        until = member.timed_out_until
        if not isinstance(until, datetime):
            return False
        return until > datetime.now(timezone.utc)

    # =========================================================================
    # Processing
    # =========================================================================

    async def process_event(
        self,
        guild_id: int,
        subject_id: int,
        channel_id: int,
        now: int,
        discord_timed_out: Optional[bool] = None,
    ) -> SpamOutcome:
        """
        Record one message and decide what it means.

        Args:
            discord_timed_out: Whether Discord currently shows the member as
                timed out. False while a punishment is recorded means a
                moderator lifted it, so it is cleared.
        """
        key = (guild_id, subject_id)
        async with self._locks[key]:
            thresholds = await self.settings.get_thresholds(guild_id)
            self._horizons[guild_id] = thresholds.horizon_ms

            punishment = await self.punishments.get_punishment(guild_id, subject_id, now)
            settling = now - self._punished_at.get(key, 0) < RECONCILE_GRACE_MS
            if punishment and discord_timed_out is False and not settling:
                logger.tree("Timeout Lifted Manually", [
                    ("Guild ID", str(guild_id)),
                    ("Subject ID", str(subject_id)),
                ], emoji="🔓")
                await self.punishments.clear(guild_id, subject_id, now)
                self._windows.pop(key, None)
                punishment = None

            if punishment:
                return SpamOutcome(Verdict.CLEAN, punishment=punishment, now=now, skipped=True)

            window = self._windows.get(key, [])
            window.append(SpamEvent(subject_id, channel_id, now))
            window = prune_window(window, now, thresholds)
            self._windows[key] = window

            verdict = evaluate(subject_id, channel_id, now, window, thresholds)
            if not verdict.is_spam:
                return SpamOutcome(verdict, now=now)

            reason = describe(verdict, window, now, thresholds)
            self._windows.pop(key, None)

            until, offense_count = self.punishments.compute_until(
                guild_id, subject_id, now, thresholds.timeout_duration_ms
            )
            try:
                state = await self.punishments.punish(guild_id, subject_id, until, offense_count, now, reason)
                self._punished_at[key] = now
            except TransientStoreError as e:
                logger.error("Punishment Write Failed", [
                    ("Guild ID", str(guild_id)),
                    ("Subject ID", str(subject_id)),
                    ("Error", str(e)[:100]),
                ])
                state = PunishmentState(subject_id, guild_id, until, offense_count)

            return SpamOutcome(verdict, reason=reason, punishment=state, now=now)

    async def check_message(self, message: discord.Message) -> SpamOutcome:
        """
        Evaluate a guild message and act on a spam verdict.

        Returns:
            The outcome; skipped is True while the author is still punished.
        """
        if self.is_exempt(message):
            return SpamOutcome(Verdict.CLEAN, now=now_ms())

        outcome = await self.process_event(
            message.guild.id,
            message.author.id,
            message.channel.id,
            now_ms(),
            self._discord_timed_out(message.author),
        )

        if outcome.verdict.is_spam and outcome.punishment:
            await self.handle_spam(message, outcome)

        return outcome


__all__ = ["AntiSpamService", "now_ms"]
