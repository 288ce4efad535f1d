"""
Anti-Spam Punishment Store
==========================

Active punishment windows per (guild, subject), cache first with the
database as the durable fallback.

DESIGN:
    Cache key punishment:{guild_id}:{subject_id} holds
    {"punished_until": ms, "offense_count": n} with a TTL that mirrors
    punished_until. The punishments table keeps the same data so a restart
    or a second process still sees it, and keeps the offense count after
    the window ends so repeat offenses can escalate.

    A punishment is active iff now < punished_until.

    The store fails open: a cache error is logged and the database is used
    alone; a database error on a read is logged and the subject is treated
    as unpunished. Message handling never waits on a dead store.
"""

from typing import Optional, Tuple

from mimibot.core.cache import CacheStore, punishment_key
from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger
from mimibot.utils.retry import retry_read

from .models import PunishmentState


class PunishmentStore:
    """Cache-first punishment state with durable fallback."""

    def __init__(self, cache: CacheStore, db, config) -> None:
        self.cache = cache
        self.db = db
        self.config = config

    # =========================================================================
    # Cache Helpers (fail open)
    # =========================================================================

    async def _cache_get(self, key: str) -> Tuple[Optional[dict], bool]:
        """Returns (entry, cache_ok)."""
        try:
            entry = await self.cache.get_json(key)
        except TransientStoreError as e:
            logger.warning("Punishment Cache Unavailable", [
                ("Key", key),
                ("Error", str(e)[:100]),
            ])
            return None, False
        if entry is not None and not isinstance(entry, dict):
            return None, True
        return entry, True

    async def _cache_set(self, key: str, until: int, offense_count: int, now: int) -> None:
        ttl = (until - now) / 1000
        if ttl <= 0:
            return
        try:
            await self.cache.set_json(
                key,
                {"punished_until": until, "offense_count": offense_count},
                ttl,
            )
        except TransientStoreError as e:
            logger.warning("Punishment Cache Write Failed", [
                ("Key", key),
                ("Error", str(e)[:100]),
            ])

    async def _cache_delete(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except TransientStoreError as e:
            logger.warning("Punishment Cache Delete Failed", [
                ("Key", key),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Read Path
    # =========================================================================

    async def get_punishment(self, guild_id: int, subject_id: int, now: int) -> Optional[PunishmentState]:
        """
        Current punishment for a subject, or None.

        Cache hit: active if now < punished_until, otherwise the entry is
        deleted. Cache miss: the durable row is consulted and, if still
        active, written back to the cache with the remaining TTL.
        """
        key = punishment_key(guild_id, subject_id)
        entry, cache_ok = await self._cache_get(key)

        if entry is not None:
            until = int(entry.get("punished_until") or 0)
            if now < until:
                return PunishmentState(subject_id, guild_id, until, int(entry.get("offense_count") or 1))
            await self._cache_delete(key)
            return None

        try:
            row = await retry_read(self.db.get_punishment_row, guild_id, subject_id)
        except TransientStoreError as e:
            logger.warning("Punishment Lookup Failed", [
                ("Guild ID", str(guild_id)),
                ("Subject ID", str(subject_id)),
                ("Error", str(e)[:100]),
            ])
            return None

        if not row or now >= row["punished_until"]:
            return None

        state = PunishmentState(subject_id, guild_id, row["punished_until"], row["offense_count"])
        if cache_ok:
            await self._cache_set(key, state.punished_until, state.offense_count, now)
        return state

    # =========================================================================
    # Write Path
    # =========================================================================

    def compute_until(self, guild_id: int, subject_id: int, now: int, base_duration_ms: int) -> Tuple[int, int]:
        """
        Work out (punished_until, offense_count) for a new offense.

        duration = base * multiplier ** (offense_count - 1), capped at the
        platform maximum. The count restarts at 1 once the previous
        punishment ended more than the reset window ago. With the default
        multiplier of 1.0 every offense gets the base duration.
        """
        reset_ms = self.config.antispam_escalation_reset_hours * 3600 * 1000

        offense_count = 1
        try:
            row = self.db.get_punishment_row(guild_id, subject_id)
        except TransientStoreError:
            row = None
        if row and now - row["punished_until"] <= reset_ms:
            offense_count = row["offense_count"] + 1

        multiplier = self.config.antispam_escalation_multiplier
        duration = int(base_duration_ms * (multiplier ** (offense_count - 1)))
        duration = max(1, min(duration, self.config.antispam_max_timeout_ms))
        return now + duration, offense_count

    async def punish(
        self,
        guild_id: int,
        subject_id: int,
        until: int,
        offense_count: int,
        now: int,
        reason: Optional[str] = None,
    ) -> PunishmentState:
        """
        Record a punishment in the database, then the cache.

        Raises:
            TransientStoreError: If the durable write fails.
        """
        self.db.upsert_punishment(guild_id, subject_id, until, offense_count, now, reason)
        await self._cache_set(punishment_key(guild_id, subject_id), until, offense_count, now)

        logger.tree("Punishment Recorded", [
            ("Guild ID", str(guild_id)),
            ("Subject ID", str(subject_id)),
            ("Offense", f"#{offense_count}"),
            ("Duration", f"{(until - now) // 1000}s"),
        ], emoji="⛔")

        return PunishmentState(subject_id, guild_id, until, offense_count)

    async def clear_expired(self, guild_id: int, subject_id: int, now: int) -> bool:
        """Drop the cache entry if its window has ended. True if one was dropped."""
        key = punishment_key(guild_id, subject_id)
        entry, _ = await self._cache_get(key)
        if entry is None:
            return False
        if now < int(entry.get("punished_until") or 0):
            return False
        await self._cache_delete(key)
        return True

    async def clear(self, guild_id: int, subject_id: int, now: int) -> None:
        """End a punishment early (appeal approved, timeout lifted by hand)."""
        await self._cache_delete(punishment_key(guild_id, subject_id))
        try:
            self.db.end_punishment(guild_id, subject_id, now)
        except TransientStoreError as e:
            logger.warning("Punishment Clear Failed", [
                ("Guild ID", str(guild_id)),
                ("Subject ID", str(subject_id)),
                ("Error", str(e)[:100]),
            ])
            return

        logger.tree("Punishment Cleared", [
            ("Guild ID", str(guild_id)),
            ("Subject ID", str(subject_id)),
        ], emoji="✅")

    def prune_history(self, now: int) -> int:
        """Delete durable rows too old to count toward escalation."""
        reset_ms = self.config.antispam_escalation_reset_hours * 3600 * 1000
        return self.db.delete_stale_punishments(now - reset_ms)


__all__ = ["PunishmentStore"]
