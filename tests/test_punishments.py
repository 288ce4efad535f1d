"""
MimiBot - Punishment Store Tests
================================

Cache-first punishment state, durable fallback and escalation.
"""

import dataclasses

import pytest

from mimibot.core.cache import RedisCache, punishment_key
from mimibot.services.antispam import PunishmentStore


GUILD = 1
USER = 2
NOW = 1_700_000_000_000
HOUR_MS = 3_600_000


class TestReadPath:

    @pytest.mark.asyncio
    async def test_active_until_window_ends(self, punishment_store):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 1, NOW, "spam")

        state = await punishment_store.get_punishment(GUILD, USER, NOW + 1000)
        assert state is not None
        assert state.punished_until == NOW + 60_000
        assert state.is_active(NOW + 1000)

        assert await punishment_store.get_punishment(GUILD, USER, NOW + 60_000) is None

    @pytest.mark.asyncio
    async def test_cache_miss_falls_back_to_database(self, punishment_store, memory_cache):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 1, NOW)
        await memory_cache.delete(punishment_key(GUILD, USER))

        state = await punishment_store.get_punishment(GUILD, USER, NOW + 5000)
        assert state is not None
        assert state.offense_count == 1
        # Written back for the next lookup
        assert await memory_cache.get_json(punishment_key(GUILD, USER)) is not None

    @pytest.mark.asyncio
    async def test_unknown_subject_is_clean(self, punishment_store):
        assert await punishment_store.get_punishment(GUILD, 999, NOW) is None

    @pytest.mark.asyncio
    async def test_unreachable_cache_fails_open_to_database(self, test_db, mock_config):
        store = PunishmentStore(RedisCache("redis://localhost:6379/0"), test_db, mock_config)

        state = await store.punish(GUILD, USER, NOW + 60_000, 1, NOW)
        assert state.punished_until == NOW + 60_000

        found = await store.get_punishment(GUILD, USER, NOW + 1000)
        assert found is not None
        assert found.punished_until == NOW + 60_000

    @pytest.mark.asyncio
    async def test_clear_ends_punishment_early(self, punishment_store, test_db):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 1, NOW)
        await punishment_store.clear(GUILD, USER, NOW + 1000)

        assert await punishment_store.get_punishment(GUILD, USER, NOW + 2000) is None
        row = test_db.get_punishment_row(GUILD, USER)
        assert row["punished_until"] == NOW + 1000
        assert row["offense_count"] == 1

    @pytest.mark.asyncio
    async def test_clear_expired_only_drops_finished_entries(self, punishment_store):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 1, NOW)
        assert await punishment_store.clear_expired(GUILD, USER, NOW + 1000) is False


class TestEscalation:

    def test_first_offense_gets_base_duration(self, punishment_store):
        until, count = punishment_store.compute_until(GUILD, USER, NOW, 60_000)
        assert until == NOW + 60_000
        assert count == 1

    @pytest.mark.asyncio
    async def test_flat_by_default(self, punishment_store):
        until, count = punishment_store.compute_until(GUILD, USER, NOW, 60_000)
        await punishment_store.punish(GUILD, USER, until, count, NOW)

        later = until + 1000
        until2, count2 = punishment_store.compute_until(GUILD, USER, later, 60_000)
        assert count2 == 2
        assert until2 - later == 60_000

    @pytest.mark.asyncio
    async def test_multiplier_scales_repeat_offenses(self, test_db, memory_cache, mock_config):
        config = dataclasses.replace(mock_config, antispam_escalation_multiplier=2.0)
        store = PunishmentStore(memory_cache, test_db, config)

        await store.punish(GUILD, USER, NOW + 60_000, 1, NOW)
        later = NOW + 120_000
        until, count = store.compute_until(GUILD, USER, later, 60_000)
        assert count == 2
        assert until - later == 120_000

    @pytest.mark.asyncio
    async def test_duration_is_capped(self, test_db, memory_cache, mock_config):
        config = dataclasses.replace(
            mock_config,
            antispam_escalation_multiplier=10.0,
            antispam_max_timeout_ms=100_000,
        )
        store = PunishmentStore(memory_cache, test_db, config)

        await store.punish(GUILD, USER, NOW + 60_000, 3, NOW)
        until, count = store.compute_until(GUILD, USER, NOW + 61_000, 60_000)
        assert count == 4
        assert until - (NOW + 61_000) == 100_000

    @pytest.mark.asyncio
    async def test_count_resets_after_quiet_period(self, punishment_store, mock_config):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 2, NOW)

        quiet = NOW + 60_000 + mock_config.antispam_escalation_reset_hours * HOUR_MS + 1
        _, count = punishment_store.compute_until(GUILD, USER, quiet, 60_000)
        assert count == 1

    @pytest.mark.asyncio
    async def test_prune_history_removes_old_rows(self, punishment_store, test_db, mock_config):
        await punishment_store.punish(GUILD, USER, NOW + 60_000, 1, NOW)

        far = NOW + 60_000 + mock_config.antispam_escalation_reset_hours * HOUR_MS + 1
        assert punishment_store.prune_history(far) == 1
        assert test_db.get_punishment_row(GUILD, USER) is None
