"""
MimiBot - Anti-Spam Service Tests
=================================

Per-subject windows, punishment bookkeeping and message exemptions.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mimibot.services.antispam.constants import RECONCILE_GRACE_MS
from mimibot.services.antispam.models import Verdict

from conftest import GUILD_ID


T0 = 1_700_000_000_000
SUBJECT = 42


async def _burst(service, count, channel_id=1, start=T0, step=100, subject=SUBJECT):
    outcome = None
    for i in range(count):
        outcome = await service.process_event(GUILD_ID, subject, channel_id, start + i * step)
    return outcome


def _message(author_id=SUBJECT, bot=False, admin=False, webhook_id=None):
    message = MagicMock()
    message.guild.id = GUILD_ID
    message.guild.name = "Test Server"
    message.channel.id = 1
    message.webhook_id = webhook_id
    message.author.id = author_id
    message.author.bot = bot
    message.author.roles = []
    message.author.guild_permissions.administrator = admin
    message.author.timed_out_until = None
    return message


class TestProcessEvent:

    @pytest.mark.asyncio
    async def test_below_threshold_is_clean(self, antispam):
        outcome = await _burst(antispam, 4)
        assert outcome.verdict is Verdict.CLEAN
        assert outcome.punishment is None

    @pytest.mark.asyncio
    async def test_fifth_message_punishes(self, antispam, punishment_store):
        outcome = await _burst(antispam, 5)

        assert outcome.verdict is Verdict.SINGLE_CHANNEL_SPAM
        assert outcome.punishment.offense_count == 1
        assert outcome.punishment.punished_until == outcome.now + 86_400_000
        assert await punishment_store.get_punishment(GUILD_ID, SUBJECT, outcome.now) is not None

    @pytest.mark.asyncio
    async def test_punished_subject_is_skipped(self, antispam):
        spam = await _burst(antispam, 5)
        outcome = await antispam.process_event(GUILD_ID, SUBJECT, 1, spam.now + 1000)

        assert outcome.skipped
        assert outcome.verdict is Verdict.CLEAN
        assert outcome.punishment.punished_until == spam.punishment.punished_until

    @pytest.mark.asyncio
    async def test_burst_yields_one_punishment(self, antispam):
        outcomes = []
        for i in range(8):
            outcomes.append(await antispam.process_event(GUILD_ID, SUBJECT, 1, T0 + i * 10))
        assert sum(1 for o in outcomes if o.verdict.is_spam) == 1

    @pytest.mark.asyncio
    async def test_multi_channel_spread(self, antispam):
        outcome = None
        for channel in range(1, 7):
            outcome = await antispam.process_event(GUILD_ID, SUBJECT, channel, T0 + channel * 100)
        assert outcome.verdict is Verdict.MULTI_CHANNEL_SPAM
        assert "6 channels" in outcome.reason

    @pytest.mark.asyncio
    async def test_subjects_are_independent(self, antispam):
        await _burst(antispam, 4)
        outcome = await antispam.process_event(GUILD_ID, SUBJECT + 1, 1, T0 + 500)
        assert outcome.verdict is Verdict.CLEAN

    @pytest.mark.asyncio
    async def test_guild_thresholds_apply(self, antispam, settings_service):
        await settings_service.update_thresholds(GUILD_ID, message_threshold=3)
        outcome = await _burst(antispam, 3)
        assert outcome.verdict is Verdict.SINGLE_CHANNEL_SPAM

    @pytest.mark.asyncio
    async def test_manual_lift_clears_punishment(self, antispam, punishment_store):
        spam = await _burst(antispam, 5)
        later = spam.now + RECONCILE_GRACE_MS + 1000

        outcome = await antispam.process_event(GUILD_ID, SUBJECT, 1, later, discord_timed_out=False)

        assert not outcome.skipped
        assert await punishment_store.get_punishment(GUILD_ID, SUBJECT, later) is None

    @pytest.mark.asyncio
    async def test_lift_ignored_while_timeout_settles(self, antispam):
        spam = await _burst(antispam, 5)
        outcome = await antispam.process_event(GUILD_ID, SUBJECT, 1, spam.now + 100, discord_timed_out=False)
        assert outcome.skipped


class TestCleanup:

    @pytest.mark.asyncio
    async def test_stale_windows_are_dropped(self, antispam):
        await _burst(antispam, 2)
        assert antispam.cleanup_windows(T0 + 60_000) == 1
        assert antispam._windows == {}

    @pytest.mark.asyncio
    async def test_fresh_windows_are_kept(self, antispam):
        await _burst(antispam, 2)
        assert antispam.cleanup_windows(T0 + 1000) == 0

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped_with_their_window(self, antispam):
        await _burst(antispam, 2)
        antispam.cleanup_windows(T0 + 60_000)
        assert antispam._locks == {}

    @pytest.mark.asyncio
    async def test_lock_with_queued_event_survives_cleanup(self, antispam):
        key = (GUILD_ID, SUBJECT)
        lock = antispam._locks[key]
        await lock.acquire()

        queued = asyncio.create_task(antispam.process_event(GUILD_ID, SUBJECT, 1, T0))
        await asyncio.sleep(0)

        # Released but not yet handed over to the queued event
        lock.release()
        antispam.cleanup_windows(T0)
        assert antispam._locks.get(key) is lock

        await queued
        assert len(antispam._windows[key]) == 1


class TestCheckMessage:

    @pytest.mark.asyncio
    async def test_bots_are_exempt(self, antispam):
        antispam.process_event = AsyncMock()
        await antispam.check_message(_message(bot=True))
        antispam.process_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_webhooks_are_exempt(self, antispam):
        antispam.process_event = AsyncMock()
        await antispam.check_message(_message(webhook_id=5))
        antispam.process_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admins_are_exempt(self, antispam):
        antispam.process_event = AsyncMock()
        await antispam.check_message(_message(admin=True))
        antispam.process_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignored_users_are_exempt(self, antispam, mock_config):
        mock_config.antispam_ignored_user_ids = {SUBJECT}
        assert antispam.is_exempt(_message())

    @pytest.mark.asyncio
    async def test_spam_verdict_is_handled(self, antispam):
        antispam.handle_spam = AsyncMock(return_value=True)
        outcome = None
        for _ in range(5):
            outcome = await antispam.check_message(_message())

        assert outcome.verdict is Verdict.SINGLE_CHANNEL_SPAM
        antispam.handle_spam.assert_awaited_once()
