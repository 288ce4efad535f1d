"""
MimiBot - Settings Service Tests
================================

Guild settings and anti-spam thresholds, cache-first with invalidation.
"""

import pytest

from mimibot.core.cache import antispam_settings_key, settings_key
from mimibot.core.errors import ValidationError
from mimibot.services.settings import parse_field_value, resolve_field

from conftest import GUILD_ID, STAFF_ROLE_ID


class TestFieldParsing:

    def test_aliases_resolve_to_columns(self):
        assert resolve_field("staff_role") == "staff_role_id"
        assert resolve_field("Panel-Title") == "panel_title"
        assert resolve_field("log_channel_id") == "log_channel_id"

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            resolve_field("favourite_colour")

    def test_mentions_and_ids(self):
        assert parse_field_value("staff_role_id", "<@&123>") == 123
        assert parse_field_value("log_channel_id", "<#456>") == 456
        assert parse_field_value("log_channel_id", " 789 ") == 789
        assert parse_field_value("panel_title", "  Help Desk ") == "Help Desk"

    def test_bad_id(self):
        with pytest.raises(ValidationError):
            parse_field_value("staff_role_id", "moderators")


class TestGuildSettings:

    @pytest.mark.asyncio
    async def test_defaults_for_new_guild(self, settings_service):
        settings = await settings_service.get_settings(GUILD_ID)
        assert settings.guild_id == GUILD_ID
        assert settings.staff_role_id is None
        assert not settings.ticket_ready

    @pytest.mark.asyncio
    async def test_set_field_invalidates_cache(self, settings_service, memory_cache):
        await settings_service.get_settings(GUILD_ID)
        assert await memory_cache.get_json(settings_key(GUILD_ID)) == {}

        settings = await settings_service.set_field(GUILD_ID, "staff_role", f"<@&{STAFF_ROLE_ID}>")
        assert settings.staff_role_id == STAFF_ROLE_ID

        cached = await memory_cache.get_json(settings_key(GUILD_ID))
        assert cached["staff_role_id"] == STAFF_ROLE_ID

    @pytest.mark.asyncio
    async def test_ticket_ready_needs_category_and_role(self, settings_service):
        await settings_service.update_settings(GUILD_ID, staff_role_id=1)
        assert not (await settings_service.get_settings(GUILD_ID)).ticket_ready

        settings = await settings_service.update_settings(GUILD_ID, ticket_category_id=2)
        assert settings.ticket_ready

    @pytest.mark.asyncio
    async def test_clear_field(self, settings_service):
        await settings_service.update_settings(GUILD_ID, log_channel_id=10)
        settings = await settings_service.clear_field(GUILD_ID, "log_channel")
        assert settings.log_channel_id is None

    @pytest.mark.asyncio
    async def test_invalid_values_write_nothing(self, settings_service, test_db):
        with pytest.raises(ValidationError):
            await settings_service.update_settings(GUILD_ID, panel_thumbnail_url="ftp://nope")
        with pytest.raises(ValidationError):
            await settings_service.update_settings(GUILD_ID, staff_role_id=-5)
        with pytest.raises(ValidationError):
            await settings_service.update_settings(GUILD_ID, panel_title="x" * 300)
        assert test_db.get_guild_settings(GUILD_ID) is None

    @pytest.mark.asyncio
    async def test_panel_message_id_not_settable_by_command(self, settings_service):
        with pytest.raises(ValidationError):
            await settings_service.set_field(GUILD_ID, "panel_message_id", "123")


class TestThresholds:

    @pytest.mark.asyncio
    async def test_defaults_from_config(self, settings_service, mock_config):
        thresholds = await settings_service.get_thresholds(GUILD_ID)
        assert thresholds.message_threshold == mock_config.antispam_message_threshold
        assert thresholds.time_window_ms == mock_config.antispam_time_window_ms

    @pytest.mark.asyncio
    async def test_update_merges_over_defaults(self, settings_service, mock_config):
        thresholds = await settings_service.update_thresholds(
            GUILD_ID, message_threshold=3, time_window_ms=None
        )
        assert thresholds.message_threshold == 3
        assert thresholds.multi_channel_threshold == mock_config.antispam_multi_channel_threshold

    @pytest.mark.asyncio
    async def test_timeout_capped(self, settings_service, mock_config):
        with pytest.raises(ValidationError):
            await settings_service.update_thresholds(
                GUILD_ID, timeout_duration_ms=mock_config.antispam_max_timeout_ms + 1
            )

    @pytest.mark.asyncio
    async def test_nothing_to_update(self, settings_service):
        with pytest.raises(ValidationError):
            await settings_service.update_thresholds(GUILD_ID)

    @pytest.mark.asyncio
    async def test_reset(self, settings_service, memory_cache, mock_config):
        await settings_service.update_thresholds(GUILD_ID, message_threshold=3)
        assert await settings_service.reset_thresholds(GUILD_ID) is True
        assert await memory_cache.get_json(antispam_settings_key(GUILD_ID)) is None

        thresholds = await settings_service.get_thresholds(GUILD_ID)
        assert thresholds.message_threshold == mock_config.antispam_message_threshold
        assert await settings_service.reset_thresholds(GUILD_ID) is False
