"""
MimiBot - Configuration Tests
=============================

Environment parsing, defaults and permission helpers.
"""

from unittest.mock import MagicMock

import pytest

from mimibot.core.config import (
    ConfigValidationError,
    get_config,
    has_staff_role,
    is_admin,
    load_config,
)


class TestLoadConfig:

    def test_missing_token(self, monkeypatch):
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        with pytest.raises(ConfigValidationError):
            load_config()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        for name in ("ANTISPAM_MESSAGE_THRESHOLD", "ANTISPAM_ESCALATION_MULTIPLIER", "REDIS_URL"):
            monkeypatch.delenv(name, raising=False)

        config = load_config()
        assert config.antispam_message_threshold == 5
        assert config.antispam_time_window_ms == 10_000
        assert config.antispam_multi_channel_threshold == 6
        assert config.antispam_multi_channel_window_ms == 12_000
        assert config.antispam_escalation_multiplier == 1.0
        assert config.redis_url is None

    def test_values_are_clamped(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("ANTISPAM_MESSAGE_THRESHOLD", "1")
        monkeypatch.setenv("ANTISPAM_ESCALATION_MULTIPLIER", "0.5")
        monkeypatch.setenv("TICKET_DELETE_DELAY", "junk")

        config = load_config()
        assert config.antispam_message_threshold == 2
        assert config.antispam_escalation_multiplier == 1.0
        assert config.ticket_delete_delay == 5

    def test_id_sets_skip_junk(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("ANTISPAM_IGNORED_USER_IDS", "1, 2,x,,3")
        assert load_config().antispam_ignored_user_ids == {1, 2, 3}

    def test_bad_redis_url_ignored(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("REDIS_URL", "localhost:6379")
        assert load_config().redis_url is None

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestPermissions:

    def _member(self, admin=False, role_ids=()):
        member = MagicMock()
        member.id = 1
        member.guild_permissions.administrator = admin
        member.guild_permissions.manage_guild = False
        member.roles = [MagicMock(id=r) for r in role_ids]
        return member

    def test_admin(self):
        assert is_admin(self._member(admin=True))
        assert not is_admin(self._member())
        assert not is_admin(None)

    def test_staff_role(self):
        assert has_staff_role(self._member(role_ids=[9]), 9)
        assert not has_staff_role(self._member(role_ids=[8]), 9)
        assert not has_staff_role(self._member(role_ids=[9]), None)

    def test_admin_counts_as_staff(self):
        assert has_staff_role(self._member(admin=True), None)

    def test_developer_is_admin(self, monkeypatch):
        monkeypatch.setenv("DEVELOPER_ID", "1")
        assert is_admin(self._member())
