"""
MimiBot - Test Fixtures
=======================

Shared fixtures for all tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.setdefault("MIMI_LOGS_DIR", tempfile.mkdtemp(prefix="mimi-logs-"))

from mimibot.core.errors import SideEffectFailure  # noqa: E402
from mimibot.services.tickets.dispatcher import NotificationDispatcher  # noqa: E402


GUILD_ID = 987654321
STAFF_ROLE_ID = 444000111
CATEGORY_ID = 444000222
LOG_CHANNEL_ID = 444000333
ARCHIVE_CATEGORY_ID = 444000444


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts from a freshly loaded Config."""
    from mimibot.core.config import reset_config as _reset
    _reset()
    yield
    _reset()


@pytest.fixture
def mock_config():
    from mimibot.core.config import Config
    return Config(
        discord_token="test-token",
        database_path=":memory:",
        ticket_delete_delay=0,
        dispatch_timeout=1.0,
    )


# =============================================================================
# Storage
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    return tmp_path / "test_mimi.db"


@pytest.fixture
def test_db(temp_db_path):
    """Create a fresh test database instance."""
    from mimibot.core.database import manager

    manager.DatabaseManager._instance = None
    db = manager.DatabaseManager(temp_db_path)

    yield db

    db.close()
    manager.DatabaseManager._instance = None


@pytest.fixture
def memory_cache():
    from mimibot.core.cache import MemoryCache
    return MemoryCache()


# =============================================================================
# Discord Objects
# =============================================================================

def make_member(
    user_id: int = 123456789,
    name: str = "testuser",
    role_ids: Optional[List[int]] = None,
    admin: bool = False,
):
    """Mock guild member with explicit permissions and roles."""
    member = MagicMock()
    member.id = user_id
    member.name = name
    member.display_name = name.title()
    member.mention = f"<@{user_id}>"
    member.bot = False
    member.roles = [MagicMock(id=rid) for rid in (role_ids or [])]
    member.guild_permissions.administrator = admin
    member.guild_permissions.manage_guild = admin
    member.display_avatar.url = "https://example.com/avatar.png"
    member.guild.id = GUILD_ID
    member.guild.name = "Test Server"
    member.__str__ = MagicMock(return_value=name)
    return member


@pytest.fixture
def mock_guild():
    guild = MagicMock()
    guild.id = GUILD_ID
    guild.name = "Test Server"
    return guild


@pytest.fixture
def owner():
    return make_member(123456789, "owner")


@pytest.fixture
def staff():
    return make_member(111222333, "staffer", role_ids=[STAFF_ROLE_ID])


@pytest.fixture
def other_staff():
    return make_member(111222444, "helper", role_ids=[STAFF_ROLE_ID])


@pytest.fixture
def admin():
    return make_member(555666777, "admin", admin=True)


@pytest.fixture
def stranger():
    return make_member(999000111, "stranger")


# =============================================================================
# Dispatcher
# =============================================================================

class FakeDispatcher(NotificationDispatcher):
    """Records every platform call; operations named in fail raise SideEffectFailure."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.fail: set = set()
        self._next_id = 700000

    def _record(self, operation: str, *args) -> int:
        self.calls.append((operation,) + args)
        if operation in self.fail:
            raise SideEffectFailure(f"{operation} failed", operation=operation)
        self._next_id += 1
        return self._next_id

    def ops(self) -> List[str]:
        return [call[0] for call in self.calls]

    def calls_for(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def create_channel(self, guild, owner, channel_type, name, staff_role_id, category_id) -> int:
        return self._record("create_channel", name, staff_role_id, category_id)

    async def send_message(self, channel_id, content=None, embed=None, view=None, file=None) -> int:
        return self._record("send_message", channel_id, content, embed, view)

    async def upload_file(self, channel_id, filename, data, content=None) -> str:
        self._record("upload_file", channel_id, filename, data)
        return f"https://cdn.example.com/{filename}"

    async def edit_message(self, channel_id, message_id, content=None, embed=None, view=None) -> None:
        self._record("edit_message", channel_id, message_id, embed)

    async def archive_channel(self, channel_id, archive_category_id, owner_id) -> None:
        self._record("archive_channel", channel_id, archive_category_id, owner_id)

    async def delete_channel(self, channel_id) -> None:
        self._record("delete_channel", channel_id)

    async def add_member(self, channel_id, user_id) -> None:
        self._record("add_member", channel_id, user_id)

    async def remove_member(self, channel_id, user_id) -> None:
        self._record("remove_member", channel_id, user_id)

    async def dm_user(self, user_id, content=None, embed=None, view=None) -> None:
        self._record("dm_user", user_id, embed, view)

    async def fetch_history(self, channel_id, limit) -> list:
        self._record("fetch_history", channel_id, limit)
        return []


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def settings_service(test_db, memory_cache, mock_config):
    from mimibot.services.settings import SettingsService
    return SettingsService(test_db, memory_cache, mock_config)


@pytest_asyncio.fixture
async def configured_guild(settings_service):
    """Guild with ticket category, staff role and log channel set."""
    return await settings_service.update_settings(
        GUILD_ID,
        staff_role_id=STAFF_ROLE_ID,
        ticket_category_id=CATEGORY_ID,
        log_channel_id=LOG_CHANNEL_ID,
    )


@pytest.fixture
def ticket_service(test_db, settings_service, dispatcher, mock_config):
    from mimibot.services.tickets import TicketService
    return TicketService(test_db, settings_service, dispatcher, mock_config)


@pytest.fixture
def punishment_store(memory_cache, test_db, mock_config):
    from mimibot.services.antispam import PunishmentStore
    return PunishmentStore(memory_cache, test_db, mock_config)


@pytest.fixture
def antispam(settings_service, punishment_store, mock_config):
    from mimibot.services.antispam import AntiSpamService
    bot = MagicMock()
    bot.get_channel = MagicMock(return_value=None)
    bot.fetch_channel = AsyncMock(return_value=None)
    return AntiSpamService(bot, settings_service, punishment_store, mock_config)
