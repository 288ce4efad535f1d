"""
MimiBot - Wrapper Tests
=======================

cached() read-through and validated() guards.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mimibot.core.cache import RedisCache
from mimibot.core.errors import ValidationError
from mimibot.utils.wrappers import cached, validated


def _key(guild_id):
    return f"thing:{guild_id}"


class TestCached:

    @pytest.mark.asyncio
    async def test_loader_runs_once(self, memory_cache):
        loader = AsyncMock(return_value={"value": 1})
        load = cached(memory_cache, _key, 60, loader)

        assert await load(5) == {"value": 1}
        assert await load(5) == {"value": 1}
        loader.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self, memory_cache):
        loader = AsyncMock(return_value=None)
        load = cached(memory_cache, _key, 60, loader)

        await load(5)
        await load(5)
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_failure_falls_through_to_loader(self):
        loader = AsyncMock(return_value=[1, 2])
        load = cached(RedisCache("redis://localhost:6379/0"), _key, 60, loader)

        assert await load(5) == [1, 2]
        assert await load(5) == [1, 2]
        assert loader.await_count == 2


class TestValidated:

    def test_passes_through_when_valid(self):
        func = MagicMock(return_value="ok")
        guarded = validated(lambda x: None, func)
        assert guarded(3) == "ok"
        func.assert_called_once_with(3)

    def test_rejects_before_calling(self):
        func = MagicMock()
        guarded = validated(lambda x: "x must be even" if x % 2 else None, func)

        with pytest.raises(ValidationError) as exc:
            guarded(3)
        assert exc.value.message == "x must be even"
        func.assert_not_called()

    @pytest.mark.asyncio
    async def test_async_func(self):
        func = AsyncMock(return_value=7)
        guarded = validated(lambda: None, func)
        assert await guarded() == 7
