"""
MimiBot - Cache Store Tests
===========================

In-process backend behavior and the Redis backend's failure mode.
"""

import time

import pytest

from mimibot.core.cache import MemoryCache, RedisCache, create_cache, punishment_key
from mimibot.core.errors import TransientStoreError


class TestMemoryCache:

    @pytest.mark.asyncio
    async def test_json_round_trip(self, memory_cache):
        await memory_cache.set_json("k", {"a": [1, 2]}, ttl=60)
        assert await memory_cache.get_json("k") == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_missing_key(self, memory_cache):
        assert await memory_cache.get_json("nope") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_dropped(self, memory_cache):
        await memory_cache.set_json("k", 1, ttl=60)
        assert await memory_cache.get_json("k") == 1

        value, _ = memory_cache._data["k"]
        memory_cache._data["k"] = (value, time.monotonic() - 1)
        assert await memory_cache.get_json("k") is None
        assert len(memory_cache) == 0

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, memory_cache):
        await memory_cache.set_json("short", 1, ttl=60)
        await memory_cache.set_json("forever", 2)
        value, _ = memory_cache._data["short"]
        memory_cache._data["short"] = (value, time.monotonic() - 1)

        assert memory_cache.cleanup_expired() == 1
        assert await memory_cache.get_json("forever") == 2

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_removed(self, memory_cache):
        await memory_cache._set("bad", "{not json", None)
        assert await memory_cache.get_json("bad") is None
        assert len(memory_cache) == 0

    @pytest.mark.asyncio
    async def test_delete_prefix(self, memory_cache):
        await memory_cache.set_json(punishment_key(1, 1), 1)
        await memory_cache.set_json(punishment_key(1, 2), 1)
        await memory_cache.set_json("settings:1", 1)
        assert await memory_cache.delete_prefix("punishment:1:") == 2
        assert len(memory_cache) == 1


class TestRedisCache:

    @pytest.mark.asyncio
    async def test_unconnected_client_raises_transient(self):
        cache = RedisCache("redis://localhost:6379/0")
        with pytest.raises(TransientStoreError):
            await cache.get_json("k")
        with pytest.raises(TransientStoreError):
            await cache.set_json("k", 1)


class TestFactory:

    def test_memory_without_url(self, mock_config):
        assert isinstance(create_cache(mock_config), MemoryCache)

    def test_redis_with_url(self, mock_config):
        mock_config.redis_url = "redis://localhost:6379/0"
        assert isinstance(create_cache(mock_config), RedisCache)
