"""
MimiBot - Cache Module
======================

Shared key/value cache with TTL for punishments and guild settings.

DESIGN:
    The bot constructs exactly one CacheStore in setup_hook and passes it
    to the services that need it; it is closed on shutdown. Nothing reaches
    the cache through a module-level global.

    RedisCache is used when REDIS_URL is set so that several bot processes
    share punishment state. MemoryCache is the in-process backend for a
    single-process deployment (and tests).

    Values are JSON. Connection failures surface as TransientStoreError so
    callers can decide between retrying and failing open.

Author: MimiDLC
"""

import json
import math
import time
from typing import Any, Dict, Optional, Tuple

import redis
import redis.asyncio as aioredis

from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger


# =============================================================================
# Key Helpers
# =============================================================================

def punishment_key(guild_id: int, subject_id: int) -> str:
    return f"punishment:{guild_id}:{subject_id}"


def settings_key(guild_id: int) -> str:
    return f"settings:{guild_id}"


def antispam_settings_key(guild_id: int) -> str:
    return f"antiSpamSettings:{guild_id}"


def keywords_key(guild_id: int) -> str:
    return f"keywords:{guild_id}"


def _ttl_seconds(ttl: Optional[float]) -> Optional[int]:
    if ttl is None:
        return None
    return max(1, math.ceil(ttl))


# =============================================================================
# Base Store
# =============================================================================

class CacheStore:
    """Async JSON cache with TTL. Subclasses implement the raw string ops."""

    name = "base"

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def _get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def _set(self, key: str, value: str, ttl: Optional[int]) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError

    async def get_json(self, key: str) -> Any:
        """Return the decoded value, or None if missing or corrupt."""
        raw = await self._get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Corrupted Cache Entry", [("Key", key)])
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        await self._set(key, json.dumps(value), _ttl_seconds(ttl))


# =============================================================================
# Redis Backend
# =============================================================================

class RedisCache(CacheStore):
    """redis.asyncio backed cache."""

    name = "redis"

    def __init__(self, url: str) -> None:
        self._url = url
        self._client: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        self._client = aioredis.from_url(self._url, decode_responses=True)
        try:
            await self._client.ping()
        except redis.RedisError as e:
            # Keep the client; later calls fail open until redis comes back.
            logger.warning("Redis Unreachable At Startup", [("Error", str(e)[:100])])
            return
        logger.tree("Redis Cache Connected", [("URL", self._url.split("@")[-1])], emoji="🧠")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis Cache Closed")

    def _require(self) -> aioredis.Redis:
        if self._client is None:
            raise TransientStoreError("Cache is not connected.")
        return self._client

    async def _get(self, key: str) -> Optional[str]:
        try:
            return await self._require().get(key)
        except redis.RedisError as e:
            raise TransientStoreError(f"Cache read failed: {e}") from e

    async def _set(self, key: str, value: str, ttl: Optional[int]) -> None:
        try:
            await self._require().set(key, value, ex=ttl)
        except redis.RedisError as e:
            raise TransientStoreError(f"Cache write failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._require().delete(key)
        except redis.RedisError as e:
            raise TransientStoreError(f"Cache delete failed: {e}") from e

    async def delete_prefix(self, prefix: str) -> int:
        client = self._require()
        deleted = 0
        try:
            async for key in client.scan_iter(match=f"{prefix}*"):
                deleted += await client.delete(key)
        except redis.RedisError as e:
            raise TransientStoreError(f"Cache delete failed: {e}") from e
        return deleted


# =============================================================================
# In-Process Backend
# =============================================================================

class MemoryCache(CacheStore):
    """Process-local TTL map. Expired entries are dropped on access."""

    name = "memory"

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    async def close(self) -> None:
        self._data.clear()

    async def _get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._data[key]
            return None
        return value

    async def _set(self, key: str, value: str, ttl: Optional[int]) -> None:
        expires_at = time.monotonic() + ttl if ttl is not None else None
        self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._data if k.startswith(prefix)]
        for key in keys:
            del self._data[key]
        return len(keys)

    def cleanup_expired(self) -> int:
        now = time.monotonic()
        expired = [k for k, (_, exp) in self._data.items() if exp is not None and now >= exp]
        for key in expired:
            del self._data[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# Factory
# =============================================================================

def create_cache(config) -> CacheStore:
    """Build the cache backend selected by REDIS_URL."""
    if config.redis_url:
        return RedisCache(config.redis_url)
    return MemoryCache()


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "CacheStore",
    "RedisCache",
    "MemoryCache",
    "create_cache",
    "punishment_key",
    "settings_key",
    "antispam_settings_key",
    "keywords_key",
]
