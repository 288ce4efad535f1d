"""
MimiBot - Call-Site Wrappers
============================

Caching and validation as plain higher-order functions.

DESIGN:
    These are composed where a service is built, e.g.

        self._load = cached(cache, settings_key, ttl, self._read_settings)

    so the cache a function reads through is visible at the call site
    and can be swapped in tests. Nothing here is applied as a decorator
    at import time.

Author: MimiDLC
"""

from typing import Any, Awaitable, Callable, Optional

from mimibot.core.cache import CacheStore
from mimibot.core.errors import TransientStoreError, ValidationError
from mimibot.core.logger import logger


def cached(
    cache: CacheStore,
    key_fn: Callable[..., str],
    ttl: Optional[float],
    loader: Callable[..., Awaitable[Any]],
) -> Callable[..., Awaitable[Any]]:
    """
    Wrap an async loader with read-through caching.

    Args:
        cache: Store to read through.
        key_fn: Builds the cache key from the loader's arguments.
        ttl: Seconds to keep a loaded value.
        loader: Async function producing the value on a miss.

    Returns:
        Async function with the loader's signature. A None result is not
        cached. Cache errors are logged and the loader is used directly.
    """
    async def load(*args, **kwargs):
        key = key_fn(*args, **kwargs)
        try:
            value = await cache.get_json(key)
        except TransientStoreError as e:
            logger.warning("Cache Read Failed", [("Key", key), ("Error", str(e)[:100])])
            return await loader(*args, **kwargs)

        if value is not None:
            return value

        value = await loader(*args, **kwargs)
        if value is not None:
            try:
                await cache.set_json(key, value, ttl)
            except TransientStoreError as e:
                logger.warning("Cache Write Failed", [("Key", key), ("Error", str(e)[:100])])
        return value

    load.__name__ = getattr(loader, "__name__", "load")
    return load


def validated(
    validator: Callable[..., Optional[str]],
    func: Callable[..., Any],
) -> Callable[..., Any]:
    """
    Run validator(*args, **kwargs) before func.

    The validator returns an error message, or None when the arguments are
    acceptable. A message is raised as ValidationError and func never runs.
    Works for both sync and async func; the result is returned as-is.
    """
    def call(*args, **kwargs):
        problem = validator(*args, **kwargs)
        if problem:
            raise ValidationError(problem)
        return func(*args, **kwargs)

    call.__name__ = getattr(func, "__name__", "call")
    return call


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["cached", "validated"]
