"""
MimiBot - Retry Utilities
=========================

Bounded retries for Discord calls and storage reads, plus the small
send/fetch helpers built on them.

DESIGN:
    A RetryPolicy says how often and on what to retry. Discord calls use
    DISCORD_POLICY (a few seconds of patience); storage reads use
    READ_POLICY (sub-second, TransientStoreError only). Writes are never
    retried here: a failed write surfaces to the caller.

Author: MimiDLC
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import discord

from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    base_delay: float
    max_delay: float
    retry_on: Tuple[Type[BaseException], ...]

    def delay(self, attempt: int) -> float:
        """Backoff before retry number attempt (0-based), doubling up to max_delay."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)


DISCORD_POLICY = RetryPolicy(
    attempts=3,
    base_delay=0.5,
    max_delay=4.0,
    retry_on=(discord.HTTPException, asyncio.TimeoutError, ConnectionError),
)

READ_POLICY = RetryPolicy(
    attempts=4,
    base_delay=0.1,
    max_delay=1.0,
    retry_on=(TransientStoreError,),
)

# Retrying these can't help
_PERMANENT = (discord.NotFound, discord.Forbidden)


async def retry_async(func: Callable[..., Any], *args, policy: RetryPolicy = DISCORD_POLICY, **kwargs) -> Any:
    """
    Call func until it succeeds or the policy runs out.

    func may be a coroutine function or a plain one (sqlite reads).

    Raises:
        The last exception once every attempt failed, or any exception
        outside policy.retry_on immediately.
    """
    name = getattr(func, "__name__", "call")

    for attempt in range(policy.attempts):
        try:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result
        except _PERMANENT:
            raise
        except policy.retry_on as e:
            if attempt + 1 >= policy.attempts:
                logger.error("Retries Exhausted", [
                    ("Call", name),
                    ("Attempts", str(policy.attempts)),
                    ("Error", f"{type(e).__name__}: {str(e)[:80]}"),
                ])
                raise
            delay = policy.delay(attempt)
            logger.debug(f"{name} failed ({type(e).__name__}), attempt {attempt + 2}/{policy.attempts} in {delay:.1f}s")
            await asyncio.sleep(delay)


async def retry_read(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Storage read with READ_POLICY."""
    return await retry_async(func, *args, policy=READ_POLICY, **kwargs)


async def with_timeout(awaitable: Any, timeout: float, label: str, default: Optional[T] = None) -> Optional[T]:
    """Await with a deadline; on timeout log label and return default."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Operation Timed Out", [
            ("Operation", label),
            ("Timeout", f"{timeout}s"),
        ])
        return default


async def safe_send(
    channel: Optional[discord.abc.Messageable],
    content: Optional[str] = None,
    **kwargs,
) -> Optional[discord.Message]:
    """Send with retries. None when there is no channel or Discord refuses."""
    if channel is None:
        return None
    try:
        return await retry_async(channel.send, content, **kwargs)
    except discord.HTTPException as e:
        logger.warning("Message Send Failed", [
            ("Channel", str(getattr(channel, "id", "?"))),
            ("Error", str(e)[:100]),
        ])
        return None


async def safe_fetch_channel(bot, channel_id: Optional[int]) -> Optional[discord.abc.GuildChannel]:
    """Channel from the client cache, else fetched. None if gone or hidden."""
    if not channel_id:
        return None

    channel = bot.get_channel(channel_id)
    if channel is not None:
        return channel

    try:
        return await retry_async(bot.fetch_channel, channel_id)
    except discord.HTTPException as e:
        if not isinstance(e, _PERMANENT):
            logger.warning("Channel Fetch Failed", [
                ("Channel ID", str(channel_id)),
                ("Error", str(e)[:100]),
            ])
        return None


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "RetryPolicy",
    "DISCORD_POLICY",
    "READ_POLICY",
    "retry_async",
    "retry_read",
    "with_timeout",
    "safe_send",
    "safe_fetch_channel",
]
