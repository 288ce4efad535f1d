"""
MimiBot - Async Utilities
=========================

Helpers that run async work without letting failures vanish.

Usage:
    from mimibot.utils.async_utils import gather_with_logging

    await gather_with_logging(
        ("Channel Notice", post_notice()),
        ("Appeal DM", send_dm()),
        context="Anti-Spam",
    )

Author: MimiDLC
"""

import asyncio
from typing import Any, Awaitable, Coroutine, List, Optional, Tuple

from mimibot.core.logger import logger

_LEVELS = ("debug", "warning", "error")


def _report(level: str, name: str, error: BaseException, context: Optional[str] = None) -> None:
    details = [("Context", context)] if context else []
    details += [
        ("Operation", name),
        ("Type", type(error).__name__),
        ("Error", str(error)[:150]),
    ]
    getattr(logger, level if level in _LEVELS else "warning")("Async Operation Failed", details)


async def gather_with_logging(
    *operations: Tuple[str, Awaitable[Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run named awaitables concurrently; each failure is logged as a warning.

    Returns:
        Results in input order, with exceptions in place of failed results.
    """
    results = await asyncio.gather(*(op for _, op in operations), return_exceptions=True)
    for (name, _), result in zip(operations, results):
        if isinstance(result, Exception):
            _report("warning", name, result, context)
    return results


async def safe_async_operation(
    name: str,
    operation: Awaitable[Any],
    default: Any = None,
    log_level: str = "warning",
) -> Any:
    """Await operation; if it raises, log at log_level and return default."""
    try:
        return await operation
    except Exception as e:
        _report(log_level, name, e)
        return default


# =============================================================================
# Background Tasks
# =============================================================================

def create_safe_task(coro: Coroutine[Any, Any, Any], name: str = "Background Task") -> asyncio.Task:
    """
    Schedule coro so an exception is logged instead of lost with the task.

    Cancellation is treated as a normal stop.
    """
    async def runner() -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            logger.debug(f"{name} cancelled")
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])

    return asyncio.create_task(runner(), name=name)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
]
