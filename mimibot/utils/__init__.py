"""
MimiBot - Utils Package
=======================

Stateless helpers usable anywhere in the codebase.

Available Utilities:
    retry: Backoff retries, timeouts, safe send
    async_utils: Logged gather and background tasks
    error_handler: Categorized handling of unexpected exceptions
    wrappers: cached() / validated() higher-order functions
    interaction: safe_respond() and result embeds

Author: MimiDLC
"""

from .async_utils import create_safe_task, gather_with_logging, safe_async_operation
from .interaction import respond_result, result_embed, safe_defer, safe_respond
from .retry import retry_async, retry_read, safe_send, with_timeout
from .wrappers import cached, validated


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "create_safe_task",
    "gather_with_logging",
    "safe_async_operation",
    "respond_result",
    "result_embed",
    "safe_defer",
    "safe_respond",
    "retry_async",
    "retry_read",
    "safe_send",
    "with_timeout",
    "cached",
    "validated",
]
