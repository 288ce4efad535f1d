"""
MimiBot - Error Handler
=======================

Context capture and categorized logging for unexpected exceptions.

Business errors (MimiError subclasses) never come through here; they are
answered at the command or router boundary. This is for everything else.

Categories:
- discord: Forbidden / NotFound / HTTPException
- network: connection and timeout errors
- database: sqlite3 errors
- cache: redis errors and TransientStoreError
- general: anything else

Author: MimiDLC
"""

import json
import sqlite3
import sys
import traceback
from datetime import datetime
from typing import Any, Dict

import discord
import redis

from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger, LOGS_DIR, LOCAL_TZ


class ErrorContext:
    """Captures and formats detailed error context."""

    @staticmethod
    def get_full_context(e: BaseException, location: str, **kwargs) -> Dict[str, Any]:
        context = {
            "timestamp": datetime.now(LOCAL_TZ).isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "python_version": sys.version,
            "additional_context": kwargs,
        }

        message = kwargs.get("message")
        if isinstance(message, discord.Message):
            context["discord_context"] = {
                "guild": message.guild.name if message.guild else "DM",
                "channel": getattr(message.channel, "name", str(message.channel)),
                "author": str(message.author),
                "author_id": message.author.id,
                "content": message.content[:100] if message.content else None,
            }

        interaction = kwargs.get("interaction")
        if isinstance(interaction, discord.Interaction):
            context["discord_context"] = {
                "guild": interaction.guild.name if interaction.guild else "DM",
                "channel": getattr(interaction.channel, "name", str(interaction.channel)),
                "author": str(interaction.user),
                "author_id": interaction.user.id,
                "custom_id": (interaction.data or {}).get("custom_id"),
            }

        return context


class ErrorHandler:
    """Categorized error handling with recovery hints."""

    ERROR_CATEGORIES = {
        "discord": (discord.Forbidden, discord.NotFound, discord.HTTPException),
        "cache": (redis.RedisError, TransientStoreError),
        "database": (sqlite3.Error,),
        "network": (ConnectionError, TimeoutError, OSError),
    }

    RECOVERY_SUGGESTIONS = {
        discord.Forbidden: "Check bot permissions in server settings",
        discord.NotFound: "Resource not found - check IDs and channels",
        discord.HTTPException: "Discord API issue - will retry automatically",
        TransientStoreError: "Storage momentarily unavailable - retry the action",
        redis.RedisError: "Redis unreachable - punishments fall back to the database",
        sqlite3.OperationalError: "Database locked - will retry automatically",
        sqlite3.IntegrityError: "Database constraint violation - check data validity",
        sqlite3.Error: "General database error - check database file",
        ConnectionError: "Network connection issue - check internet connection",
        TimeoutError: "Request timed out - will retry automatically",
        OSError: "System resource issue - check disk space and permissions",
    }

    @classmethod
    def categorize_error(cls, e: BaseException) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return "general"

    @classmethod
    def get_recovery_suggestion(cls, e: BaseException) -> str:
        for error_type, suggestion in cls.RECOVERY_SUGGESTIONS.items():
            if isinstance(e, error_type):
                return suggestion
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: BaseException, location: str, critical: bool = False, **context) -> None:
        """
        Handle an error with full context.

        Args:
            e: The exception
            location: Where the error occurred
            critical: Whether this error stops execution
            **context: Additional context (message, interaction, ...)
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e)
        full_context = ErrorContext.get_full_context(e, location, **context)

        details = [
            ("Category", category.upper()),
            ("Location", location),
            ("Error Type", full_context["error_type"]),
            ("Error", str(e)[:100]),
            ("Recovery", suggestion),
        ]

        if critical:
            logger.critical("Critical Error", details)
            logger.info(f"Traceback:\n{full_context['traceback']}")
            if "discord_context" in full_context:
                dc = full_context["discord_context"]
                logger.info(f"Discord Context: Guild={dc['guild']}, Channel={dc['channel']}, User={dc['author']}")
            cls._store_critical_error(full_context)
        else:
            logger.warning("Unexpected Error", details)

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        """Write a critical error's context to logs/errors for later analysis."""
        try:
            error_dir = LOGS_DIR / "errors"
            error_dir.mkdir(exist_ok=True, parents=True)

            timestamp = datetime.now(LOCAL_TZ).strftime("%Y%m%d_%H%M%S")
            error_file = error_dir / f"error_{timestamp}.json"

            with open(error_file, "w") as f:
                json.dump(context, f, indent=2, default=str)

            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.info(f"Failed to save error details: {save_error}")


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["ErrorContext", "ErrorHandler"]
