"""
MimiBot - Core Package
======================

Configuration, logging, errors, cache and database.

DESIGN:
    - get_config() returns the same Config instance
    - get_db() returns the same DatabaseManager instance
    - logger is a global TreeLogger instance
    - The cache is NOT global: the bot builds one and injects it

Author: MimiDLC
"""

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    LOCAL_TZ,
    get_config,
    is_admin,
    has_staff_role,
)

from .database import DatabaseManager, get_db

from .logger import logger, TreeLogger

from .cache import CacheStore, MemoryCache, RedisCache, create_cache

from .errors import MimiError


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "LOCAL_TZ",
    "get_config",
    "is_admin",
    "has_staff_role",
    # Database
    "DatabaseManager",
    "get_db",
    # Logger
    "logger",
    "TreeLogger",
    # Cache
    "CacheStore",
    "MemoryCache",
    "RedisCache",
    "create_cache",
    # Errors
    "MimiError",
]
