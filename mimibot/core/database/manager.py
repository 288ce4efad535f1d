"""
MimiBot - Database Manager
==========================

The one SQLite connection behind tickets, guild settings, punishments and
keyword replies.

DESIGN:
    One process-wide manager (get_db) owns one connection in WAL mode,
    guarded by a lock because discord.py callbacks and executor threads
    both reach it. Table-specific queries live in the mixins.

    sqlite reports contention as OperationalError("database is locked")
    or "busy"; those become TransientStoreError, the only storage error
    callers are expected to retry. Everything else propagates unchanged.

    transaction() takes the write lock up front (BEGIN IMMEDIATE) so a
    read-then-write sequence such as "check for an active ticket, then
    insert" cannot interleave with another writer.

Author: MimiDLC
"""

import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from mimibot.core.errors import TransientStoreError
from mimibot.core.logger import logger

from mimibot.core.database.schema import SchemaMixin
from mimibot.core.database.tickets import TicketsMixin
from mimibot.core.database.settings import SettingsMixin
from mimibot.core.database.punishments import PunishmentsMixin
from mimibot.core.database.keywords import KeywordsMixin


# =============================================================================
# Constants
# =============================================================================

DB_PATH: Path = Path(os.getenv("DATABASE_PATH", "data/mimi.db"))
SQLITE_BUSY_TIMEOUT = 5000  # ms
DB_CONNECTION_TIMEOUT = 30.0  # s

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}",
)


@contextmanager
def _translate_contention() -> Iterator[None]:
    try:
        yield
    except sqlite3.OperationalError as e:
        text = str(e).lower()
        if "locked" in text or "busy" in text:
            raise TransientStoreError(f"Database busy: {e}") from e
        raise


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    TicketsMixin,
    SettingsMixin,
    PunishmentsMixin,
    KeywordsMixin,
):
    """Process-wide SQLite store."""

    _instance: Optional["DatabaseManager"] = None
    _instance_lock = threading.Lock()

    def __new__(cls, path: Optional[Path] = None) -> "DatabaseManager":
        with cls._instance_lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._ready = False
                cls._instance = instance
        return cls._instance

    def __init__(self, path: Optional[Path] = None) -> None:
        if self._ready:
            return

        self.path = Path(path) if path else DB_PATH
        self._guard = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._open()
        self._init_tables()
        self._ready = True

        logger.tree("Database Ready", [
            ("Path", str(self.path)),
            ("Journal", "WAL"),
            ("Busy Timeout", f"{SQLITE_BUSY_TIMEOUT}ms"),
        ], emoji="🗄️")

    # =========================================================================
    # Connection
    # =========================================================================

    def _open(self) -> None:
        try:
            conn = sqlite3.connect(str(self.path), check_same_thread=False, timeout=DB_CONNECTION_TIMEOUT)
            for pragma in _PRAGMAS:
                conn.execute(pragma)
        except sqlite3.Error as e:
            logger.error("Database Open Failed", [
                ("Path", str(self.path)),
                ("Error", str(e)),
            ])
            raise
        conn.row_factory = sqlite3.Row
        self._conn = conn

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._open()
        return self._conn

    def close(self) -> None:
        with self._guard:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Database Closed", [("Path", str(self.path))])

    # =========================================================================
    # Queries
    # =========================================================================

    def execute(self, query: str, params: Tuple = (), commit: bool = True) -> sqlite3.Cursor:
        """Run one statement; commits unless commit is False (reads)."""
        with self._guard, _translate_contention():
            conn = self._connection()
            cursor = conn.execute(query, params)
            if commit:
                conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        with self._guard:
            return self.execute(query, params, commit=False).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        with self._guard:
            return self.execute(query, params, commit=False).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Atomic block over a cursor.

            with db.transaction() as tx:
                tx.execute("UPDATE ...", (...))
                changed = tx.rowcount

        Commits when the block exits normally, rolls back on any exception.
        Only tx may be used inside the block.
        """
        with self._guard, _translate_contention():
            conn = self._connection()
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.cursor()
            try:
                yield cursor
            except BaseException as e:
                conn.rollback()
                logger.debug("Transaction Rolled Back", [("Error", f"{type(e).__name__}: {str(e)[:80]}")])
                raise
            else:
                conn.commit()
            finally:
                cursor.close()


# =============================================================================
# Global Instance
# =============================================================================

def get_db(path: Optional[Path] = None) -> DatabaseManager:
    """The process-wide manager, created on first use."""
    return DatabaseManager(path)


__all__ = ["DatabaseManager", "get_db", "DB_PATH"]
