"""
MimiBot - Database Keyword Operations
=====================================

Keyword auto-reply rows, normalized into KeywordRule on the way out.

DESIGN:
    Older data stores a reply either as a bare string or as a JSON record
    {"reply": "...", "include": true}. Both shapes are turned into one
    KeywordRule here so nothing past the database layer sees the union.

Author: MimiDLC
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from mimibot.core.logger import logger

if TYPE_CHECKING:
    from mimibot.core.database.manager import DatabaseManager


# =============================================================================
# Normalized Representation
# =============================================================================

class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"


@dataclass(frozen=True)
class KeywordRule:
    """One keyword -> reply rule."""
    guild_id: int
    keyword: str
    reply: str
    match_type: MatchType

    def matches(self, content: str) -> bool:
        if self.match_type is MatchType.EXACT:
            return content == self.keyword
        return self.keyword in content


def normalize_reply(raw: str, match_type: Optional[str]) -> tuple:
    """
    Collapse a stored reply into (reply_text, MatchType).

    Args:
        raw: Stored reply column: plain text or a legacy JSON record.
        match_type: Stored match_type column.

    Returns:
        (reply, MatchType). A legacy record's "include" flag wins over the
        column: include=true means CONTAINS, otherwise EXACT.
    """
    column_type = MatchType.EXACT if match_type == MatchType.EXACT.value else MatchType.CONTAINS

    stripped = raw.strip() if isinstance(raw, str) else ""
    if stripped.startswith("{"):
        try:
            record = json.loads(stripped)
        except (json.JSONDecodeError, ValueError):
            record = None
        if isinstance(record, dict) and isinstance(record.get("reply"), str):
            legacy_type = MatchType.CONTAINS if record.get("include") else MatchType.EXACT
            return record["reply"], legacy_type

    return raw, column_type


# =============================================================================
# Mixin
# =============================================================================

class KeywordsMixin:
    """Mixin for keyword auto-reply rows."""

    def get_keyword_rules(self: "DatabaseManager", guild_id: int) -> List[KeywordRule]:
        rows = self.fetchall(
            "SELECT keyword, reply, match_type FROM keywords WHERE guild_id = ? ORDER BY id",
            (guild_id,)
        )
        rules = []
        for row in rows:
            reply, match = normalize_reply(row["reply"], row["match_type"])
            if not reply:
                continue
            rules.append(KeywordRule(guild_id, row["keyword"], reply, match))
        return rules

    def add_keyword(
        self: "DatabaseManager",
        guild_id: int,
        keyword: str,
        reply: str,
        match_type: MatchType = MatchType.CONTAINS,
        created_by: Optional[int] = None,
    ) -> None:
        """Insert or replace the reply for a keyword."""
        self.execute(
            """INSERT INTO keywords (guild_id, keyword, reply, match_type, created_by, created_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(guild_id, keyword) DO UPDATE SET
                   reply = excluded.reply,
                   match_type = excluded.match_type,
                   created_by = excluded.created_by""",
            (guild_id, keyword, reply, MatchType(match_type).value, created_by, time.time())
        )
        logger.tree("Keyword Saved", [
            ("Guild ID", str(guild_id)),
            ("Keyword", keyword[:50]),
            ("Match", MatchType(match_type).value),
        ], emoji="💬")

    def remove_keyword(self: "DatabaseManager", guild_id: int, keyword: str) -> bool:
        cursor = self.execute(
            "DELETE FROM keywords WHERE guild_id = ? AND keyword = ?",
            (guild_id, keyword)
        )
        return cursor.rowcount > 0
