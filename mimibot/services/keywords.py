"""
MimiBot - Keyword Reply Service
===============================

Per-guild keyword -> reply rules. Rules arrive already normalized to
KeywordRule from the database layer; the first rule that matches a message
wins.

Author: MimiDLC
"""

from typing import Iterable, List, Optional

import discord

from mimibot.core.cache import CacheStore, keywords_key
from mimibot.core.database.keywords import KeywordRule, MatchType
from mimibot.core.errors import TransientStoreError, ValidationError
from mimibot.core.logger import logger
from mimibot.utils.retry import retry_read
from mimibot.utils.wrappers import cached, validated


KEYWORD_MAX = 100
REPLY_MAX = 2000
MAX_RULES_PER_GUILD = 100


def match(rules: Iterable[KeywordRule], content: str) -> Optional[KeywordRule]:
    """First rule matching the message content, in stored order."""
    for rule in rules:
        if rule.matches(content):
            return rule
    return None


def _check_rule(guild_id: int, keyword: str, reply: str, match_type=MatchType.CONTAINS, created_by=None) -> Optional[str]:
    if not keyword or not keyword.strip():
        return "Keyword cannot be empty."
    if len(keyword) > KEYWORD_MAX:
        return f"Keyword must be at most {KEYWORD_MAX} characters."
    if not reply or not reply.strip():
        return "Reply cannot be empty."
    if len(reply) > REPLY_MAX:
        return f"Reply must be at most {REPLY_MAX} characters."
    try:
        MatchType(match_type)
    except ValueError:
        return f"Match type must be one of: {', '.join(m.value for m in MatchType)}."
    return None


class KeywordService:
    """Keyword auto-replies with cached rule lists."""

    def __init__(self, db, cache: CacheStore, config) -> None:
        self.db = db
        self.cache = cache
        self._load = cached(cache, keywords_key, config.settings_cache_ttl, self._read_rules)
        self._add = validated(_check_rule, self.db.add_keyword)

    async def _read_rules(self, guild_id: int) -> List[dict]:
        rules = await retry_read(self.db.get_keyword_rules, guild_id)
        return [
            {"keyword": r.keyword, "reply": r.reply, "match_type": r.match_type.value}
            for r in rules
        ]

    async def _invalidate(self, guild_id: int) -> None:
        try:
            await self.cache.delete(keywords_key(guild_id))
        except TransientStoreError as e:
            logger.warning("Keyword Cache Invalidation Failed", [
                ("Guild ID", str(guild_id)),
                ("Error", str(e)[:100]),
            ])

    async def get_rules(self, guild_id: int) -> List[KeywordRule]:
        entries = await self._load(guild_id)
        return [
            KeywordRule(guild_id, e["keyword"], e["reply"], MatchType(e["match_type"]))
            for e in entries or []
        ]

    async def add(
        self,
        guild_id: int,
        keyword: str,
        reply: str,
        match_type: MatchType = MatchType.CONTAINS,
        created_by: Optional[int] = None,
    ) -> KeywordRule:
        existing = await self.get_rules(guild_id)
        if len(existing) >= MAX_RULES_PER_GUILD and all(r.keyword != keyword for r in existing):
            raise ValidationError(f"This server already has {MAX_RULES_PER_GUILD} keywords.")

        self._add(guild_id, keyword, reply, match_type, created_by)
        await self._invalidate(guild_id)
        return KeywordRule(guild_id, keyword, reply, MatchType(match_type))

    async def remove(self, guild_id: int, keyword: str) -> bool:
        removed = self.db.remove_keyword(guild_id, keyword)
        if removed:
            await self._invalidate(guild_id)
        return removed

    async def reply_to(self, message: discord.Message) -> Optional[KeywordRule]:
        """Reply to a guild message if a rule matches it."""
        if message.author.bot or message.guild is None or not message.content:
            return None

        try:
            rules = await self.get_rules(message.guild.id)
        except TransientStoreError as e:
            logger.warning("Keyword Lookup Failed", [
                ("Guild ID", str(message.guild.id)),
                ("Error", str(e)[:100]),
            ])
            return None

        rule = match(rules, message.content)
        if rule is None:
            return None

        try:
            await message.reply(rule.reply, mention_author=False)
        except discord.HTTPException as e:
            logger.warning("Keyword Reply Failed", [
                ("Guild ID", str(message.guild.id)),
                ("Keyword", rule.keyword[:50]),
                ("Error", str(e)[:100]),
            ])
            return None

        logger.debug("Keyword Reply Sent", [
            ("Guild ID", str(message.guild.id)),
            ("Keyword", rule.keyword[:50]),
        ])
        return rule


__all__ = ["KeywordService", "match"]
