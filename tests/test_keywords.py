"""
MimiBot - Keyword Reply Tests
=============================

Legacy reply shapes, matching and the cached service.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mimibot.core.database.keywords import KeywordRule, MatchType, normalize_reply
from mimibot.core.errors import ValidationError
from mimibot.services.keywords import KeywordService, match

from conftest import GUILD_ID


class TestNormalizeReply:

    def test_plain_text_uses_column(self):
        assert normalize_reply("hello", "exact") == ("hello", MatchType.EXACT)
        assert normalize_reply("hello", "contains") == ("hello", MatchType.CONTAINS)
        assert normalize_reply("hello", None) == ("hello", MatchType.CONTAINS)

    def test_legacy_record_include_flag(self):
        raw = json.dumps({"reply": "hi there", "include": True})
        assert normalize_reply(raw, "exact") == ("hi there", MatchType.CONTAINS)

        raw = json.dumps({"reply": "hi there", "include": False})
        assert normalize_reply(raw, "contains") == ("hi there", MatchType.EXACT)

    def test_brace_text_that_is_not_a_record(self):
        assert normalize_reply("{not json", "contains") == ("{not json", MatchType.CONTAINS)
        assert normalize_reply('{"other": 1}', "exact") == ('{"other": 1}', MatchType.EXACT)


class TestMatch:

    def test_first_matching_rule_wins(self):
        rules = [
            KeywordRule(GUILD_ID, "hello", "exact hi", MatchType.EXACT),
            KeywordRule(GUILD_ID, "hel", "contains hi", MatchType.CONTAINS),
        ]
        assert match(rules, "hello").reply == "exact hi"
        assert match(rules, "hello world").reply == "contains hi"
        assert match(rules, "goodbye") is None


class TestDatabase:

    def test_legacy_rows_leave_normalized(self, test_db):
        test_db.execute(
            "INSERT INTO keywords (guild_id, keyword, reply, match_type, created_at) VALUES (?, ?, ?, ?, ?)",
            (GUILD_ID, "rules", json.dumps({"reply": "Read #rules", "include": True}), "exact", 0),
        )
        rules = test_db.get_keyword_rules(GUILD_ID)
        assert rules == [KeywordRule(GUILD_ID, "rules", "Read #rules", MatchType.CONTAINS)]

    def test_add_replaces_existing_keyword(self, test_db):
        test_db.add_keyword(GUILD_ID, "faq", "old", MatchType.EXACT)
        test_db.add_keyword(GUILD_ID, "faq", "new", MatchType.CONTAINS)
        rules = test_db.get_keyword_rules(GUILD_ID)
        assert len(rules) == 1
        assert rules[0].reply == "new"
        assert rules[0].match_type is MatchType.CONTAINS


class TestKeywordService:

    @pytest.fixture
    def service(self, test_db, memory_cache, mock_config):
        return KeywordService(test_db, memory_cache, mock_config)

    @pytest.mark.asyncio
    async def test_add_then_list_through_cache(self, service):
        assert await service.get_rules(GUILD_ID) == []
        await service.add(GUILD_ID, "ping", "pong")
        rules = await service.get_rules(GUILD_ID)
        assert [(r.keyword, r.reply) for r in rules] == [("ping", "pong")]

    @pytest.mark.asyncio
    async def test_remove(self, service):
        await service.add(GUILD_ID, "ping", "pong")
        assert await service.remove(GUILD_ID, "ping") is True
        assert await service.remove(GUILD_ID, "ping") is False
        assert await service.get_rules(GUILD_ID) == []

    @pytest.mark.asyncio
    async def test_validation(self, service):
        with pytest.raises(ValidationError):
            await service.add(GUILD_ID, "  ", "reply")
        with pytest.raises(ValidationError):
            await service.add(GUILD_ID, "key", "x" * 2001)

    @pytest.mark.asyncio
    async def test_reply_to_matching_message(self, service):
        await service.add(GUILD_ID, "refund", "See #billing", MatchType.CONTAINS)

        message = MagicMock()
        message.author.bot = False
        message.guild.id = GUILD_ID
        message.content = "how do I get a refund?"
        message.reply = AsyncMock()

        rule = await service.reply_to(message)
        assert rule.keyword == "refund"
        message.reply.assert_awaited_once_with("See #billing", mention_author=False)

    @pytest.mark.asyncio
    async def test_reply_to_ignores_bots(self, service):
        await service.add(GUILD_ID, "refund", "See #billing")

        message = MagicMock()
        message.author.bot = True
        message.reply = AsyncMock()

        assert await service.reply_to(message) is None
        message.reply.assert_not_awaited()
