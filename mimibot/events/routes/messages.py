"""
MimiBot - Message Route
=======================

Guild messages run through anti-spam first; only messages that are
neither spam nor from a still-punished author get keyword replies.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Optional

from mimibot.core.database.keywords import KeywordRule

from ..router import EventKind, InboundEvent, Router

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


MESSAGE_ROUTE = ""


def register_message_routes(router: Router, bot: "MimiBot") -> None:

    @router.route(MESSAGE_ROUTE, EventKind.MESSAGE)
    async def on_guild_message(event: InboundEvent) -> Optional[KeywordRule]:
        message = event.raw
        outcome = await bot.antispam.check_message(message)
        if outcome.verdict.is_spam or outcome.skipped:
            return None
        return await bot.keyword_service.reply_to(message)


__all__ = ["register_message_routes", "MESSAGE_ROUTE"]
