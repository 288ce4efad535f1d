"""
MimiBot - Anti-Spam Appeal Routes
=================================

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.services.antispam.constants import (
    APPEAL_APPROVE_PREFIX,
    APPEAL_BUTTON_PREFIX,
    APPEAL_DENY_PREFIX,
    APPEAL_MODAL_PREFIX,
    APPEAL_REASON_FIELD,
)

from ..router import EventKind, InboundEvent, Router
from .common import parse_id

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


def register_appeal_routes(router: Router, bot: "MimiBot") -> None:

    @router.route(APPEAL_BUTTON_PREFIX, EventKind.BUTTON)
    async def appeal_button(event: InboundEvent, user_id: str, guild_id: str) -> None:
        await bot.antispam.open_appeal(event.raw, parse_id(user_id), parse_id(guild_id))

    @router.route(APPEAL_MODAL_PREFIX, EventKind.MODAL)
    async def appeal_submit(event: InboundEvent, user_id: str, guild_id: str) -> bool:
        return await bot.antispam.submit_appeal(
            event.raw,
            parse_id(user_id),
            parse_id(guild_id),
            event.fields.get(APPEAL_REASON_FIELD, ""),
        )

    @router.route(APPEAL_APPROVE_PREFIX, EventKind.BUTTON)
    async def appeal_approve(event: InboundEvent, user_id: str, guild_id: str) -> None:
        await bot.antispam.review_appeal(event.raw, parse_id(user_id), parse_id(guild_id), approve=True)

    @router.route(APPEAL_DENY_PREFIX, EventKind.BUTTON)
    async def appeal_deny(event: InboundEvent, user_id: str, guild_id: str) -> None:
        await bot.antispam.review_appeal(event.raw, parse_id(user_id), parse_id(guild_id), approve=False)


__all__ = ["register_appeal_routes"]
