"""
MimiBot - Route Table
=====================

Builds the single Router every inbound event goes through.

Structure:
    - messages.py: anti-spam, then keyword replies
    - tickets.py: ticket desk buttons, modals, selects, purge confirm
    - ticket_commands.py: /ticket slash commands
    - admin_commands.py: /config, /panel and /keyword slash commands
    - appeals.py: anti-spam appeal flow
    - common.py: custom-id parsing

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.core.logger import logger

from ..router import Router
from .admin_commands import register_admin_command_routes
from .appeals import register_appeal_routes
from .messages import MESSAGE_ROUTE, register_message_routes
from .ticket_commands import register_ticket_command_routes
from .tickets import register_ticket_routes

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


def build_router(bot: "MimiBot") -> Router:
    router = Router()
    register_message_routes(router, bot)
    register_ticket_routes(router, bot)
    register_appeal_routes(router, bot)
    register_ticket_command_routes(router, bot)
    register_admin_command_routes(router, bot)

    logger.tree("Event Router Built", [
        ("Routes", str(len(router))),
    ], emoji="🧭")
    return router


__all__ = ["build_router", "MESSAGE_ROUTE"]
