"""
MimiBot - Ticket Command Package
================================

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.core.logger import logger

from .cog import TicketCog

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


async def setup(bot: "MimiBot") -> None:
    """Load the Ticket cog."""
    await bot.add_cog(TicketCog(bot))
    logger.tree("Ticket Cog Loaded", [
        ("Commands", "/ticket open, claim, close, request-close, add, remove, history, purge, type-add, type-remove"),
    ], emoji="🎫")


__all__ = ["TicketCog", "setup"]
