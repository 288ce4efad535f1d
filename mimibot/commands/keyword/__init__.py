"""
MimiBot - Keyword Command Package
=================================

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.core.logger import logger

from .cog import KeywordCog

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


async def setup(bot: "MimiBot") -> None:
    """Load the Keyword cog."""
    await bot.add_cog(KeywordCog(bot))
    logger.tree("Keyword Cog Loaded", [
        ("Commands", "/keyword add, remove, list"),
    ], emoji="💬")


__all__ = ["KeywordCog", "setup"]
