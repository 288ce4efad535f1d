"""
MimiBot - Panel Command Package
===============================

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.core.logger import logger

from .cog import PanelCog

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


async def setup(bot: "MimiBot") -> None:
    """Load the Panel cog."""
    await bot.add_cog(PanelCog(bot))
    logger.tree("Panel Cog Loaded", [
        ("Commands", "/panel setup"),
    ], emoji="🎫")


__all__ = ["PanelCog", "setup"]
