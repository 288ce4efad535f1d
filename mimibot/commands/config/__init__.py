"""
MimiBot - Config Command Package
================================

Author: MimiDLC
"""

from typing import TYPE_CHECKING

from mimibot.core.logger import logger

from .cog import ConfigCog

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


async def setup(bot: "MimiBot") -> None:
    """Load the Config cog."""
    await bot.add_cog(ConfigCog(bot))
    logger.tree("Config Cog Loaded", [
        ("Commands", "/config set, clear, view, antispam, antispam-reset"),
    ], emoji="⚙️")


__all__ = ["ConfigCog", "setup"]
