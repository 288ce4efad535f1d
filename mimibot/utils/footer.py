"""
MimiBot - Embed Footer Utility
==============================

One footer for all embeds. The bot's avatar is captured in on_ready.

Author: MimiDLC
"""

from typing import Optional

import discord


FOOTER_TEXT = "MimiBot"

_cached_avatar_url: Optional[str] = None


def init_footer(bot: discord.Client) -> None:
    """Cache the bot avatar for footers. Called once the bot user is known."""
    global _cached_avatar_url
    if bot.user is not None:
        _cached_avatar_url = bot.user.display_avatar.url


def set_footer(embed: discord.Embed, text: Optional[str] = None) -> discord.Embed:
    """Set the standard footer, optionally with extra text after the brand."""
    footer = f"{FOOTER_TEXT} • {text}" if text else FOOTER_TEXT
    embed.set_footer(text=footer, icon_url=_cached_avatar_url)
    return embed


__all__ = ["FOOTER_TEXT", "init_footer", "set_footer"]
