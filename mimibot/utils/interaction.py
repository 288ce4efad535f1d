"""
MimiBot - Interaction Utilities
===============================

Shared helpers for replying to interactions.

safe_respond() picks response.send_message() or followup.send() depending
on whether the interaction was already answered, so callers never repeat
the is_done() dance. result_embed() builds the ephemeral success/failure
embeds every command and button replies with.

Author: MimiDLC
"""

from typing import Any, Optional, Union

import discord

from mimibot.core.config import EmbedColors
from mimibot.core.logger import logger
from mimibot.utils.footer import set_footer


def result_embed(message: str, success: bool = True, title: Optional[str] = None) -> discord.Embed:
    """Green ✅ or red ❌ embed with a single message."""
    if title is None:
        title = "✅ Success" if success else "❌ Failed"
    embed = discord.Embed(
        title=title,
        description=message,
        color=EmbedColors.SUCCESS if success else EmbedColors.ERROR,
    )
    return set_footer(embed)


async def safe_respond(
    interaction: discord.Interaction,
    content: Optional[str] = None,
    *,
    embed: Optional[discord.Embed] = None,
    view: Optional[discord.ui.View] = None,
    ephemeral: bool = True,
    file: Optional[discord.File] = None,
) -> Optional[Union[discord.InteractionMessage, discord.WebhookMessage]]:
    """
    Respond to an interaction whether or not it was already answered.

    Returns:
        The sent message if one is available, None if Discord rejected it
        (usually an expired interaction).
    """
    kwargs: dict[str, Any] = {"ephemeral": ephemeral}

    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view
    if file is not None:
        kwargs["file"] = file

    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(**kwargs)
            return None
        return await interaction.followup.send(**kwargs)
    except discord.HTTPException as e:
        logger.debug(f"safe_respond failed: {e.status} - {str(e)[:50]}")
        return None


async def respond_result(
    interaction: discord.Interaction,
    message: str,
    success: bool = True,
    title: Optional[str] = None,
) -> None:
    await safe_respond(interaction, embed=result_embed(message, success, title))


async def safe_defer(interaction: discord.Interaction, *, ephemeral: bool = True) -> bool:
    """
    Defer an interaction response.

    Returns:
        True if deferred, False if already answered or Discord refused.
    """
    try:
        if interaction.response.is_done():
            return False
        await interaction.response.defer(ephemeral=ephemeral)
        return True
    except discord.HTTPException:
        return False


__all__ = ["result_embed", "safe_respond", "respond_result", "safe_defer"]
