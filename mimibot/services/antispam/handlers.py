"""
MimiBot - Anti-Spam Punishment Handlers
=======================================

What happens in Discord after a spam verdict: timeout, channel notice,
appeal DM and the log channel embed.
"""

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

import discord

from mimibot.core.config import EmbedColors
from mimibot.core.logger import logger
from mimibot.utils.async_utils import gather_with_logging
from mimibot.utils.duration import format_duration_ms
from mimibot.utils.footer import set_footer
from mimibot.utils.retry import safe_fetch_channel, safe_send, with_timeout

from .constants import APPEAL_BUTTON_PREFIX, CHANNEL_NOTICE_DELETE_AFTER, DM_TIMEOUT, VERDICT_DISPLAY_NAMES
from .models import SpamOutcome

if TYPE_CHECKING:
    from mimibot.bot import MimiBot
    from mimibot.services.settings import SettingsService
    from .punishments import PunishmentStore


MISSING_PERMISSIONS_CODE = 50013


def build_appeal_view(user_id: int, guild_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="I believe this is a mistake (Appeal)",
        style=discord.ButtonStyle.secondary,
        custom_id=f"{APPEAL_BUTTON_PREFIX}:{user_id}:{guild_id}",
        emoji="😾",
    ))
    return view


class SpamHandlerMixin:
    """Mixin class providing spam punishment handling."""

    async def handle_spam(self, message: discord.Message, outcome: SpamOutcome) -> bool:
        """
        Apply the Discord timeout and send notifications.

        Returns:
            True if the timeout was applied. When Discord refuses it the
            recorded punishment is cleared again so the member is not left
            silently ignored.
        """
        member = message.author
        guild = message.guild
        punishments: "PunishmentStore" = self.punishments  # type: ignore
        state = outcome.punishment
        duration_ms = state.punished_until - outcome.now
        duration_str = format_duration_ms(duration_ms)

        try:
            await member.timeout(timedelta(milliseconds=duration_ms), reason=f"Anti-spam: {outcome.reason}")
        except discord.HTTPException as e:
            logger.error("Anti-Spam Timeout Failed", [
                ("User", f"{member} ({member.id})"),
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Code", str(getattr(e, "code", "?"))),
                ("Error", str(e)[:100]),
            ])
            await punishments.clear(guild.id, member.id, outcome.now)
            await self._send_timeout_failure(message, e)
            return False

        logger.tree("AUTO-TIMEOUT APPLIED", [
            ("User", f"{member} ({member.id})"),
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Reason", outcome.reason or "-"),
            ("Duration", duration_str),
            ("Offense", f"#{state.offense_count}"),
        ], emoji="🔇")

        await gather_with_logging(
            ("Channel Notice", self._send_channel_notice(message, outcome, duration_str)),
            ("Appeal DM", self._send_appeal_dm(member, guild, outcome, duration_str)),
            ("Spam Log", self._log_spam(message, outcome, duration_str)),
            context="Anti-Spam",
        )
        return True

    async def _send_timeout_failure(self, message: discord.Message, error: discord.HTTPException) -> None:
        if getattr(error, "code", None) == MISSING_PERMISSIONS_CODE or isinstance(error, discord.Forbidden):
            text = (
                f"⚠️ Spam detected from {message.author.mention}, but I lack permissions to time out this user. "
                "Please ensure my role is higher than theirs in Server Settings → Roles."
            )
        else:
            text = (
                f"⚠️ Spam detected from {message.author.mention}, but I cannot time out this user "
                f"(Error: {getattr(error, 'code', None) or 'Unknown'})."
            )
        await safe_send(message.channel, text, allowed_mentions=discord.AllowedMentions.none())

    async def _send_channel_notice(self, message: discord.Message, outcome: SpamOutcome, duration_str: str) -> None:
        await safe_send(
            message.channel,
            f"User {message.author.mention} has been timed out for {duration_str} "
            f"due to suspected spamming ({outcome.reason}).",
            delete_after=CHANNEL_NOTICE_DELETE_AFTER,
        )

    async def _send_appeal_dm(
        self,
        member: discord.Member,
        guild: discord.Guild,
        outcome: SpamOutcome,
        duration_str: str,
    ) -> None:
        try:
            await with_timeout(
                member.send(
                    f"You have been timed out for **{duration_str}** in **{guild.name}** for suspected spamming.\n"
                    f"**Reason**: {outcome.reason}\n\n"
                    "If you believe this was a mistake, please click the button below to appeal to the administrators.",
                    view=build_appeal_view(member.id, guild.id),
                ),
                DM_TIMEOUT,
                "Anti-Spam Appeal DM",
            )
        except discord.Forbidden:
            logger.debug(f"Anti-spam DM failed for {member.id}: DMs disabled")

    async def get_log_channel(self, guild_id: int) -> Optional[discord.abc.Messageable]:
        """Anti-spam log channel, else the ticket log channel, else None."""
        settings_service: "SettingsService" = self.settings  # type: ignore
        bot: "MimiBot" = self.bot  # type: ignore
        settings = await settings_service.get_settings(guild_id)
        channel_id = settings.antispam_log_channel_id or settings.log_channel_id
        return await safe_fetch_channel(bot, channel_id)

    async def _log_spam(self, message: discord.Message, outcome: SpamOutcome, duration_str: str) -> None:
        guild = message.guild
        channel = await self.get_log_channel(guild.id)
        if channel is None:
            logger.warning("No Anti-Spam Log Channel", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Hint", "/config set anti_spam_log_channel"),
            ])
            return

        member = message.author
        embed = discord.Embed(
            title="🛡️ Automatic Timeout (Spam Detected)",
            color=EmbedColors.SPAM,
            timestamp=datetime.now(timezone.utc),
        )
        embed.add_field(name="👤 User", value=f"{member.mention} ({member.id})", inline=True)
        embed.add_field(name="🔗 Triggering Message", value=f"[Click to view]({message.jump_url})", inline=True)
        embed.add_field(name="📜 Reason", value=outcome.reason or "-", inline=False)
        embed.add_field(name="🏷️ Type", value=VERDICT_DISPLAY_NAMES.get(outcome.verdict, outcome.verdict.value), inline=True)
        embed.add_field(name="⏳ Duration", value=duration_str, inline=True)
        embed.add_field(name="🔁 Offense", value=f"#{outcome.punishment.offense_count}", inline=True)
        embed.set_thumbnail(url=member.display_avatar.url)
        set_footer(embed, f"Anti-Spam System | {guild.name}")

        await safe_send(channel, embed=embed)


__all__ = ["SpamHandlerMixin", "build_appeal_view"]
