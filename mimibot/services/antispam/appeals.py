"""
MimiBot - Anti-Spam Appeals
===========================

Appeal button -> reason modal -> staff review with Approve / Deny.

Custom IDs:
    appeal:{user_id}:{guild_id}                    DM button
    anti_spam_appeal_modal:{user_id}:{guild_id}    modal, field appeal_reason
    appeal_approve:{user_id}:{guild_id}            review button
    appeal_deny:{user_id}:{guild_id}               review button
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import discord

from mimibot.core.config import EmbedColors, has_staff_role
from mimibot.core.errors import TransientStoreError, Unauthorized, ValidationError
from mimibot.core.logger import logger
from mimibot.utils.footer import set_footer

from .constants import (
    APPEAL_APPROVE_PREFIX,
    APPEAL_DENY_PREFIX,
    APPEAL_MODAL_PREFIX,
    APPEAL_REASON_FIELD,
    APPEAL_REASON_MAX,
)

if TYPE_CHECKING:
    from mimibot.bot import MimiBot
    from mimibot.services.settings import SettingsService
    from .punishments import PunishmentStore


class AppealModal(discord.ui.Modal):
    """Reason form. Submission is handled by the router, not a callback."""

    def __init__(self, user_id: int, guild_id: int) -> None:
        super().__init__(
            title="Appeal Timeout",
            custom_id=f"{APPEAL_MODAL_PREFIX}:{user_id}:{guild_id}",
            timeout=None,
        )
        self.reason = discord.ui.TextInput(
            label="Reason for Appeal",
            custom_id=APPEAL_REASON_FIELD,
            style=discord.TextStyle.paragraph,
            max_length=APPEAL_REASON_MAX,
            required=True,
        )
        self.add_item(self.reason)


def build_review_view(user_id: int, guild_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Approve",
        style=discord.ButtonStyle.success,
        custom_id=f"{APPEAL_APPROVE_PREFIX}:{user_id}:{guild_id}",
    ))
    view.add_item(discord.ui.Button(
        label="Deny",
        style=discord.ButtonStyle.danger,
        custom_id=f"{APPEAL_DENY_PREFIX}:{user_id}:{guild_id}",
    ))
    return view


class AppealMixin:
    """Mixin class providing the appeal flow."""

    def _original_reason(self, guild_id: int, user_id: int) -> str:
        punishments: "PunishmentStore" = self.punishments  # type: ignore
        try:
            row = punishments.db.get_punishment_row(guild_id, user_id)
        except TransientStoreError:
            row = None
        return (row or {}).get("reason") or "Unknown"

    async def open_appeal(self, interaction: discord.Interaction, user_id: int, guild_id: int) -> None:
        """Show the reason modal to the punished user."""
        if interaction.user.id != user_id:
            raise Unauthorized("This appeal button is not for you.")
        await interaction.response.send_modal(AppealModal(user_id, guild_id))

    async def submit_appeal(
        self,
        interaction: discord.Interaction,
        user_id: int,
        guild_id: int,
        reason: str,
    ) -> bool:
        """
        Post the appeal for staff review.

        Returns:
            True if it reached a review channel.
        """
        if interaction.user.id != user_id:
            raise Unauthorized("This appeal is not yours to submit.")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Please tell us why this timeout was a mistake.")

        await interaction.response.defer(ephemeral=True)

        channel = await self.get_log_channel(guild_id)  # type: ignore[attr-defined]
        if channel is None:
            logger.warning("Appeal Without Review Channel", [
                ("Guild ID", str(guild_id)),
                ("User ID", str(user_id)),
            ])
            await interaction.followup.send(
                "Your appeal has been submitted, but the server administrators have not configured "
                "a channel to review it. Please contact them directly.",
                ephemeral=True,
            )
            return False

        user = interaction.user
        embed = discord.Embed(
            title="Timeout Appeal Review",
            color=EmbedColors.APPEAL,
            timestamp=datetime.now(timezone.utc),
        )
        embed.set_author(name=f"{user} ({user.id})", icon_url=user.display_avatar.url)
        embed.add_field(name="User", value=user.mention, inline=True)
        embed.add_field(name="Original Timeout Reason", value=self._original_reason(guild_id, user_id), inline=False)
        embed.add_field(name="Appeal Reason", value=reason[:APPEAL_REASON_MAX], inline=False)
        set_footer(embed)

        await channel.send(embed=embed, view=build_review_view(user_id, guild_id))

        # The DM's appeal button is single-use
        if interaction.message is not None:
            try:
                await interaction.message.edit(view=None)
            except discord.HTTPException as e:
                logger.debug(f"Appeal button removal failed: {e}")

        logger.tree("Appeal Submitted", [
            ("User", f"{user} ({user.id})"),
            ("Guild ID", str(guild_id)),
            ("Reason", reason[:60]),
        ], emoji="📨")

        await interaction.followup.send("Your appeal has been successfully submitted for review.", ephemeral=True)
        return True

    async def review_appeal(
        self,
        interaction: discord.Interaction,
        user_id: int,
        guild_id: int,
        approve: bool,
    ) -> None:
        """Approve (lift timeout, clear punishment) or deny an appeal."""
        settings_service: "SettingsService" = self.settings  # type: ignore
        punishments: "PunishmentStore" = self.punishments  # type: ignore
        bot: "MimiBot" = self.bot  # type: ignore

        settings = await settings_service.get_settings(guild_id)
        if not has_staff_role(interaction.user, settings.staff_role_id):
            raise Unauthorized("Only staff can review appeals.")

        await interaction.response.defer(ephemeral=True)

        guild = bot.get_guild(guild_id)
        member: Optional[discord.Member] = None
        if guild is not None:
            member = guild.get_member(user_id)
            if member is None:
                try:
                    member = await guild.fetch_member(user_id)
                except discord.HTTPException:
                    member = None

        if approve:
            if member is not None:
                try:
                    await member.timeout(None, reason=f"Appeal approved by {interaction.user}")
                except discord.HTTPException as e:
                    logger.warning("Timeout Removal Failed", [
                        ("User ID", str(user_id)),
                        ("Error", str(e)[:100]),
                    ])
            await punishments.clear(guild_id, user_id, int(datetime.now(timezone.utc).timestamp() * 1000))

        guild_name = guild.name if guild else str(guild_id)
        dm_text = (
            f"✅ Your appeal in **{guild_name}** was approved and your timeout has been lifted."
            if approve else
            f"❌ Your appeal in **{guild_name}** was reviewed and denied."
        )
        user = member or bot.get_user(user_id)
        if user is not None:
            try:
                await user.send(dm_text)
            except discord.HTTPException:
                logger.debug(f"Appeal result DM failed for {user_id}")

        if interaction.message is not None and interaction.message.embeds:
            embed = interaction.message.embeds[0]
            embed.color = EmbedColors.SUCCESS if approve else EmbedColors.ERROR
            embed.add_field(
                name="Decision",
                value=f"{'Approved' if approve else 'Denied'} by {interaction.user.mention}",
                inline=False,
            )
            try:
                await interaction.message.edit(embed=embed, view=None)
            except discord.HTTPException as e:
                logger.debug(f"Appeal review message edit failed: {e}")

        logger.tree("Appeal Reviewed", [
            ("User ID", str(user_id)),
            ("Guild ID", str(guild_id)),
            ("Decision", "Approved" if approve else "Denied"),
            ("Reviewer", f"{interaction.user} ({interaction.user.id})"),
        ], emoji="⚖️")

        await interaction.followup.send(
            f"Appeal {'approved' if approve else 'denied'}.",
            ephemeral=True,
        )


__all__ = ["AppealMixin", "AppealModal", "build_review_view"]
