"""
MimiBot - Admin Command Routes
==============================

/config, /panel and /keyword slash commands.

DESIGN:
    Per-guild settings live in the database and these commands are the
    only way to change them. The panel is a persistent view (no timeout,
    fixed custom ids), so it keeps working across restarts without
    re-registering anything. If a panel was posted before it is edited in
    place; when that message is gone a new one is posted and its id stored.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, List, Optional

import discord

from mimibot.core.config import EmbedColors, is_admin
from mimibot.core.database.keywords import KeywordRule, MatchType
from mimibot.core.errors import ConfigurationMissing, SideEffectFailure, Unauthorized, ValidationError
from mimibot.core.logger import logger
from mimibot.services.settings import FIELD_ALIASES, GuildSettings, resolve_field
from mimibot.services.tickets.embeds import build_panel_embed
from mimibot.services.tickets.views import build_panel_view
from mimibot.utils.duration import format_duration_ms, parse_duration_ms
from mimibot.utils.footer import set_footer
from mimibot.utils.interaction import respond_result, safe_respond

from ..router import EventKind, InboundEvent, Router

if TYPE_CHECKING:
    from mimibot.bot import MimiBot
    from mimibot.services.antispam.models import SpamThresholds


FIELD_VALUE_MAX = 1024

CHANNEL_COLUMNS = (
    "log_channel_id",
    "panel_channel_id",
    "antispam_log_channel_id",
    "ticket_category_id",
    "archive_category_id",
)


# =============================================================================
# Formatting
# =============================================================================

def show_setting(column: str, value) -> str:
    if value is None:
        return "*not set*"
    if column.endswith("_role_id"):
        return f"<@&{value}>"
    if column in CHANNEL_COLUMNS:
        return f"<#{value}>"
    text = str(value)
    return text if len(text) <= 100 else text[:97] + "..."


def parse_window(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    ms = parse_duration_ms(raw)
    if ms is None:
        raise ValidationError(f"`{name}` must be a duration like `10s`, `5m` or `1h`.")
    return ms


def build_settings_embed(guild: discord.Guild, settings: GuildSettings, thresholds: "SpamThresholds") -> discord.Embed:
    embed = discord.Embed(title=f"⚙️ Settings • {guild.name}", color=EmbedColors.INFO)
    embed.add_field(
        name="🎫 Tickets",
        value="\n".join(
            f"**{name}**: {show_setting(column, getattr(settings, column))}"
            for name, column in FIELD_ALIASES.items()
        ),
        inline=False,
    )
    embed.add_field(
        name="🛡️ Anti-Spam",
        value=(
            f"**Single channel**: {thresholds.message_threshold} messages / "
            f"{format_duration_ms(thresholds.time_window_ms)}\n"
            f"**Multi channel**: {thresholds.multi_channel_threshold} channels / "
            f"{format_duration_ms(thresholds.multi_channel_window_ms)}\n"
            f"**Timeout**: {format_duration_ms(thresholds.timeout_duration_ms)}"
        ),
        inline=False,
    )
    if not settings.ticket_ready:
        embed.add_field(
            name="⚠️ Setup Incomplete",
            value="Set `ticket_category` and `staff_role` before members can open tickets.",
            inline=False,
        )
    return set_footer(embed)


def build_keyword_list_embed(guild_name: str, rules: List[KeywordRule]) -> discord.Embed:
    embed = discord.Embed(
        title=f"💬 Keywords • {guild_name}",
        color=EmbedColors.INFO,
    )
    if not rules:
        embed.description = "No keywords configured. Add one with `/keyword add`."
        return set_footer(embed)

    embed.description = f"**{len(rules)}** keyword(s)"
    chunk = ""
    for rule in rules:
        reply = rule.reply if len(rule.reply) <= 60 else rule.reply[:57] + "..."
        line = f"`{rule.keyword}` ({rule.match_type.value}) → {reply}\n"
        if len(chunk) + len(line) > FIELD_VALUE_MAX:
            embed.add_field(name="Rules" if not embed.fields else "Rules (cont.)", value=chunk, inline=False)
            chunk = ""
        chunk += line
    if chunk:
        embed.add_field(name="Rules" if not embed.fields else "Rules (cont.)", value=chunk, inline=False)
    return set_footer(embed)


def _require_admin(event: InboundEvent) -> discord.Member:
    member = event.raw.user
    if not is_admin(member):
        raise Unauthorized("You don't have permission to use this command.")
    return member


# =============================================================================
# Routes
# =============================================================================

def register_admin_command_routes(router: Router, bot: "MimiBot") -> None:
    """Attach /config, /panel and /keyword handlers to the router."""

    # =========================================================================
    # Config
    # =========================================================================

    @router.route("config set", EventKind.COMMAND)
    async def config_set(event: InboundEvent) -> None:
        member = _require_admin(event)
        name = event.options.get("field", "")
        settings = await bot.settings_service.set_field(event.guild_id, name, event.options.get("value", ""))
        column = resolve_field(name)

        logger.tree("Setting Changed", [
            ("Guild ID", str(event.guild_id)),
            ("Field", column),
            ("Value", str(getattr(settings, column))[:50]),
            ("By", f"{member} ({member.id})"),
        ], emoji="⚙️")

        await respond_result(event.raw, f"**{name}** set to {show_setting(column, getattr(settings, column))}.")

    @router.route("config clear", EventKind.COMMAND)
    async def config_clear(event: InboundEvent) -> None:
        member = _require_admin(event)
        name = event.options.get("field", "")
        await bot.settings_service.clear_field(event.guild_id, name)
        logger.tree("Setting Cleared", [
            ("Guild ID", str(event.guild_id)),
            ("Field", resolve_field(name)),
            ("By", f"{member} ({member.id})"),
        ], emoji="⚙️")
        await respond_result(event.raw, f"**{name}** cleared.")

    @router.route("config view", EventKind.COMMAND)
    async def config_view(event: InboundEvent) -> None:
        _require_admin(event)
        settings = await bot.settings_service.get_settings(event.guild_id)
        thresholds = await bot.settings_service.get_thresholds(event.guild_id)
        await safe_respond(event.raw, embed=build_settings_embed(event.raw.guild, settings, thresholds))

    @router.route("config antispam", EventKind.COMMAND)
    async def config_antispam(event: InboundEvent) -> None:
        member = _require_admin(event)
        options = event.options
        fields = {
            "message_threshold": options.get("threshold"),
            "time_window_ms": parse_window("time_window", options.get("time_window")),
            "multi_channel_threshold": options.get("multi_threshold"),
            "multi_channel_window_ms": parse_window("multi_window", options.get("multi_window")),
            "timeout_duration_ms": parse_window("timeout", options.get("timeout")),
        }
        if all(v is None for v in fields.values()):
            thresholds = await bot.settings_service.get_thresholds(event.guild_id)
        else:
            thresholds = await bot.settings_service.update_thresholds(event.guild_id, **fields)
            logger.tree("Anti-Spam Thresholds Changed", [
                ("Guild ID", str(event.guild_id)),
                ("Changed", ", ".join(k for k, v in fields.items() if v is not None)),
                ("By", f"{member} ({member.id})"),
            ], emoji="🛡️")

        settings = await bot.settings_service.get_settings(event.guild_id)
        await safe_respond(event.raw, embed=build_settings_embed(event.raw.guild, settings, thresholds))

    @router.route("config antispam-reset", EventKind.COMMAND)
    async def config_antispam_reset(event: InboundEvent) -> None:
        _require_admin(event)
        if await bot.settings_service.reset_thresholds(event.guild_id):
            await respond_result(event.raw, "Anti-spam thresholds restored to the defaults.")
        else:
            await respond_result(event.raw, "This server already uses the default thresholds.")

    # =========================================================================
    # Panel
    # =========================================================================

    @router.route("panel setup", EventKind.COMMAND)
    async def panel_setup(event: InboundEvent) -> None:
        member = _require_admin(event)
        interaction: discord.Interaction = event.raw
        guild_id = event.guild_id
        settings = await bot.settings_service.get_settings(guild_id)
        if not settings.panel_channel_id:
            raise ConfigurationMissing("Set `panel_channel` with `/config set` first.")

        await interaction.response.defer(ephemeral=True, thinking=True)

        dispatcher = bot.ticket_service.dispatcher
        ticket_types = await bot.ticket_service.get_ticket_types(guild_id)
        embed = build_panel_embed(
            settings.panel_title,
            settings.panel_description,
            settings.panel_thumbnail_url,
        )

        if settings.panel_message_id:
            try:
                await dispatcher.edit_message(
                    settings.panel_channel_id,
                    settings.panel_message_id,
                    embed=embed,
                    view=build_panel_view(ticket_types),
                )
                await respond_result(interaction, f"Panel refreshed in <#{settings.panel_channel_id}>.")
                return
            except SideEffectFailure as e:
                logger.debug(f"Old panel not editable, posting a new one: {e.message}")

        message_id = await dispatcher.send_message(
            settings.panel_channel_id,
            embed=embed,
            view=build_panel_view(ticket_types),
        )
        await bot.settings_service.update_settings(guild_id, panel_message_id=message_id)

        logger.tree("Ticket Panel Posted", [
            ("Guild ID", str(guild_id)),
            ("Channel", str(settings.panel_channel_id)),
            ("Message ID", str(message_id)),
            ("Types", str(len(ticket_types))),
            ("By", f"{member} ({member.id})"),
        ], emoji="🎫")

        await respond_result(interaction, f"Panel posted in <#{settings.panel_channel_id}>.")

    # =========================================================================
    # Keywords
    # =========================================================================

    @router.route("keyword add", EventKind.COMMAND)
    async def keyword_add(event: InboundEvent) -> None:
        member = _require_admin(event)
        match_type = event.options.get("match_type")
        mode = MatchType(match_type) if match_type else MatchType.CONTAINS
        rule = await bot.keyword_service.add(
            event.guild_id,
            event.options.get("keyword", ""),
            event.options.get("reply", ""),
            mode,
            created_by=member.id,
        )

        logger.tree("Keyword Added", [
            ("Guild ID", str(event.guild_id)),
            ("Keyword", rule.keyword[:50]),
            ("Match", rule.match_type.value),
            ("By", f"{member} ({member.id})"),
        ], emoji="💬")

        await respond_result(event.raw, f"Keyword `{rule.keyword}` saved ({rule.match_type.value}).")

    @router.route("keyword remove", EventKind.COMMAND)
    async def keyword_remove(event: InboundEvent) -> None:
        member = _require_admin(event)
        keyword = event.options.get("keyword", "")
        if not await bot.keyword_service.remove(event.guild_id, keyword):
            raise ValidationError(f"No keyword `{keyword}` found.")

        logger.tree("Keyword Removed", [
            ("Guild ID", str(event.guild_id)),
            ("Keyword", keyword[:50]),
            ("By", f"{member} ({member.id})"),
        ], emoji="💬")
        await respond_result(event.raw, f"Keyword `{keyword}` removed.")

    @router.route("keyword list", EventKind.COMMAND)
    async def keyword_list(event: InboundEvent) -> None:
        _require_admin(event)
        rules = await bot.keyword_service.get_rules(event.guild_id)
        await safe_respond(event.raw, embed=build_keyword_list_embed(event.raw.guild.name, rules))


__all__ = [
    "register_admin_command_routes",
    "build_keyword_list_embed",
    "build_settings_embed",
]
