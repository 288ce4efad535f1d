"""
MimiBot - Ticket System Embeds
==============================

Embed builder functions for the ticket desk.

Author: MimiDLC
"""

from datetime import datetime, timezone
from typing import List, Optional

import discord

from mimibot.core.config import EmbedColors
from mimibot.core.database.models import TicketRecord, TicketStatsRecord, TicketTypeRecord
from mimibot.utils.footer import set_footer

from .constants import CATEGORIES, RESOLUTIONS, STATUS_COLOR, STATUS_EMOJI


DEFAULT_PANEL_TITLE = "🎫 Support Tickets"
DEFAULT_PANEL_DESCRIPTION = (
    "Need help from the staff team?\n"
    "Press **Open Ticket** below and describe your issue. "
    "A private channel will be created for you."
)


def ticket_number(ticket: TicketRecord) -> str:
    return f"#{ticket.get('guild_ticket_id') or ticket['id']}"


def stars(rating: Optional[int]) -> str:
    if not rating:
        return "Not rated"
    return "⭐" * rating + f" ({rating}/5)"


def _label(table: dict, value: Optional[str]) -> str:
    if not value:
        return "-"
    info = table.get(value)
    if info is None:
        return value
    return f"{info['emoji']} {info['label']}"


def _ts(value: Optional[float], style: str = "f") -> str:
    return f"<t:{int(value)}:{style}>" if value else "-"


# =============================================================================
# Panel
# =============================================================================

def build_panel_embed(
    title: Optional[str] = None,
    description: Optional[str] = None,
    thumbnail_url: Optional[str] = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=title or DEFAULT_PANEL_TITLE,
        description=description or DEFAULT_PANEL_DESCRIPTION,
        color=EmbedColors.PINK,
    )
    if thumbnail_url:
        embed.set_thumbnail(url=thumbnail_url)
    return set_footer(embed)


# =============================================================================
# Ticket Channel
# =============================================================================

def type_label(ticket_type: Optional[TicketTypeRecord]) -> str:
    if ticket_type is None:
        return "General"
    if ticket_type.get("emoji"):
        return f"{ticket_type['emoji']} {ticket_type['label']}"
    return ticket_type["label"]


def build_ticket_embed(
    ticket: TicketRecord,
    owner: discord.abc.User,
    ticket_type: Optional[TicketTypeRecord] = None,
) -> discord.Embed:
    """First message in a new ticket channel."""
    embed = discord.Embed(
        title=f"🎫 Ticket {ticket_number(ticket)}",
        description=(
            f"Welcome {owner.mention}! A staff member will be with you shortly.\n\n"
            f"**Type:** {type_label(ticket_type)}\n"
            f"**Issue:**\n{ticket.get('open_reason') or '-'}"
        ),
        color=STATUS_COLOR["open"],
        timestamp=datetime.now(timezone.utc),
    )
    embed.set_author(name=str(owner), icon_url=owner.display_avatar.url)
    return set_footer(embed)


def build_claim_embed(ticket: TicketRecord, staff: discord.abc.User) -> discord.Embed:
    embed = discord.Embed(
        description=f"✋ {staff.mention} has claimed this ticket and will assist you.",
        color=STATUS_COLOR["claimed"],
    )
    return set_footer(embed)


def build_close_notice_embed(
    ticket: TicketRecord,
    closed_by: discord.abc.User,
    delete_in: Optional[int] = None,
) -> discord.Embed:
    lines = [f"🔒 Ticket closed by {closed_by.mention}."]
    if ticket.get("close_reason"):
        lines.append(f"**Reason:** {ticket['close_reason']}")
    if delete_in is not None:
        lines.append(f"This channel will be deleted in {delete_in} seconds.")
    else:
        lines.append("This channel has been archived.")
    embed = discord.Embed(description="\n".join(lines), color=STATUS_COLOR["closed"])
    return set_footer(embed)


def build_member_access_embed(
    member: discord.abc.User,
    by: discord.abc.User,
    added: bool,
) -> discord.Embed:
    if added:
        text = f"➕ {member.mention} was added to this ticket by {by.mention}."
    else:
        text = f"➖ {member.mention} was removed from this ticket by {by.mention}."
    return set_footer(discord.Embed(description=text, color=EmbedColors.INFO))


def build_close_request_embed(
    ticket: TicketRecord,
    requested_by: discord.abc.User,
    reason: Optional[str] = None,
) -> discord.Embed:
    embed = discord.Embed(
        title="🔔 Close Request",
        description=(
            f"{requested_by.mention} would like to close ticket {ticket_number(ticket)}.\n"
            f"**Reason:** {reason or 'No reason provided'}\n\n"
            "Confirm to close it now, or cancel to keep it open."
        ),
        color=EmbedColors.WARNING,
        timestamp=datetime.now(timezone.utc),
    )
    return set_footer(embed)


def build_close_request_cancelled_embed(cancelled_by: discord.abc.User) -> discord.Embed:
    embed = discord.Embed(
        title="↩️ Close Request Cancelled",
        description=f"{cancelled_by.mention} cancelled the close request. The ticket stays open.",
        color=EmbedColors.INFO,
    )
    return set_footer(embed)


# =============================================================================
# Log Channel
# =============================================================================

def build_log_embed(ticket: TicketRecord) -> discord.Embed:
    """Log channel summary of a ticket; refreshed whenever it is annotated."""
    status = ticket.get("status", "closed")
    embed = discord.Embed(
        title=f"{STATUS_EMOJI.get(status, '')} Ticket {ticket_number(ticket)}",
        color=STATUS_COLOR.get(status, EmbedColors.INFO),
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(name="👤 Owner", value=f"<@{ticket['owner_id']}>", inline=True)
    embed.add_field(
        name="✋ Claimed By",
        value=f"<@{ticket['claimed_by']}>" if ticket.get("claimed_by") else "-",
        inline=True,
    )
    embed.add_field(
        name="🔒 Closed By",
        value=f"<@{ticket['closed_by']}>" if ticket.get("closed_by") else "-",
        inline=True,
    )
    embed.add_field(name="📅 Opened", value=_ts(ticket.get("created_at")), inline=True)
    embed.add_field(name="📅 Closed", value=_ts(ticket.get("closed_at")), inline=True)
    embed.add_field(name="📂 Category", value=_label(CATEGORIES, ticket.get("category")), inline=True)
    embed.add_field(name="📌 Resolution", value=_label(RESOLUTIONS, ticket.get("resolution")), inline=True)
    embed.add_field(name="⭐ Rating", value=stars(ticket.get("rating")), inline=True)
    if ticket.get("ticket_type"):
        embed.add_field(name="🏷️ Type", value=ticket["ticket_type"], inline=True)
    embed.add_field(name="📝 Issue", value=(ticket.get("open_reason") or "-")[:1024], inline=False)
    embed.add_field(name="💬 Close Reason", value=(ticket.get("close_reason") or "-")[:1024], inline=False)
    if ticket.get("feedback"):
        embed.add_field(name="🗒️ Feedback", value=ticket["feedback"][:1024], inline=False)
    if ticket.get("transcript_url"):
        embed.add_field(name="📜 Transcript", value=f"[Download]({ticket['transcript_url']})", inline=False)
    return set_footer(embed, f"Ticket ID {ticket['id']}")


def build_side_effect_failure_embed(ticket: Optional[TicketRecord], operation: str, message: str) -> discord.Embed:
    embed = discord.Embed(
        title="⚠️ Ticket Action Incomplete",
        description=message,
        color=EmbedColors.WARNING,
        timestamp=datetime.now(timezone.utc),
    )
    if ticket is not None:
        embed.add_field(name="Ticket", value=ticket_number(ticket), inline=True)
        if ticket.get("channel_id"):
            embed.add_field(name="Channel", value=f"<#{ticket['channel_id']}>", inline=True)
    embed.add_field(name="Operation", value=operation, inline=True)
    return set_footer(embed)


# =============================================================================
# History
# =============================================================================

def build_history_embed(
    tickets: List[TicketRecord],
    title: str,
    stats: Optional[TicketStatsRecord] = None,
) -> discord.Embed:
    embed = discord.Embed(title=title, color=EmbedColors.INFO)

    if stats is not None:
        avg = f"{stats['avg_rating']:.1f}/5" if stats.get("avg_rating") else "-"
        embed.description = (
            f"**Total:** {stats['total']} • 🟢 {stats['open']} • 🔵 {stats['claimed']} • "
            f"🔴 {stats['closed']} • ⭐ {avg}"
        )

    if not tickets:
        embed.add_field(name="No tickets", value="Nothing to show yet.", inline=False)
        return set_footer(embed)

    lines = []
    for ticket in tickets:
        status = ticket.get("status", "open")
        line = f"{STATUS_EMOJI.get(status, '')} **{ticket_number(ticket)}** <@{ticket['owner_id']}> • {_ts(ticket.get('created_at'), 'R')}"
        if ticket.get("rating"):
            line += f" • {'⭐' * ticket['rating']}"
        lines.append(line)

    # Field values cap at 1024 characters
    chunks: List[List[str]] = [[]]
    size = 0
    for line in lines:
        if size + len(line) + 1 > 1024:
            chunks.append([])
            size = 0
        chunks[-1].append(line)
        size += len(line) + 1
    for i, chunk in enumerate(chunks):
        embed.add_field(name="Tickets" if i == 0 else "Tickets (cont.)", value="\n".join(chunk), inline=False)

    return set_footer(embed)


# =============================================================================
# Owner DM
# =============================================================================

def build_rating_request_embed(ticket: TicketRecord, guild_name: str) -> discord.Embed:
    embed = discord.Embed(
        title=f"🔒 Ticket {ticket_number(ticket)} Closed",
        description=(
            f"Your ticket in **{guild_name}** has been closed.\n"
            f"**Reason:** {ticket.get('close_reason') or 'No reason provided'}\n\n"
            "How was your experience? Pick a rating below."
        ),
        color=EmbedColors.PINK,
    )
    return set_footer(embed)


__all__ = [
    "build_panel_embed",
    "build_ticket_embed",
    "build_claim_embed",
    "build_close_notice_embed",
    "build_member_access_embed",
    "build_close_request_embed",
    "build_close_request_cancelled_embed",
    "build_log_embed",
    "build_side_effect_failure_embed",
    "build_history_embed",
    "build_rating_request_embed",
    "ticket_number",
    "type_label",
    "stars",
]
