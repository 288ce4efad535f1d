"""
MimiBot - Ticket Transcript Generator
=====================================

Plain-text transcript of a ticket channel, uploaded to the log channel on
close.

Author: MimiDLC
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from mimibot.core.config import LOCAL_TZ
from mimibot.core.database.models import TicketRecord


def _format_time(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    return value.astimezone(LOCAL_TZ).strftime("%b %d, %Y %I:%M %p %Z")


def _format_message(msg) -> str:
    author = msg.author
    tag = " [BOT]" if getattr(author, "bot", False) else ""
    lines = [f"[{_format_time(msg.created_at)}] {author.display_name} ({author.id}){tag}"]

    if msg.content:
        lines.extend(f"    {line}" for line in msg.content.splitlines())
    for embed in getattr(msg, "embeds", None) or []:
        if embed.title or embed.description:
            lines.append(f"    [Embed] {embed.title or ''} {(embed.description or '')[:200]}".rstrip())
    for attachment in getattr(msg, "attachments", None) or []:
        lines.append(f"    [Attachment] {attachment.url}")

    return "\n".join(lines)


def build_transcript(ticket: TicketRecord, messages: Iterable, guild_name: Optional[str] = None) -> str:
    """
    Render a ticket and its messages (oldest first) as text.

    Args:
        ticket: The closed ticket row.
        messages: discord.Message objects from the ticket channel.
        guild_name: Shown in the header when given.
    """
    header = [
        f"Ticket #{ticket.get('guild_ticket_id', ticket['id'])}" + (f" - {guild_name}" if guild_name else ""),
        "=" * 60,
        f"Owner:        {ticket['owner_id']}",
        f"Opened:       {_format_time(ticket.get('created_at'))}",
        f"Claimed by:   {ticket.get('claimed_by') or '-'}",
        f"Closed by:    {ticket.get('closed_by') or '-'}",
        f"Closed:       {_format_time(ticket.get('closed_at'))}",
        f"Issue:        {ticket.get('open_reason') or '-'}",
        f"Close reason: {ticket.get('close_reason') or '-'}",
        "=" * 60,
        "",
    ]

    body = [_format_message(m) for m in messages]
    if not body:
        body = ["(no messages)"]

    return "\n".join(header) + "\n\n".join(body) + "\n"


def transcript_filename(ticket: TicketRecord) -> str:
    return f"ticket-{ticket.get('guild_ticket_id', ticket['id'])}-transcript.txt"


__all__ = ["build_transcript", "transcript_filename"]
