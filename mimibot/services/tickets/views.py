"""
MimiBot - Ticket System Views
=============================

Buttons, selects and modals of the ticket desk.

DESIGN:
    Every component carries a plain custom_id and no callback. Clicks and
    submissions arrive through on_interaction and are routed by custom-id
    prefix (see mimibot.events.router), so the views survive restarts
    without being re-registered.

Custom IDs:
    create_ticket                              panel button
    create_ticket_menu                         panel type select
    create_ticket_modal[:{type}]               description form
    claim_ticket / close_ticket                ticket channel buttons
    close_ticket_modal                         close reason form
    rate_ticket:{rating}:{ticket_id}           DM rating buttons
    feedback_comment_modal:{rating}:{ticket_id}
    ticket_log_menu:{menu}:{ticket_id}         log message selects
    confirm_purge:{user_id}                    purge confirmation
    confirm_close_request:{ticket_id}          close request answers
    cancel_close_request:{ticket_id}

Author: MimiDLC
"""

from datetime import datetime, timezone
from typing import List, Optional

import discord

from mimibot.core.database.models import TicketRecord, TicketTypeRecord

from .constants import (
    CANCEL_CLOSE_REQUEST_PREFIX,
    CATEGORIES,
    CLAIM_TICKET_ID,
    CLOSE_REASON_FIELD,
    CLOSE_REASON_MAX,
    CLOSE_TICKET_ID,
    CLOSE_TICKET_MODAL_ID,
    CONFIRM_CLOSE_REQUEST_PREFIX,
    CONFIRM_PURGE_PREFIX,
    CREATE_TICKET_ID,
    CREATE_TICKET_MENU_ID,
    CREATE_TICKET_MODAL_ID,
    DESCRIPTION_FIELD,
    DESCRIPTION_MAX,
    DESCRIPTION_MIN,
    FEEDBACK_COMMENT_FIELD,
    FEEDBACK_COMMENT_MAX,
    FEEDBACK_MODAL_PREFIX,
    HISTORY_LIMIT,
    LOG_MENU_BACK,
    LOG_MENU_CATEGORY,
    LOG_MENU_HISTORY,
    LOG_MENU_MAIN,
    LOG_MENU_PREFIX,
    LOG_MENU_RATING,
    LOG_MENU_STATUS,
    RATE_TICKET_PREFIX,
    RATING_MAX,
    RATING_MIN,
    RESOLUTIONS,
)


# =============================================================================
# Panel & Ticket Channel
# =============================================================================

def build_panel_view(ticket_types: Optional[List[TicketTypeRecord]] = None) -> discord.ui.View:
    """Open Ticket button, or a type select once the guild has types."""
    view = discord.ui.View(timeout=None)
    if not ticket_types:
        view.add_item(discord.ui.Button(
            label="Open Ticket",
            style=discord.ButtonStyle.primary,
            custom_id=CREATE_TICKET_ID,
            emoji="🎫",
        ))
        return view

    view.add_item(discord.ui.Select(
        custom_id=CREATE_TICKET_MENU_ID,
        placeholder="What do you need help with?",
        options=[
            discord.SelectOption(label=t["label"], value=t["type_id"], emoji=t.get("emoji") or None)
            for t in ticket_types
        ],
    ))
    return view


def build_control_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Claim",
        style=discord.ButtonStyle.success,
        custom_id=CLAIM_TICKET_ID,
        emoji="✋",
    ))
    view.add_item(discord.ui.Button(
        label="Close",
        style=discord.ButtonStyle.danger,
        custom_id=CLOSE_TICKET_ID,
        emoji="🔒",
    ))
    return view


class OpenTicketModal(discord.ui.Modal):
    """Issue description form shown from the panel button or type select."""

    def __init__(self, ticket_type: Optional[TicketTypeRecord] = None) -> None:
        custom_id = CREATE_TICKET_MODAL_ID
        title = "Open a Ticket"
        if ticket_type is not None:
            custom_id = f"{CREATE_TICKET_MODAL_ID}:{ticket_type['type_id']}"
            title = f"Open a Ticket • {ticket_type['label']}"[:45]
        super().__init__(title=title, custom_id=custom_id, timeout=None)
        self.description = discord.ui.TextInput(
            label="Describe your issue",
            custom_id=DESCRIPTION_FIELD,
            style=discord.TextStyle.paragraph,
            min_length=DESCRIPTION_MIN,
            max_length=DESCRIPTION_MAX,
            required=True,
        )
        self.add_item(self.description)


class CloseTicketModal(discord.ui.Modal):
    def __init__(self) -> None:
        super().__init__(title="Close Ticket", custom_id=CLOSE_TICKET_MODAL_ID, timeout=None)
        self.reason = discord.ui.TextInput(
            label="Reason for closing",
            custom_id=CLOSE_REASON_FIELD,
            style=discord.TextStyle.paragraph,
            max_length=CLOSE_REASON_MAX,
            required=False,
        )
        self.add_item(self.reason)


def build_close_request_view(ticket_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Confirm Close",
        style=discord.ButtonStyle.danger,
        custom_id=f"{CONFIRM_CLOSE_REQUEST_PREFIX}:{ticket_id}",
        emoji="🔒",
    ))
    view.add_item(discord.ui.Button(
        label="Keep Open",
        style=discord.ButtonStyle.secondary,
        custom_id=f"{CANCEL_CLOSE_REQUEST_PREFIX}:{ticket_id}",
        emoji="↩️",
    ))
    return view


# =============================================================================
# Owner Feedback
# =============================================================================

def build_rating_view(ticket_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for rating in range(RATING_MIN, RATING_MAX + 1):
        view.add_item(discord.ui.Button(
            label=str(rating),
            emoji="⭐",
            style=discord.ButtonStyle.secondary,
            custom_id=f"{RATE_TICKET_PREFIX}:{rating}:{ticket_id}",
        ))
    return view


class FeedbackModal(discord.ui.Modal):
    """Optional comment after the owner picks a rating."""

    def __init__(self, rating: int, ticket_id: int) -> None:
        super().__init__(
            title=f"Rate Ticket {'⭐' * rating}",
            custom_id=f"{FEEDBACK_MODAL_PREFIX}:{rating}:{ticket_id}",
            timeout=None,
        )
        self.comment = discord.ui.TextInput(
            label="Anything you'd like to add? (optional)",
            custom_id=FEEDBACK_COMMENT_FIELD,
            style=discord.TextStyle.paragraph,
            max_length=FEEDBACK_COMMENT_MAX,
            required=False,
        )
        self.add_item(self.comment)


# =============================================================================
# Log Menu
# =============================================================================

MAIN_MENU_OPTIONS = {
    LOG_MENU_HISTORY: ("User's Ticket History", "📋", "Browse the owner's previous tickets"),
    LOG_MENU_STATUS: ("Set Resolution", "📌", "Mark how this ticket ended"),
    LOG_MENU_CATEGORY: ("Set Category", "📂", "Classify this ticket"),
    LOG_MENU_RATING: ("Set Rating", "⭐", "Rate how this ticket went"),
}


def _back_option() -> discord.SelectOption:
    return discord.SelectOption(label="Back", value=LOG_MENU_BACK, emoji="↩️")


def _main_menu(ticket_id: int, selected: Optional[str] = None) -> discord.ui.Select:
    return discord.ui.Select(
        custom_id=f"{LOG_MENU_PREFIX}:{LOG_MENU_MAIN}:{ticket_id}",
        placeholder="Manage this ticket...",
        options=[
            discord.SelectOption(
                label=label,
                value=value,
                emoji=emoji,
                description=description,
                default=value == selected,
            )
            for value, (label, emoji, description) in MAIN_MENU_OPTIONS.items()
        ],
    )


def _history_option(ticket: TicketRecord) -> discord.SelectOption:
    closed_at = ticket.get("closed_at")
    when = (
        datetime.fromtimestamp(closed_at, tz=timezone.utc).strftime("%Y-%m-%d")
        if closed_at else ticket.get("status", "open")
    )
    return discord.SelectOption(
        label=f"#{ticket.get('guild_ticket_id') or ticket['id']} • {when}",
        value=str(ticket["id"]),
        description=(ticket.get("close_reason") or ticket.get("open_reason") or "No reason")[:100],
    )


def _submenu(ticket_id: int, menu: str, history: Optional[List[TicketRecord]] = None) -> discord.ui.Select:
    if menu == LOG_MENU_HISTORY:
        options = [_history_option(t) for t in (history or [])[:HISTORY_LIMIT - 1]]
        placeholder = "Select a ticket to view..."
    elif menu == LOG_MENU_STATUS:
        options = [
            discord.SelectOption(label=info["label"], value=value, emoji=info["emoji"])
            for value, info in RESOLUTIONS.items()
        ]
        placeholder = "Select a resolution..."
    elif menu == LOG_MENU_CATEGORY:
        options = [
            discord.SelectOption(label=info["label"], value=value, emoji=info["emoji"])
            for value, info in CATEGORIES.items()
        ]
        placeholder = "Select a category..."
    elif menu == LOG_MENU_RATING:
        options = [
            discord.SelectOption(label="⭐" * r, value=str(r), description=f"{r}/5")
            for r in range(RATING_MAX, RATING_MIN - 1, -1)
        ]
        placeholder = "Select a rating..."
    else:
        raise ValueError(f"Unknown log menu: {menu}")

    options.append(_back_option())
    return discord.ui.Select(
        custom_id=f"{LOG_MENU_PREFIX}:{menu}:{ticket_id}",
        placeholder=placeholder,
        options=options,
    )


def build_log_menu_view(
    ticket_id: int,
    menu: str = LOG_MENU_MAIN,
    history: Optional[List[TicketRecord]] = None,
) -> discord.ui.View:
    """
    Main menu, plus the chosen submenu when one is open.

    Args:
        ticket_id: Ticket the log message belongs to.
        menu: LOG_MENU_MAIN or one of the submenu names.
        history: Owner's tickets, for the history submenu.
    """
    view = discord.ui.View(timeout=None)
    if menu == LOG_MENU_MAIN:
        view.add_item(_main_menu(ticket_id))
    else:
        view.add_item(_main_menu(ticket_id, selected=menu))
        view.add_item(_submenu(ticket_id, menu, history))
    return view


# =============================================================================
# Purge
# =============================================================================

def build_purge_confirm_view(user_id: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Delete ALL tickets",
        style=discord.ButtonStyle.danger,
        custom_id=f"{CONFIRM_PURGE_PREFIX}:{user_id}",
        emoji="🗑️",
    ))
    return view


__all__ = [
    "build_panel_view",
    "build_control_view",
    "OpenTicketModal",
    "CloseTicketModal",
    "build_close_request_view",
    "build_rating_view",
    "FeedbackModal",
    "build_log_menu_view",
    "build_purge_confirm_view",
    "MAIN_MENU_OPTIONS",
]
