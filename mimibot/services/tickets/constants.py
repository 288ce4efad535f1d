"""
MimiBot - Ticket System Constants
=================================

Statuses, annotation values, custom-id prefixes and limits for the ticket
desk.

Author: MimiDLC
"""

from mimibot.core.config import EmbedColors


# =============================================================================
# Status
# =============================================================================

STATUS_OPEN = "open"
STATUS_CLAIMED = "claimed"
STATUS_CLOSED = "closed"

STATUS_EMOJI = {
    STATUS_OPEN: "🟢",
    STATUS_CLAIMED: "🔵",
    STATUS_CLOSED: "🔴",
}

STATUS_COLOR = {
    STATUS_OPEN: EmbedColors.TICKET_OPEN,
    STATUS_CLAIMED: EmbedColors.TICKET_CLAIMED,
    STATUS_CLOSED: EmbedColors.TICKET_CLOSED,
}


# =============================================================================
# Post-Closure Annotations
# =============================================================================

CATEGORIES = {
    "technical": {"label": "Technical", "emoji": "🛠️"},
    "billing": {"label": "Billing", "emoji": "💳"},
    "general": {"label": "General", "emoji": "💬"},
    "report": {"label": "Report", "emoji": "🚩"},
    "feedback": {"label": "Feedback", "emoji": "📝"},
    "abuse": {"label": "Abuse", "emoji": "⛔"},
}

RESOLUTIONS = {
    "resolved": {"label": "Resolved", "emoji": "✅"},
    "unresolved": {"label": "Unresolved", "emoji": "❌"},
    "follow_up": {"label": "Follow Up", "emoji": "🔁"},
    "abuse": {"label": "Abuse", "emoji": "⛔"},
}

RATING_MIN = 1
RATING_MAX = 5


# =============================================================================
# Custom IDs
# =============================================================================

CREATE_TICKET_ID = "create_ticket"
CREATE_TICKET_MODAL_ID = "create_ticket_modal"
CREATE_TICKET_MENU_ID = "create_ticket_menu"
CLAIM_TICKET_ID = "claim_ticket"
CLOSE_TICKET_ID = "close_ticket"
CLOSE_TICKET_MODAL_ID = "close_ticket_modal"
RATE_TICKET_PREFIX = "rate_ticket"
FEEDBACK_MODAL_PREFIX = "feedback_comment_modal"
LOG_MENU_PREFIX = "ticket_log_menu"
CONFIRM_PURGE_PREFIX = "confirm_purge"
CONFIRM_CLOSE_REQUEST_PREFIX = "confirm_close_request"
CANCEL_CLOSE_REQUEST_PREFIX = "cancel_close_request"

DESCRIPTION_FIELD = "ticket_description"
CLOSE_REASON_FIELD = "close_reason"
FEEDBACK_COMMENT_FIELD = "feedback_comment"

# Log menu levels; "back" is a value, not a level
LOG_MENU_MAIN = "main"
LOG_MENU_HISTORY = "history"
LOG_MENU_STATUS = "status"
LOG_MENU_CATEGORY = "category"
LOG_MENU_RATING = "rating"
LOG_MENU_BACK = "back"


# =============================================================================
# Limits & Timeouts
# =============================================================================

DESCRIPTION_MIN = 10
DESCRIPTION_MAX = 1024
CLOSE_REASON_MAX = 1024
FEEDBACK_COMMENT_MAX = 1000
HISTORY_LIMIT = 25
MAX_TRANSCRIPT_MESSAGES = 500

# Ticket types end up in channel names and custom ids
TICKET_TYPE_PATTERN = r"^[a-z0-9][a-z0-9_-]{0,31}$"
TICKET_TYPE_LABEL_MAX = 80
MAX_TICKET_TYPES = 25  # options in one select menu


__all__ = [
    "STATUS_OPEN",
    "STATUS_CLAIMED",
    "STATUS_CLOSED",
    "STATUS_EMOJI",
    "STATUS_COLOR",
    "CATEGORIES",
    "RESOLUTIONS",
    "RATING_MIN",
    "RATING_MAX",
    "CREATE_TICKET_ID",
    "CREATE_TICKET_MODAL_ID",
    "CREATE_TICKET_MENU_ID",
    "CLAIM_TICKET_ID",
    "CLOSE_TICKET_ID",
    "CLOSE_TICKET_MODAL_ID",
    "RATE_TICKET_PREFIX",
    "FEEDBACK_MODAL_PREFIX",
    "LOG_MENU_PREFIX",
    "CONFIRM_PURGE_PREFIX",
    "CONFIRM_CLOSE_REQUEST_PREFIX",
    "CANCEL_CLOSE_REQUEST_PREFIX",
    "DESCRIPTION_FIELD",
    "CLOSE_REASON_FIELD",
    "FEEDBACK_COMMENT_FIELD",
    "LOG_MENU_MAIN",
    "LOG_MENU_HISTORY",
    "LOG_MENU_STATUS",
    "LOG_MENU_CATEGORY",
    "LOG_MENU_RATING",
    "LOG_MENU_BACK",
    "DESCRIPTION_MIN",
    "DESCRIPTION_MAX",
    "CLOSE_REASON_MAX",
    "FEEDBACK_COMMENT_MAX",
    "HISTORY_LIMIT",
    "MAX_TRANSCRIPT_MESSAGES",
    "TICKET_TYPE_PATTERN",
    "TICKET_TYPE_LABEL_MAX",
    "MAX_TICKET_TYPES",
]
