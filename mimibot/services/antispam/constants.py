"""
Anti-Spam Constants
===================

Custom ids, display names and housekeeping intervals.
"""

from .models import Verdict


# =============================================================================
# Custom IDs
# =============================================================================

APPEAL_BUTTON_PREFIX = "appeal"
APPEAL_MODAL_PREFIX = "anti_spam_appeal_modal"
APPEAL_APPROVE_PREFIX = "appeal_approve"
APPEAL_DENY_PREFIX = "appeal_deny"
APPEAL_REASON_FIELD = "appeal_reason"

APPEAL_REASON_MAX = 1000


# =============================================================================
# Display
# =============================================================================

VERDICT_DISPLAY_NAMES = {
    Verdict.SINGLE_CHANNEL_SPAM: "Single-Channel Spam",
    Verdict.MULTI_CHANNEL_SPAM: "Multi-Channel Spam",
}

CHANNEL_NOTICE_DELETE_AFTER = 30  # seconds
DM_TIMEOUT = 10.0  # seconds


# =============================================================================
# Housekeeping
# =============================================================================

WINDOW_CLEANUP_INTERVAL = 300  # seconds
MAX_TRACKED_SUBJECTS = 10000

# A fresh punishment is not reconciled against Discord until its timeout
# has had time to land; messages already in flight would otherwise lift it.
RECONCILE_GRACE_MS = 5000
