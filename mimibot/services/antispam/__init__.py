"""
MimiBot - Anti-Spam Package
===========================

Rate/threshold spam detection, punishment state and appeals.

Structure:
    - models.py: SpamEvent, Verdict, SpamThresholds, PunishmentState
    - evaluator.py: Pure evaluate / prune_window / describe
    - punishments.py: Cache-first PunishmentStore
    - handlers.py: Timeout, notices and log embed
    - appeals.py: Appeal modal and staff review
    - service.py: AntiSpamService tying it together

Author: MimiDLC
"""

from .evaluator import describe, evaluate, prune_window
from .models import PunishmentState, SpamEvent, SpamOutcome, SpamThresholds, Verdict
from .punishments import PunishmentStore
from .service import AntiSpamService

__all__ = [
    "AntiSpamService",
    "PunishmentStore",
    "PunishmentState",
    "SpamEvent",
    "SpamOutcome",
    "SpamThresholds",
    "Verdict",
    "describe",
    "evaluate",
    "prune_window",
]
