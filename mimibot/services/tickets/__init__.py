"""
MimiBot - Ticket System Package
===============================

Support tickets as private channels: OPEN -> CLAIMED -> CLOSED.

Structure:
    - constants.py: Statuses, annotation values, custom IDs, limits
    - dispatcher.py: NotificationDispatcher interface + DiscordDispatcher
    - service.py: TicketService lifecycle (open, claim, close, history, purge)
    - access.py: Adding / removing channel members, close requests
    - ticket_types.py: Per-guild ticket types offered on the panel
    - annotations.py: Category / resolution / rating / feedback on closed tickets
    - post_close.py: Transcript, log message, DM and archive after close
    - embeds.py: Embed builders
    - views.py: Buttons, selects and modals (routed by custom id)
    - transcript.py: Plain-text transcript

Author: MimiDLC
"""

from .annotations import validate_category, validate_rating, validate_resolution
from .dispatcher import DiscordDispatcher, NotificationDispatcher
from .service import TicketService, validate_description

__all__ = [
    "TicketService",
    "NotificationDispatcher",
    "DiscordDispatcher",
    "validate_description",
    "validate_category",
    "validate_rating",
    "validate_resolution",
]
