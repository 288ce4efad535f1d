"""
MimiBot - Events Package
========================

Event listener Cogs and the inbound event router.

DESIGN:
    Listeners only translate Discord callbacks into InboundEvent and hand
    them to dispatch(); what happens next is decided by the route table in
    routes/.

    - router.py: InboundEvent, Router, dispatch
    - routes/: handlers per feature
    - messages.py: on_message
    - interactions.py: on_interaction (buttons, selects, modals)
    - slash commands reach dispatch() through the command cogs

Author: MimiDLC
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "mimibot.events.messages",
    "mimibot.events.interactions",
]
"""Event cog module paths, loaded with load_extension() in setup_hook."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "EVENT_COGS",
]
