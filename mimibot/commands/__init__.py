"""
MimiBot - Commands Package
==========================

Slash commands, one cog package per command group.

DESIGN:
    Each package exposes async setup(bot); the bot loads every entry of
    COMMAND_COGS with load_extension(). Cogs only declare signatures and
    hand the interaction to the event router; handlers live in
    events/routes/ and state changes in the services.

Available Commands:
    /ticket: open, claim, close, request-close, add, remove, history
    /ticket (admin): purge, type-add, type-remove
    /config: set, clear, view, antispam, antispam-reset (admin)
    /panel: setup (admin)
    /keyword: add, remove, list (admin)

Author: MimiDLC
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "mimibot.commands.ticket",
    "mimibot.commands.config",
    "mimibot.commands.panel",
    "mimibot.commands.keyword",
]


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "COMMAND_COGS",
]
