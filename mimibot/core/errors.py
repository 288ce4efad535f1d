"""
MimiBot - Error Taxonomy
========================

Exceptions raised by services and caught at the command/router boundary.

DESIGN:
    Services raise; cogs and the event router catch MimiError subclasses
    and turn them into ephemeral failure embeds. Anything that is not a
    MimiError is unexpected and goes through ErrorHandler.

    Not retried:  ValidationError, DuplicateActiveTicket, InvalidTransition,
                  Unauthorized, TicketNotFound, ConfigurationMissing
    Retried:      TransientStoreError (reads only, bounded backoff)
    Logged only:  SideEffectFailure (after a committed transition)

Author: MimiDLC
"""

from typing import Optional


class MimiError(Exception):
    """Base class for errors that carry a user-facing message."""

    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MimiError):
    """Bad input, e.g. a rating outside 1-5."""

    default_message = "Invalid input."


class DuplicateActiveTicket(MimiError):
    """The owner already has an open or claimed ticket in this guild."""

    default_message = "You already have an active ticket."

    def __init__(self, message: Optional[str] = None, channel_id: Optional[int] = None) -> None:
        self.channel_id = channel_id
        if message is None and channel_id:
            message = f"You already have an active ticket: <#{channel_id}>"
        super().__init__(message)


class InvalidTransition(MimiError):
    """The ticket is not in a state that allows this action."""

    default_message = "This action is not allowed in the ticket's current state."


class Unauthorized(MimiError):
    default_message = "You don't have permission to do that."


class TicketNotFound(MimiError):
    default_message = "Ticket not found."


class ConfigurationMissing(MimiError):
    """Required guild configuration is absent, so the action never starts."""

    default_message = "The ticket system is not configured for this server."


class TransientStoreError(MimiError):
    """Cache or database momentarily unreachable."""

    default_message = "The bot is having trouble reaching its storage. Please try again."


class SideEffectFailure(MimiError):
    """A chat-platform call failed (create/archive/delete channel, send, DM)."""

    default_message = "A Discord operation failed."

    def __init__(self, message: Optional[str] = None, operation: str = "unknown") -> None:
        self.operation = operation
        super().__init__(message)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "MimiError",
    "ValidationError",
    "DuplicateActiveTicket",
    "InvalidTransition",
    "Unauthorized",
    "TicketNotFound",
    "ConfigurationMissing",
    "TransientStoreError",
    "SideEffectFailure",
]
