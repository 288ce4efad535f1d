"""
MimiBot - Ticket Annotations
============================

Post-mortem fields set on CLOSED tickets: category, resolution, rating and
the owner's feedback. Values are validated before any write.

Author: MimiDLC
"""

from typing import TYPE_CHECKING, Any, Callable, Optional

from mimibot.core.database.models import TicketRecord
from mimibot.core.errors import InvalidTransition, Unauthorized, ValidationError
from mimibot.core.logger import logger

from .constants import (
    CATEGORIES,
    FEEDBACK_COMMENT_MAX,
    RATING_MAX,
    RATING_MIN,
    RESOLUTIONS,
    STATUS_CLOSED,
)

if TYPE_CHECKING:
    from .service import TicketService


NOT_CLOSED_MESSAGE = "Tickets can only be annotated after they are closed."


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationError(f"Rating must be a whole number from {RATING_MIN} to {RATING_MAX}.")
    return rating


def validate_category(category: Optional[str]) -> str:
    if category not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}.")
    return category


def validate_resolution(resolution: Optional[str]) -> Optional[str]:
    """None passes through (close without a resolution)."""
    if resolution is None:
        return None
    if resolution not in RESOLUTIONS:
        raise ValidationError(f"Resolution must be one of: {', '.join(RESOLUTIONS)}.")
    return resolution


class AnnotationsMixin:
    """Mixin class for post-closure ticket annotations."""

    async def _annotate(
        self: "TicketService",
        ticket_id: int,
        field: str,
        value: Any,
        write: Callable[..., bool],
        *args: Any,
    ) -> TicketRecord:
        ticket = await self.get_ticket(ticket_id)
        if ticket.get("status") != STATUS_CLOSED:
            raise InvalidTransition(NOT_CLOSED_MESSAGE)

        async with self._hold(self._ticket_locks, ticket_id):
            if not write(ticket_id, *args):
                raise InvalidTransition(NOT_CLOSED_MESSAGE)
            ticket = self.db.get_ticket(ticket_id)

        logger.tree("Ticket Annotated", [
            ("Ticket", f"#{ticket.get('guild_ticket_id')} (id {ticket_id})"),
            ("Field", field),
            ("Value", str(value)[:50]),
        ], emoji="🏷️")

        await self.refresh_log_message(ticket)
        return ticket

    async def set_category(self: "TicketService", ticket_id: int, category: str) -> TicketRecord:
        category = validate_category(category)
        return await self._annotate(ticket_id, "category", category, self.db.set_ticket_category, category)

    async def set_resolution(self: "TicketService", ticket_id: int, resolution: str) -> TicketRecord:
        if resolution is None:
            raise ValidationError("A resolution is required.")
        resolution = validate_resolution(resolution)
        return await self._annotate(ticket_id, "resolution", resolution, self.db.set_ticket_resolution, resolution)

    async def set_rating(self: "TicketService", ticket_id: int, rating: int) -> TicketRecord:
        rating = validate_rating(rating)
        return await self._annotate(ticket_id, "rating", rating, self.db.set_ticket_rating, rating)

    async def set_feedback(
        self: "TicketService",
        ticket_id: int,
        rating: int,
        comment: Optional[str] = None,
        submitted_by: Optional[int] = None,
    ) -> TicketRecord:
        """
        Store the owner's rating and optional comment from the DM flow.

        Raises:
            ValidationError: Rating outside 1-5.
            Unauthorized: submitted_by is not the ticket owner.
            InvalidTransition: Ticket is not closed.
        """
        rating = validate_rating(rating)
        comment = (comment or "").strip()[:FEEDBACK_COMMENT_MAX] or None

        ticket = await self.get_ticket(ticket_id)
        if submitted_by is not None and submitted_by != ticket["owner_id"]:
            raise Unauthorized("Only the ticket owner can leave feedback.")

        return await self._annotate(
            ticket_id, "feedback", f"{rating}/5", self.db.set_ticket_feedback, rating, comment
        )


__all__ = ["AnnotationsMixin", "validate_rating", "validate_category", "validate_resolution"]
