"""
MimiBot - Ticket Types
======================

Per-guild ticket types ("billing", "report", ...) offered on the panel.

DESIGN:
    With no types configured the panel shows a single Open Ticket button.
    Once a guild has types, the panel shows a select menu instead and the
    chosen type travels in the modal custom id (create_ticket_modal:{type})
    until the ticket row is written.

Author: MimiDLC
"""

import re
from typing import TYPE_CHECKING, List, Optional

from mimibot.core.database.models import TicketTypeRecord
from mimibot.core.errors import ValidationError
from mimibot.core.logger import logger
from mimibot.utils.retry import retry_read

from .constants import MAX_TICKET_TYPES, TICKET_TYPE_LABEL_MAX, TICKET_TYPE_PATTERN

if TYPE_CHECKING:
    from .service import TicketService


_TYPE_RE = re.compile(TICKET_TYPE_PATTERN)


def validate_type_id(type_id: Optional[str]) -> str:
    value = (type_id or "").strip().lower()
    if not _TYPE_RE.match(value):
        raise ValidationError(
            "Ticket type ids use 1-32 lowercase letters, digits, `-` or `_` (e.g. `billing`)."
        )
    return value


class TicketTypesMixin:
    """Mixin class for ticket type management."""

    async def get_ticket_types(self: "TicketService", guild_id: int) -> List[TicketTypeRecord]:
        return await retry_read(self.db.get_ticket_types, guild_id)

    async def resolve_ticket_type(
        self: "TicketService",
        guild_id: int,
        type_id: Optional[str],
    ) -> Optional[TicketTypeRecord]:
        """
        The stored type for type_id; None when no type was chosen.

        Raises:
            ValidationError: type_id is set but unknown in this guild.
        """
        if not type_id:
            return None
        record = await retry_read(self.db.get_ticket_type, guild_id, type_id)
        if record is None:
            raise ValidationError("That ticket type is no longer available. Please pick another one.")
        return record

    async def add_ticket_type(
        self: "TicketService",
        guild_id: int,
        type_id: str,
        label: str,
        emoji: Optional[str] = None,
    ) -> TicketTypeRecord:
        """
        Add a type or relabel an existing one.

        Raises:
            ValidationError: Bad id, empty or long label, or too many types.
        """
        type_id = validate_type_id(type_id)
        label = (label or "").strip()
        if not label or len(label) > TICKET_TYPE_LABEL_MAX:
            raise ValidationError(f"Labels must be 1-{TICKET_TYPE_LABEL_MAX} characters.")
        emoji = (emoji or "").strip() or None

        existing = await self.get_ticket_types(guild_id)
        if len(existing) >= MAX_TICKET_TYPES and all(t["type_id"] != type_id for t in existing):
            raise ValidationError(f"A server can have at most {MAX_TICKET_TYPES} ticket types.")

        record = self.db.upsert_ticket_type(guild_id, type_id, label, emoji)
        logger.tree("Ticket Type Saved", [
            ("Guild ID", str(guild_id)),
            ("Type", type_id),
            ("Label", label),
        ], emoji="🏷️")
        return record

    async def remove_ticket_type(self: "TicketService", guild_id: int, type_id: str) -> bool:
        """Existing tickets keep their type; only the panel option goes away."""
        removed = self.db.delete_ticket_type(guild_id, (type_id or "").strip().lower())
        if removed:
            logger.tree("Ticket Type Removed", [
                ("Guild ID", str(guild_id)),
                ("Type", type_id),
            ], emoji="🏷️")
        return removed


__all__ = ["TicketTypesMixin", "validate_type_id"]
