"""
MimiBot - Inbound Event Router
==============================

One event type for everything Discord sends us, one routing table, one
dispatch function.

DESIGN:
    Messages and interactions are turned into an InboundEvent tagged with
    an EventKind. Component and modal custom ids have the form
    "prefix:arg1:arg2"; the router looks up (prefix, kind) and calls the
    registered handler with the remaining parts as string arguments.
    Slash commands use their full path ("ticket open") as the prefix and
    carry their parsed arguments in payload["options"].

    dispatch() runs exactly one handler. A MimiError raised by it becomes
    RouteResult(ok=False, error=...) for the caller to show; anything else
    propagates to the caller's error handling.

Author: MimiDLC
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import discord

from mimibot.core.errors import MimiError
from mimibot.core.logger import logger


class EventKind(str, Enum):
    MESSAGE = "message"
    BUTTON = "button"
    MODAL = "modal"
    SELECT_MENU = "select_menu"
    COMMAND = "command"


Handler = Callable[..., Awaitable[Any]]


@dataclass
class InboundEvent:
    """A chat message or an interaction, reduced to what routing needs."""

    kind: EventKind
    guild_id: Optional[int]
    subject_id: int
    channel_id: Optional[int]
    timestamp: int  # epoch ms
    payload: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None

    @property
    def custom_id(self) -> str:
        return self.payload.get("custom_id") or ""

    @property
    def values(self) -> List[str]:
        return self.payload.get("values") or []

    @property
    def fields(self) -> Dict[str, str]:
        return self.payload.get("fields") or {}

    @property
    def options(self) -> Dict[str, Any]:
        return self.payload.get("options") or {}


@dataclass
class RouteResult:
    ok: bool
    error: Optional[MimiError] = None
    handled: bool = True
    value: Any = None


# =============================================================================
# Event Construction
# =============================================================================

def _to_ms(dt) -> int:
    return int(dt.timestamp() * 1000)


def from_message(message: discord.Message) -> InboundEvent:
    return InboundEvent(
        kind=EventKind.MESSAGE,
        guild_id=message.guild.id if message.guild else None,
        subject_id=message.author.id,
        channel_id=message.channel.id,
        timestamp=_to_ms(message.created_at),
        payload={"content": message.content or ""},
        raw=message,
    )


def _modal_fields(components: List[Dict[str, Any]]) -> Dict[str, str]:
    """Text input values keyed by custom id, from action rows or labels."""
    fields: Dict[str, str] = {}
    for row in components or []:
        children = row.get("components")
        if children is None and "component" in row:
            children = [row["component"]]
        for child in children or []:
            if "custom_id" in child and "value" in child:
                fields[child["custom_id"]] = child["value"]
    return fields


def _command_path(data: Dict[str, Any]) -> str:
    """Full command name, e.g. "ticket open", from nested subcommand options."""
    parts = [data.get("name", "")]
    options = data.get("options") or []
    # 1 = subcommand, 2 = subcommand group
    while options and options[0].get("type") in (1, 2):
        parts.append(options[0].get("name", ""))
        options = options[0].get("options") or []
    return " ".join(part for part in parts if part)


def from_interaction(interaction: discord.Interaction) -> Optional[InboundEvent]:
    """
    Build an event from an interaction.

    Returns:
        None for interaction types that are never routed (pings,
        autocomplete).
    """
    data = interaction.data or {}
    payload: Dict[str, Any] = {}

    if interaction.type == discord.InteractionType.component:
        payload["custom_id"] = data.get("custom_id", "")
        if data.get("component_type") == discord.ComponentType.button.value:
            kind = EventKind.BUTTON
        else:
            kind = EventKind.SELECT_MENU
            payload["values"] = list(data.get("values") or [])
    elif interaction.type == discord.InteractionType.modal_submit:
        kind = EventKind.MODAL
        payload["custom_id"] = data.get("custom_id", "")
        payload["fields"] = _modal_fields(data.get("components") or [])
    elif interaction.type == discord.InteractionType.application_command:
        kind = EventKind.COMMAND
        payload["custom_id"] = _command_path(data)
    else:
        return None

    return InboundEvent(
        kind=kind,
        guild_id=interaction.guild_id,
        subject_id=interaction.user.id,
        channel_id=interaction.channel_id,
        timestamp=_to_ms(interaction.created_at),
        payload=payload,
        raw=interaction,
    )


# =============================================================================
# Routing
# =============================================================================

class Router:
    """Routing table keyed by (custom-id prefix, event kind)."""

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, EventKind], Handler] = {}

    def route(self, prefix: str, kind: EventKind) -> Callable[[Handler], Handler]:
        """
        Register a handler.

        Example:
            @router.route("claim_ticket", EventKind.BUTTON)
            async def claim(event: InboundEvent) -> None:
                ...
        """
        def register(handler: Handler) -> Handler:
            key = (prefix, kind)
            if key in self._routes:
                raise ValueError(f"Route already registered: {prefix} ({kind.value})")
            self._routes[key] = handler
            return handler
        return register

    def resolve(self, event: InboundEvent) -> Optional[Tuple[Handler, List[str]]]:
        prefix, *args = event.custom_id.split(":") if event.custom_id else [""]
        handler = self._routes.get((prefix, event.kind))
        if handler is None:
            return None
        return handler, args

    def __contains__(self, key: Tuple[str, EventKind]) -> bool:
        return key in self._routes

    def __len__(self) -> int:
        return len(self._routes)


async def dispatch(router: Router, event: InboundEvent) -> RouteResult:
    """Run the single handler for an event."""
    resolved = router.resolve(event)
    if resolved is None:
        return RouteResult(ok=False, error=None, handled=False)

    handler, args = resolved
    try:
        value = await handler(event, *args)
    except MimiError as e:
        logger.debug("Route Rejected", [
            ("Kind", event.kind.value),
            ("Custom ID", event.custom_id[:60] or "-"),
            ("User ID", str(event.subject_id)),
            ("Error", f"{type(e).__name__}: {e.message[:80]}"),
        ])
        return RouteResult(ok=False, error=e)

    return RouteResult(ok=True, value=value)


__all__ = [
    "EventKind",
    "InboundEvent",
    "RouteResult",
    "Router",
    "dispatch",
    "from_message",
    "from_interaction",
]
