"""
MimiBot - Event Router Tests
============================

Event construction, routing table and dispatch results.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import discord
import pytest

from mimibot.core.errors import InvalidTransition
from mimibot.events.router import (
    EventKind,
    InboundEvent,
    Router,
    dispatch,
    from_interaction,
    from_message,
)


CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)
CREATED_MS = int(CREATED.timestamp() * 1000)


def _interaction(itype, data):
    interaction = MagicMock()
    interaction.type = itype
    interaction.data = data
    interaction.guild_id = 10
    interaction.channel_id = 20
    interaction.user.id = 30
    interaction.created_at = CREATED
    return interaction


def _event(kind, custom_id):
    return InboundEvent(kind, 10, 30, 20, CREATED_MS, {"custom_id": custom_id})


class TestEventConstruction:

    def test_from_message(self):
        message = MagicMock()
        message.guild.id = 10
        message.author.id = 30
        message.channel.id = 20
        message.created_at = CREATED
        message.content = "hello"

        event = from_message(message)
        assert event.kind is EventKind.MESSAGE
        assert (event.guild_id, event.subject_id, event.channel_id) == (10, 30, 20)
        assert event.timestamp == CREATED_MS
        assert event.payload["content"] == "hello"
        assert event.raw is message

    def test_button(self):
        event = from_interaction(_interaction(
            discord.InteractionType.component,
            {"custom_id": "rate_ticket:5:12", "component_type": discord.ComponentType.button.value},
        ))
        assert event.kind is EventKind.BUTTON
        assert event.custom_id == "rate_ticket:5:12"

    def test_select_menu(self):
        event = from_interaction(_interaction(
            discord.InteractionType.component,
            {"custom_id": "ticket_log_menu:main:3", "component_type": 3, "values": ["status"]},
        ))
        assert event.kind is EventKind.SELECT_MENU
        assert event.values == ["status"]

    def test_modal_fields_from_rows_and_labels(self):
        event = from_interaction(_interaction(
            discord.InteractionType.modal_submit,
            {
                "custom_id": "close_ticket_modal",
                "components": [
                    {"type": 1, "components": [{"type": 4, "custom_id": "close_reason", "value": "done"}]},
                    {"type": 18, "component": {"type": 4, "custom_id": "extra", "value": "x"}},
                ],
            },
        ))
        assert event.kind is EventKind.MODAL
        assert event.fields == {"close_reason": "done", "extra": "x"}

    def test_command(self):
        event = from_interaction(_interaction(discord.InteractionType.application_command, {"name": "ticket"}))
        assert event.kind is EventKind.COMMAND
        assert event.custom_id == "ticket"
        assert event.options == {}

    def test_subcommand_path(self):
        event = from_interaction(_interaction(
            discord.InteractionType.application_command,
            {
                "name": "config",
                "options": [{
                    "type": 1,
                    "name": "antispam-reset",
                    "options": [{"type": 3, "name": "unused", "value": "x"}],
                }],
            },
        ))
        assert event.custom_id == "config antispam-reset"

    def test_ping_and_autocomplete_are_not_routed(self):
        assert from_interaction(_interaction(discord.InteractionType.ping, {})) is None
        assert from_interaction(_interaction(discord.InteractionType.autocomplete, {})) is None


class TestRouter:

    def test_duplicate_route_rejected(self):
        router = Router()

        @router.route("claim_ticket", EventKind.BUTTON)
        async def first(event):
            pass

        with pytest.raises(ValueError):
            @router.route("claim_ticket", EventKind.BUTTON)
            async def second(event):
                pass

        assert len(router) == 1
        assert ("claim_ticket", EventKind.BUTTON) in router

    def test_same_prefix_different_kind(self):
        router = Router()

        @router.route("appeal", EventKind.BUTTON)
        async def button(event):
            pass

        @router.route("appeal", EventKind.MODAL)
        async def modal(event):
            pass

        assert len(router) == 2


class TestDispatch:

    @pytest.mark.asyncio
    async def test_args_split_from_custom_id(self):
        router = Router()
        seen = []

        @router.route("rate_ticket", EventKind.BUTTON)
        async def rate(event, rating, ticket_id):
            seen.append((rating, ticket_id))
            return "rated"

        result = await dispatch(router, _event(EventKind.BUTTON, "rate_ticket:4:99"))
        assert result.ok and result.handled
        assert result.value == "rated"
        assert seen == [("4", "99")]

    @pytest.mark.asyncio
    async def test_exactly_one_handler_runs(self):
        router = Router()
        calls = []

        @router.route("x", EventKind.BUTTON)
        async def button(event):
            calls.append("button")

        @router.route("x", EventKind.MODAL)
        async def modal(event):
            calls.append("modal")

        await dispatch(router, _event(EventKind.MODAL, "x"))
        assert calls == ["modal"]

    @pytest.mark.asyncio
    async def test_unknown_route(self):
        result = await dispatch(Router(), _event(EventKind.BUTTON, "nothing"))
        assert result.ok is False
        assert result.handled is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_service_error_becomes_result(self):
        router = Router()

        @router.route("claim_ticket", EventKind.BUTTON)
        async def claim(event):
            raise InvalidTransition("This ticket is already closed.")

        result = await dispatch(router, _event(EventKind.BUTTON, "claim_ticket"))
        assert result.ok is False
        assert result.handled is True
        assert isinstance(result.error, InvalidTransition)

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self):
        router = Router()

        @router.route("boom", EventKind.BUTTON)
        async def boom(event):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await dispatch(router, _event(EventKind.BUTTON, "boom"))

    @pytest.mark.asyncio
    async def test_messages_route_on_empty_prefix(self):
        router = Router()

        @router.route("", EventKind.MESSAGE)
        async def on_message(event):
            return event.payload["content"]

        event = InboundEvent(EventKind.MESSAGE, 10, 30, 20, CREATED_MS, {"content": "hi"})
        result = await dispatch(router, event)
        assert result.value == "hi"
