"""
MimiBot - Route Handler Tests
=============================

Ticket, command and message routes driven through dispatch().
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from mimibot.commands.common import GENERIC_FAILURE, CommandErrorMixin
from mimibot.core.errors import ConfigurationMissing, DuplicateActiveTicket, Unauthorized, ValidationError
from mimibot.events.router import EventKind, InboundEvent, dispatch
from mimibot.events.routes import build_router
from mimibot.services.antispam.models import SpamOutcome, Verdict
from mimibot.services.tickets.views import CloseTicketModal, OpenTicketModal

from conftest import GUILD_ID


DESCRIPTION = "The bot keeps kicking me from voice."


def _interaction(user, channel_id=None):
    interaction = MagicMock()
    interaction.user = user
    interaction.guild_id = GUILD_ID
    interaction.channel_id = channel_id
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.response.send_modal = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _event(kind, custom_id, interaction, values=None, fields=None, options=None):
    payload = {"custom_id": custom_id}
    if values is not None:
        payload["values"] = values
    if fields is not None:
        payload["fields"] = fields
    if options is not None:
        payload["options"] = options
    return InboundEvent(
        kind,
        GUILD_ID,
        interaction.user.id,
        interaction.channel_id,
        0,
        payload,
        interaction,
    )


@pytest.fixture
def bot(ticket_service, settings_service):
    bot = MagicMock()
    bot.ticket_service = ticket_service
    bot.settings_service = settings_service
    bot.antispam.check_message = AsyncMock(return_value=SpamOutcome(Verdict.CLEAN))
    bot.keyword_service.reply_to = AsyncMock(return_value=None)
    return bot


@pytest.fixture
def router(bot):
    return build_router(bot)


class TestRouteTable:

    def test_all_routes_registered(self, router):
        expected = [
            ("", EventKind.MESSAGE),
            ("create_ticket", EventKind.BUTTON),
            ("create_ticket_modal", EventKind.MODAL),
            ("claim_ticket", EventKind.BUTTON),
            ("close_ticket", EventKind.BUTTON),
            ("close_ticket_modal", EventKind.MODAL),
            ("rate_ticket", EventKind.BUTTON),
            ("feedback_comment_modal", EventKind.MODAL),
            ("ticket_log_menu", EventKind.SELECT_MENU),
            ("confirm_purge", EventKind.BUTTON),
            ("appeal", EventKind.BUTTON),
            ("anti_spam_appeal_modal", EventKind.MODAL),
            ("appeal_approve", EventKind.BUTTON),
            ("appeal_deny", EventKind.BUTTON),
            ("create_ticket_menu", EventKind.SELECT_MENU),
            ("confirm_close_request", EventKind.BUTTON),
            ("cancel_close_request", EventKind.BUTTON),
            ("ticket open", EventKind.COMMAND),
            ("ticket claim", EventKind.COMMAND),
            ("ticket close", EventKind.COMMAND),
            ("ticket request-close", EventKind.COMMAND),
            ("ticket add", EventKind.COMMAND),
            ("ticket remove", EventKind.COMMAND),
            ("ticket history", EventKind.COMMAND),
            ("ticket purge", EventKind.COMMAND),
            ("ticket type-add", EventKind.COMMAND),
            ("ticket type-remove", EventKind.COMMAND),
            ("config set", EventKind.COMMAND),
            ("config clear", EventKind.COMMAND),
            ("config view", EventKind.COMMAND),
            ("config antispam", EventKind.COMMAND),
            ("config antispam-reset", EventKind.COMMAND),
            ("panel setup", EventKind.COMMAND),
            ("keyword add", EventKind.COMMAND),
            ("keyword remove", EventKind.COMMAND),
            ("keyword list", EventKind.COMMAND),
        ]
        for key in expected:
            assert key in router
        assert len(router) == len(expected)


class TestTicketRoutes:

    @pytest.mark.asyncio
    async def test_open_button_shows_modal(self, router, configured_guild, owner):
        interaction = _interaction(owner)
        result = await dispatch(router, _event(EventKind.BUTTON, "create_ticket", interaction))

        assert result.ok
        modal = interaction.response.send_modal.await_args.args[0]
        assert isinstance(modal, OpenTicketModal)

    @pytest.mark.asyncio
    async def test_open_button_unconfigured(self, router, owner):
        interaction = _interaction(owner)
        result = await dispatch(router, _event(EventKind.BUTTON, "create_ticket", interaction))

        assert isinstance(result.error, ConfigurationMissing)
        interaction.response.send_modal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_open_button_with_active_ticket(self, router, ticket_service, configured_guild, owner, mock_guild):
        await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)

        result = await dispatch(router, _event(EventKind.BUTTON, "create_ticket", _interaction(owner)))
        assert isinstance(result.error, DuplicateActiveTicket)

    @pytest.mark.asyncio
    async def test_claim_button(self, router, ticket_service, configured_guild, owner, staff, mock_guild, test_db):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        interaction = _interaction(staff, ticket["channel_id"])

        result = await dispatch(router, _event(EventKind.BUTTON, "claim_ticket", interaction))

        assert result.ok
        assert test_db.get_ticket(ticket["id"])["claimed_by"] == staff.id
        interaction.response.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_claim_outside_ticket_channel(self, router, configured_guild, staff):
        result = await dispatch(router, _event(EventKind.BUTTON, "claim_ticket", _interaction(staff, 1)))
        assert result.error.message == "This channel is not a ticket."

    @pytest.mark.asyncio
    async def test_log_menu_sets_rating(self, router, ticket_service, configured_guild, owner, staff, mock_guild, test_db):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        await ticket_service.close_ticket(ticket["id"], owner)
        await ticket_service.drain()

        interaction = _interaction(staff)
        result = await dispatch(router, _event(
            EventKind.SELECT_MENU, f"ticket_log_menu:rating:{ticket['id']}", interaction, ["4"]
        ))

        assert result.ok
        assert test_db.get_ticket(ticket["id"])["rating"] == 4
        interaction.response.edit_message.assert_awaited_once()
        interaction.followup.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_log_menu_staff_only(self, router, ticket_service, configured_guild, owner, stranger, mock_guild):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        await ticket_service.close_ticket(ticket["id"], owner)
        await ticket_service.drain()

        result = await dispatch(router, _event(
            EventKind.SELECT_MENU, f"ticket_log_menu:main:{ticket['id']}", _interaction(stranger), ["rating"]
        ))
        assert isinstance(result.error, Unauthorized)

    @pytest.mark.asyncio
    async def test_rate_button_owner_only(self, router, ticket_service, configured_guild, owner, stranger, mock_guild):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        await ticket_service.close_ticket(ticket["id"], owner)
        await ticket_service.drain()

        result = await dispatch(router, _event(
            EventKind.BUTTON, f"rate_ticket:5:{ticket['id']}", _interaction(stranger)
        ))
        assert isinstance(result.error, Unauthorized)

    @pytest.mark.asyncio
    async def test_bad_custom_id_argument(self, router, configured_guild, owner):
        result = await dispatch(router, _event(EventKind.BUTTON, "rate_ticket:5:abc", _interaction(owner)))
        assert result.error.message == "This button is no longer valid."

    @pytest.mark.asyncio
    async def test_purge_confirm_for_someone_else(self, router, configured_guild, admin, stranger):
        result = await dispatch(router, _event(
            EventKind.BUTTON, f"confirm_purge:{admin.id}", _interaction(stranger)
        ))
        assert isinstance(result.error, Unauthorized)

    @pytest.mark.asyncio
    async def test_purge_confirm(self, router, ticket_service, configured_guild, owner, admin, mock_guild, test_db):
        await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        interaction = _interaction(admin)

        result = await dispatch(router, _event(EventKind.BUTTON, f"confirm_purge:{admin.id}", interaction))

        assert result.ok
        assert test_db.get_guild_tickets(GUILD_ID) == []
        assert interaction.response.edit_message.await_args.kwargs["view"] is None


class TestMessageRoute:

    def _message_event(self):
        message = MagicMock()
        return InboundEvent(EventKind.MESSAGE, GUILD_ID, 1, 2, 0, {"content": "hi"}, message)

    @pytest.mark.asyncio
    async def test_clean_message_gets_keyword_reply(self, router, bot):
        await dispatch(router, self._message_event())
        bot.keyword_service.reply_to.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_spam_skips_keyword_reply(self, router, bot):
        bot.antispam.check_message.return_value = SpamOutcome(Verdict.SINGLE_CHANNEL_SPAM)
        await dispatch(router, self._message_event())
        bot.keyword_service.reply_to.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_punished_author_skips_keyword_reply(self, router, bot):
        bot.antispam.check_message.return_value = SpamOutcome(Verdict.CLEAN, skipped=True)
        await dispatch(router, self._message_event())
        bot.keyword_service.reply_to.assert_not_awaited()


class TestTicketTypeRoutes:

    @pytest.mark.asyncio
    async def test_menu_opens_typed_modal(self, router, ticket_service, configured_guild, owner):
        await ticket_service.add_ticket_type(GUILD_ID, "billing", "Billing")
        interaction = _interaction(owner)

        result = await dispatch(router, _event(
            EventKind.SELECT_MENU, "create_ticket_menu", interaction, ["billing"]
        ))

        assert result.ok
        modal = interaction.response.send_modal.await_args.args[0]
        assert modal.custom_id == "create_ticket_modal:billing"

    @pytest.mark.asyncio
    async def test_menu_with_removed_type(self, router, configured_guild, owner):
        interaction = _interaction(owner)
        result = await dispatch(router, _event(
            EventKind.SELECT_MENU, "create_ticket_menu", interaction, ["gone"]
        ))

        assert isinstance(result.error, ValidationError)
        interaction.response.send_modal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_typed_modal_submit(self, router, ticket_service, configured_guild, owner, mock_guild, test_db):
        await ticket_service.add_ticket_type(GUILD_ID, "billing", "Billing")
        interaction = _interaction(owner)
        interaction.guild = mock_guild

        result = await dispatch(router, _event(
            EventKind.MODAL, "create_ticket_modal:billing", interaction, fields={"ticket_description": DESCRIPTION}
        ))

        assert result.ok
        assert test_db.get_active_ticket(GUILD_ID, owner.id)["ticket_type"] == "billing"


class TestCloseRequestRoutes:

    @pytest.mark.asyncio
    async def test_owner_confirm_shows_close_modal(self, router, ticket_service, configured_guild, owner, mock_guild):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        interaction = _interaction(owner, ticket["channel_id"])

        result = await dispatch(router, _event(
            EventKind.BUTTON, f"confirm_close_request:{ticket['id']}", interaction
        ))

        assert result.ok
        assert isinstance(interaction.response.send_modal.await_args.args[0], CloseTicketModal)

    @pytest.mark.asyncio
    async def test_unclaimed_staff_cannot_answer(self, router, ticket_service, configured_guild, owner, staff, mock_guild):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)

        result = await dispatch(router, _event(
            EventKind.BUTTON, f"confirm_close_request:{ticket['id']}", _interaction(staff, ticket["channel_id"])
        ))
        assert isinstance(result.error, Unauthorized)

    @pytest.mark.asyncio
    async def test_cancel_removes_buttons(self, router, ticket_service, configured_guild, owner, mock_guild, test_db):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)
        interaction = _interaction(owner, ticket["channel_id"])

        result = await dispatch(router, _event(
            EventKind.BUTTON, f"cancel_close_request:{ticket['id']}", interaction
        ))

        assert result.ok
        assert interaction.response.edit_message.await_args.kwargs["view"] is None
        assert test_db.get_ticket(ticket["id"])["status"] == "open"


class TestCommandRoutes:

    @pytest.mark.asyncio
    async def test_open_command(self, router, configured_guild, owner, mock_guild, test_db):
        interaction = _interaction(owner)
        interaction.guild = mock_guild

        result = await dispatch(router, _event(
            EventKind.COMMAND, "ticket open", interaction, options={"description": DESCRIPTION, "ticket_type": None}
        ))

        assert result.ok
        assert test_db.count_owner_tickets(GUILD_ID, owner.id) == 1

    @pytest.mark.asyncio
    async def test_add_member_command(self, router, ticket_service, configured_guild, owner, staff, stranger, mock_guild, dispatcher):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)

        result = await dispatch(router, _event(
            EventKind.COMMAND, "ticket add", _interaction(staff, ticket["channel_id"]), options={"user": stranger}
        ))

        assert result.ok
        assert dispatcher.calls_for("add_member") == [("add_member", ticket["channel_id"], stranger.id)]

    @pytest.mark.asyncio
    async def test_request_close_command(self, router, ticket_service, configured_guild, owner, staff, mock_guild, dispatcher):
        ticket = await ticket_service.open_ticket(owner, mock_guild, DESCRIPTION)

        result = await dispatch(router, _event(
            EventKind.COMMAND, "ticket request-close", _interaction(staff, ticket["channel_id"]), options={"reason": None}
        ))

        assert result.ok
        assert dispatcher.calls_for("send_message")[-1][2] == owner.mention

    @pytest.mark.asyncio
    async def test_type_commands_admin_only(self, router, configured_guild, staff, admin, ticket_service):
        denied = await dispatch(router, _event(
            EventKind.COMMAND, "ticket type-add", _interaction(staff), options={"type_id": "billing", "label": "Billing"}
        ))
        assert isinstance(denied.error, Unauthorized)

        added = await dispatch(router, _event(
            EventKind.COMMAND, "ticket type-add", _interaction(admin), options={"type_id": "billing", "label": "Billing"}
        ))
        assert added.ok
        assert [t["type_id"] for t in await ticket_service.get_ticket_types(GUILD_ID)] == ["billing"]

        missing = await dispatch(router, _event(
            EventKind.COMMAND, "ticket type-remove", _interaction(admin), options={"type_id": "refunds"}
        ))
        assert isinstance(missing.error, ValidationError)

    @pytest.mark.asyncio
    async def test_config_set_admin_only(self, router, settings_service, stranger, admin):
        options = {"field": "staff_role", "value": "<@&42>"}

        denied = await dispatch(router, _event(EventKind.COMMAND, "config set", _interaction(stranger), options=options))
        assert isinstance(denied.error, Unauthorized)

        result = await dispatch(router, _event(EventKind.COMMAND, "config set", _interaction(admin), options=options))
        assert result.ok
        assert (await settings_service.get_settings(GUILD_ID)).staff_role_id == 42

    @pytest.mark.asyncio
    async def test_panel_setup_shows_type_menu(self, router, ticket_service, settings_service, configured_guild, admin, dispatcher):
        await settings_service.update_settings(GUILD_ID, panel_channel_id=321)
        await ticket_service.add_ticket_type(GUILD_ID, "billing", "Billing")

        result = await dispatch(router, _event(EventKind.COMMAND, "panel setup", _interaction(admin)))

        assert result.ok
        post = dispatcher.calls_for("send_message")[-1]
        assert post[1] == 321
        assert [item.custom_id for item in post[4].children] == ["create_ticket_menu"]
        assert (await settings_service.get_settings(GUILD_ID)).panel_message_id == 700001

    @pytest.mark.asyncio
    async def test_unknown_keyword_removal(self, router, bot, admin):
        bot.keyword_service.remove = AsyncMock(return_value=False)

        result = await dispatch(router, _event(
            EventKind.COMMAND, "keyword remove", _interaction(admin), options={"keyword": "hello"}
        ))
        assert isinstance(result.error, ValidationError)


class TestRouteCommand:

    class _Cog(CommandErrorMixin):
        def __init__(self, bot):
            self.bot = bot

    def _command(self, user, path):
        interaction = _interaction(user)
        interaction.type = discord.InteractionType.application_command
        name, *sub = path.split(" ")
        interaction.data = {
            "name": name,
            "options": [{"type": 1, "name": s, "options": []} for s in sub],
        }
        interaction.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return interaction

    @pytest.mark.asyncio
    async def test_error_shown_as_failure(self, router, bot, stranger):
        bot.router = router
        interaction = self._command(stranger, "ticket purge")

        await self._Cog(bot).route_command(interaction)

        embed = interaction.response.send_message.await_args.kwargs["embed"]
        assert embed.description == "Only administrators can purge tickets."

    @pytest.mark.asyncio
    async def test_options_reach_handler(self, router, bot, settings_service, admin):
        bot.router = router
        interaction = self._command(admin, "config set")

        await self._Cog(bot).route_command(interaction, field="log_channel", value="<#77>")

        assert (await settings_service.get_settings(GUILD_ID)).log_channel_id == 77

    @pytest.mark.asyncio
    async def test_unrouted_command(self, router, bot, admin):
        bot.router = router
        interaction = self._command(admin, "ticket dance")

        await self._Cog(bot).route_command(interaction)

        embed = interaction.response.send_message.await_args.kwargs["embed"]
        assert embed.description == GENERIC_FAILURE
