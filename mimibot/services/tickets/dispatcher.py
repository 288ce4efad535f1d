"""
MimiBot - Ticket Notification Dispatcher
========================================

Every Discord call the ticket desk makes goes through a dispatcher, so the
state machine never builds channel overwrites or touches the HTTP API
itself.

DESIGN:
    NotificationDispatcher is the interface. DiscordDispatcher implements
    it with discord.py; tests use an in-memory fake.

    Every call is bounded by DISPATCH_TIMEOUT. discord.HTTPException and
    asyncio.TimeoutError become SideEffectFailure carrying the operation
    name, which is all the service needs to decide between rollback (open)
    and log-and-report (after a committed transition).

Author: MimiDLC
"""

import asyncio
import io
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, List, Optional

import discord

from mimibot.core.errors import SideEffectFailure
from mimibot.core.logger import logger
from mimibot.utils.retry import safe_fetch_channel

if TYPE_CHECKING:
    from mimibot.bot import MimiBot


def _member_access() -> discord.PermissionOverwrite:
    return discord.PermissionOverwrite(
        view_channel=True,
        send_messages=True,
        read_message_history=True,
        attach_files=True,
        embed_links=True,
    )


class NotificationDispatcher(ABC):
    """Side effects the ticket desk asks the chat platform for."""

    @abstractmethod
    async def create_channel(
        self,
        guild: discord.Guild,
        owner: discord.abc.User,
        channel_type: str,
        name: str,
        staff_role_id: Optional[int],
        category_id: Optional[int],
    ) -> int:
        """Create a private channel for owner and staff. Returns its id."""

    @abstractmethod
    async def send_message(
        self,
        channel_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
        file: Optional[discord.File] = None,
    ) -> int:
        """Post a message. Returns its id."""

    @abstractmethod
    async def upload_file(self, channel_id: int, filename: str, data: bytes, content: Optional[str] = None) -> str:
        """Post a file. Returns the attachment URL."""

    @abstractmethod
    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
    ) -> None:
        ...

    @abstractmethod
    async def archive_channel(self, channel_id: int, archive_category_id: int, owner_id: int) -> None:
        """Move to the archive category and drop the owner's access."""

    @abstractmethod
    async def delete_channel(self, channel_id: int) -> None:
        ...

    @abstractmethod
    async def add_member(self, channel_id: int, user_id: int) -> None:
        """Give a member the same access to the channel as its owner."""

    @abstractmethod
    async def remove_member(self, channel_id: int, user_id: int) -> None:
        """Drop a member's overwrite on the channel."""

    @abstractmethod
    async def dm_user(
        self,
        user_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
    ) -> None:
        ...

    @abstractmethod
    async def fetch_history(self, channel_id: int, limit: int) -> List[discord.Message]:
        """Messages of a channel, oldest first."""


class DiscordDispatcher(NotificationDispatcher):
    """discord.py implementation with bounded waits."""

    def __init__(self, bot: "MimiBot", timeout: float = 10.0) -> None:
        self.bot = bot
        self.timeout = timeout

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Dispatch Timed Out", [
                ("Operation", operation),
                ("Timeout", f"{self.timeout}s"),
            ])
            raise SideEffectFailure(f"Discord did not answer in time ({operation}).", operation=operation) from e
        except discord.HTTPException as e:
            logger.warning("Dispatch Failed", [
                ("Operation", operation),
                ("Status", str(getattr(e, "status", "?"))),
                ("Error", str(e)[:100]),
            ])
            raise SideEffectFailure(f"Discord rejected the request ({operation}).", operation=operation) from e

    async def _channel(self, channel_id: int, operation: str):
        channel = await safe_fetch_channel(self.bot, channel_id)
        if channel is None:
            raise SideEffectFailure(f"Channel {channel_id} is unavailable.", operation=operation)
        return channel

    # =========================================================================
    # Channels
    # =========================================================================

    async def create_channel(
        self,
        guild: discord.Guild,
        owner: discord.abc.User,
        channel_type: str,
        name: str,
        staff_role_id: Optional[int],
        category_id: Optional[int],
    ) -> int:
        member_access = _member_access()
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            owner: member_access,
        }
        if guild.me is not None:
            overwrites[guild.me] = discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                manage_channels=True,
                read_message_history=True,
            )
        staff_role = guild.get_role(staff_role_id) if staff_role_id else None
        if staff_role is not None:
            overwrites[staff_role] = member_access

        category = guild.get_channel(category_id) if category_id else None
        if category_id and not isinstance(category, discord.CategoryChannel):
            raise SideEffectFailure("The configured ticket category no longer exists.", operation="create_channel")

        channel = await self._call("create_channel", guild.create_text_channel(
            name=name,
            category=category,
            overwrites=overwrites,
            topic=f"{channel_type.title()} for {owner} ({owner.id})",
            reason=f"{channel_type.title()} opened by {owner}",
        ))
        return channel.id

    async def archive_channel(self, channel_id: int, archive_category_id: int, owner_id: int) -> None:
        channel = await self._channel(channel_id, "archive_channel")
        category = channel.guild.get_channel(archive_category_id)
        if not isinstance(category, discord.CategoryChannel):
            raise SideEffectFailure("The configured archive category no longer exists.", operation="archive_channel")

        overwrites = {
            target: overwrite
            for target, overwrite in channel.overwrites.items()
            if target.id != owner_id
        }
        await self._call("archive_channel", channel.edit(
            name=f"closed-{channel.name}"[:100],
            category=category,
            overwrites=overwrites,
            reason="Ticket closed",
        ))

    async def delete_channel(self, channel_id: int) -> None:
        channel = await safe_fetch_channel(self.bot, channel_id)
        if channel is None:
            # Already gone
            return
        try:
            await self._call("delete_channel", channel.delete(reason="Ticket closed"))
        except SideEffectFailure as e:
            if isinstance(e.__cause__, discord.NotFound):
                return
            raise

    async def _member(self, channel, user_id: int, operation: str) -> discord.Member:
        member = channel.guild.get_member(user_id)
        if member is None:
            member = await self._call(operation, channel.guild.fetch_member(user_id))
        return member

    async def add_member(self, channel_id: int, user_id: int) -> None:
        channel = await self._channel(channel_id, "add_member")
        member = await self._member(channel, user_id, "add_member")
        await self._call("add_member", channel.set_permissions(
            member,
            overwrite=_member_access(),
            reason="Added to ticket",
        ))

    async def remove_member(self, channel_id: int, user_id: int) -> None:
        channel = await self._channel(channel_id, "remove_member")
        member = await self._member(channel, user_id, "remove_member")
        await self._call("remove_member", channel.set_permissions(
            member,
            overwrite=None,
            reason="Removed from ticket",
        ))

    # =========================================================================
    # Messages
    # =========================================================================

    async def send_message(
        self,
        channel_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
        file: Optional[discord.File] = None,
    ) -> int:
        channel = await self._channel(channel_id, "send_message")
        message = await self._call("send_message", channel.send(
            content=content,
            embed=embed,
            view=view,
            file=file,
        ))
        return message.id

    async def upload_file(self, channel_id: int, filename: str, data: bytes, content: Optional[str] = None) -> str:
        channel = await self._channel(channel_id, "upload_file")
        message = await self._call("upload_file", channel.send(
            content=content,
            file=discord.File(io.BytesIO(data), filename=filename),
        ))
        if not message.attachments:
            return message.jump_url
        return message.attachments[0].url

    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
    ) -> None:
        channel = await self._channel(channel_id, "edit_message")
        kwargs: dict = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        if view is not None:
            kwargs["view"] = view
        await self._call("edit_message", channel.get_partial_message(message_id).edit(**kwargs))

    async def dm_user(
        self,
        user_id: int,
        content: Optional[str] = None,
        embed: Optional[discord.Embed] = None,
        view: Optional[discord.ui.View] = None,
    ) -> None:
        user = self.bot.get_user(user_id)
        if user is None:
            user = await self._call("fetch_user", self.bot.fetch_user(user_id))
        kwargs: dict = {"content": content, "embed": embed}
        if view is not None:
            kwargs["view"] = view
        await self._call("dm_user", user.send(**kwargs))

    async def fetch_history(self, channel_id: int, limit: int) -> List[discord.Message]:
        channel = await self._channel(channel_id, "fetch_history")

        async def collect() -> List[discord.Message]:
            return [m async for m in channel.history(limit=limit, oldest_first=True)]

        return await self._call("fetch_history", collect())


__all__ = ["NotificationDispatcher", "DiscordDispatcher"]
