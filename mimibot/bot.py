"""
MimiBot - Main Bot Class
========================

Discord client that owns the storage layers and services and wires them
to the command and event cogs.

DESIGN:
    Construction only reads configuration. Everything that needs the event
    loop happens in setup_hook, in this order:

    1. Cache backend (Redis or in-process) connected
    2. Services built: settings, punishments, anti-spam, keywords, tickets
    3. Router built from the registered routes
    4. Command and event cogs loaded
    5. Anti-spam cleanup loop started
    6. Command tree synced

    close() undoes it: background tasks stop, pending post-close work is
    drained, then the cache and the database are closed.

Author: MimiDLC
"""

from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands

from mimibot.core.cache import CacheStore, create_cache
from mimibot.core.config import get_config
from mimibot.core.database import get_db
from mimibot.core.logger import logger
from mimibot.events.router import Router
from mimibot.services import (
    AntiSpamService,
    DiscordDispatcher,
    KeywordService,
    PunishmentStore,
    SettingsService,
    TicketService,
)
from mimibot.utils.async_utils import safe_async_operation
from mimibot.utils.footer import init_footer


# =============================================================================
# MimiBot Class
# =============================================================================

class MimiBot(commands.Bot):
    """
    Ticket desk, anti-spam and keyword replies for one or more guilds.

    Services are attributes so cogs and routes reach them through the bot:
    settings_service, punishments, antispam, keyword_service, ticket_service.
    """

    def __init__(self) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.db = get_db(self.config.database_path)
        self.cache: Optional[CacheStore] = None
        self.start_time: datetime = datetime.now()
        self._shutting_down = False

        # Built in setup_hook
        self.settings_service: Optional[SettingsService] = None
        self.punishments: Optional[PunishmentStore] = None
        self.antispam: Optional[AntiSpamService] = None
        self.keyword_service: Optional[KeywordService] = None
        self.ticket_service: Optional[TicketService] = None
        self.router: Optional[Router] = None

        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Connect storage, build services, load cogs and sync commands."""
        self.cache = create_cache(self.config)
        await self.cache.connect()

        self._build_services()

        from mimibot.events.routes import build_router
        self.router = build_router(self)

        from mimibot.commands import COMMAND_COGS
        for cog in COMMAND_COGS:
            try:
                await self.load_extension(cog)
            except commands.ExtensionError as e:
                logger.error("Failed to Load Cog", [("Cog", cog), ("Error", str(e))])

        from mimibot.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        self.antispam.start()

        try:
            synced = await self.tree.sync()
            logger.tree("Commands Synced", [("Count", str(len(synced)))], emoji="✅")
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])

    def _build_services(self) -> None:
        config = self.config
        self.settings_service = SettingsService(self.db, self.cache, config)
        self.punishments = PunishmentStore(self.cache, self.db, config)
        self.antispam = AntiSpamService(self, self.settings_service, self.punishments, config)
        self.keyword_service = KeywordService(self.db, self.cache, config)
        self.ticket_service = TicketService(
            self.db,
            self.settings_service,
            DiscordDispatcher(self, config.dispatch_timeout),
            config,
            bot=self,
        )

        logger.tree("Services Initialized", [
            ("Cache", self.cache.name),
            ("Database", str(self.db.path)),
            ("Dispatch Timeout", f"{config.dispatch_timeout}s"),
        ], emoji="🧩")

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return
        self._ready_initialized = True

        if not self.user:
            return

        init_footer(self)

        logger.tree_nested("BOT ONLINE", [
            ("Bot", [
                ("Name", self.user.name),
                ("ID", str(self.user.id)),
                ("Guilds", str(len(self.guilds))),
                ("Latency", f"{round(self.latency * 1000)}ms"),
            ]),
            ("Services", [
                ("Cache", type(self.cache).__name__ if self.cache else "None"),
                ("Database", str(self.db.path)),
                ("Commands", str(len(self.tree.get_commands()))),
            ]),
        ], emoji="✅")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Stop background work, then release the cache and the database."""
        if self._shutting_down:
            return
        self._shutting_down = True
        logger.info("Initiating Graceful Shutdown")

        if self.antispam:
            await safe_async_operation("Stop Anti-Spam", self.antispam.stop())
        if self.ticket_service:
            await safe_async_operation("Drain Ticket Side Effects", self.ticket_service.stop())
        if self.cache:
            await safe_async_operation("Close Cache", self.cache.close())

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        await self.shutdown()


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["MimiBot"]
