#!/usr/bin/env python3
"""
MimiBot - Entry Point
=====================

Support tickets, anti-spam timeouts and keyword replies for Discord.

Startup:
    1. .env loaded
    2. Configuration validated and summarized
    3. MimiBot created and connected

Author: MimiDLC
"""

import asyncio
import sys

from dotenv import load_dotenv

from mimibot.core.config import ConfigValidationError, get_config, validate_and_log_config
from mimibot.core.logger import logger
from mimibot.utils.error_handler import ErrorHandler


async def main() -> None:
    """
    Create the bot and run it until it disconnects.

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start.
    """
    from mimibot.bot import MimiBot

    config = get_config()

    logger.tree("MIMIBOT STARTING", [
        ("Features", "Tickets, Anti-Spam, Keyword Replies"),
        ("Commands", "/ticket, /config, /panel, /keyword"),
    ], emoji="🎫")

    bot = MimiBot()
    try:
        async with bot:
            await bot.start(config.discord_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)


def run() -> None:
    load_dotenv()

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
    except Exception as e:
        ErrorHandler.handle(e, location="main.__main__", critical=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
