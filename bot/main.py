"""
Bot main entry point.

Initializes and runs the Discord affiliate bot with discord.py.

Initialization is delegated to modular components in the
bot/initialization/ directory.
"""

import asyncio
import sys
from pathlib import Path

import discord
from discord.ext import commands
from loguru import logger


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import settings  # noqa: E402
from bot.initialization.cogs import register_all_cogs  # noqa: E402
from bot.initialization.logging import setup_logging  # noqa: E402
from bot.initialization.services import (  # noqa: E402
    AffiliateServices,
    initialize_all_services,
)
from bot.initialization.shutdown import shutdown_handler  # noqa: E402
from jobs.health import set_client, start_health_server, stop_health_server  # noqa: E402
from jobs.scheduler import start_scheduler  # noqa: E402


class AffiliateBot(commands.Bot):
    """Discord bot running the affiliate program."""

    def __init__(self) -> None:
        intents = discord.Intents.default()
        intents.members = True  # join events and backfill
        intents.invites = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
        )
        self.services: AffiliateServices | None = None
        self._scheduler_started = False

    async def setup_hook(self) -> None:
        """Build services and register cogs before connecting."""
        self.services = await initialize_all_services(self)
        await register_all_cogs(self, self.services)

    async def on_ready(self) -> None:
        logger.info(f"Bot connected: {self.user} (ID: {self.user.id})")

        if not self._scheduler_started:
            start_scheduler(self, self.services)
            self._scheduler_started = True


async def main() -> None:
    """Initialize and run the bot."""
    setup_logging()

    bot = AffiliateBot()
    set_client(bot)

    health_runner = None
    try:
        health_runner = await start_health_server(
            port=settings.health_check_port
        )
    except OSError as e:
        logger.warning(f"Failed to start health check server: {e}")

    try:
        async with bot:
            await bot.start(settings.discord_bot_token)
    except discord.LoginFailure as e:
        logger.error(f"Discord login failed: {e}")
        raise
    finally:
        redis_client = bot.services.redis_client if bot.services else None
        await shutdown_handler(redis_client)
        if health_runner:
            await stop_health_server(health_runner)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Bot crashed: {e}")
        sys.exit(1)
