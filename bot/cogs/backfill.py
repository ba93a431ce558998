"""
Member backfill cog.

Runs the one-off member import on the first ready event when
AFFILIATE_BACKFILL_MEMBERS is enabled.
"""

from discord.ext import commands
from loguru import logger

from app.config.database import async_session_maker
from app.services.members.backfill import MemberBackfillService
from bot.initialization.services import AffiliateServices


class BackfillCog(commands.Cog):
    """Member backfill trigger."""

    def __init__(self, bot: commands.Bot, services: AffiliateServices) -> None:
        self.bot = bot
        self.services = services
        self._done = False

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        config = self.services.config
        if self._done or not config.affiliate_backfill_members:
            return
        self._done = True

        if not config.affiliate_guild_id:
            logger.warning("Backfill disabled: AFFILIATE_GUILD_ID missing")
            return

        service = MemberBackfillService(
            self.services.invite_platform,
            async_session_maker,
            batch_size=config.backfill_batch_size,
            delay_ms=config.backfill_delay_ms,
        )
        logger.info("Backfill: fetching all members from guild…")
        try:
            await service.run(int(config.affiliate_guild_id))
        except Exception as e:
            logger.exception(
                f"Backfill failed (check the Server Members intent): {e}"
            )
