"""
Bot Initialization - Cogs Module.

Module: cogs.py
Registers all cogs on the bot.
"""

from discord.ext import commands
from loguru import logger

from bot.cogs.affiliate_invites import AffiliateInvitesCog
from bot.cogs.backfill import BackfillCog
from bot.cogs.leaderboards import LeaderboardsCog
from bot.initialization.services import AffiliateServices


async def register_all_cogs(
    bot: commands.Bot, services: AffiliateServices
) -> None:
    """Register all cogs (invites, leaderboards, backfill)."""
    await bot.add_cog(AffiliateInvitesCog(bot, services))
    await bot.add_cog(LeaderboardsCog(bot, services))
    await bot.add_cog(BackfillCog(bot, services))
    logger.info("Cogs registered")
