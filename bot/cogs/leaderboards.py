"""
Leaderboards cog.

/mystats command and the leaderboard info message. The live leaderboard and
month rollover run from the scheduler (jobs/tasks/leaderboard_tick.py).
"""

import discord
from discord import app_commands
from discord.ext import commands
from loguru import logger

from app.config.database import async_session_maker
from app.services.leaderboard.aggregation import LeaderboardService
from app.services.leaderboard.messages import (
    leaderboard_info_message,
    user_stats_message,
)
from app.services.leaderboard.publisher import ensure_channel_message
from bot.initialization.services import AffiliateServices
from bot.platform.discord_adapter import to_embed


class LeaderboardsCog(commands.Cog):
    """Member stats and leaderboard info."""

    def __init__(self, bot: commands.Bot, services: AffiliateServices) -> None:
        self.bot = bot
        self.services = services
        self.config = services.config
        self._synced = False

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self._synced:
            return
        self._synced = True

        await self.sync_commands()

        if self.config.info_channel_id:
            await ensure_channel_message(
                self.services.transport,
                self.config.info_channel_id,
                leaderboard_info_message(
                    top_n=self.config.leaderboard_top_n,
                    referral_fee=self.config.referral_fee_eur,
                    affiliate_channel_id=self.config.affiliate_channel_id,
                    launch_at=self.config.affiliate_launch_at,
                    carryover_month=self.config.affiliate_carryover_to_month,
                ),
                pin=self.config.info_pin_message,
            )

    async def sync_commands(self) -> None:
        """Register slash commands on the affiliate guild."""
        if not self.config.affiliate_guild_id:
            logger.warning("/mystats not registered: AFFILIATE_GUILD_ID missing")
            return

        guild = discord.Object(id=int(self.config.affiliate_guild_id))
        try:
            self.bot.tree.copy_global_to(guild=guild)
            await self.bot.tree.sync(guild=guild)
            logger.info("/mystats command registered")
        except discord.HTTPException as e:
            logger.error(f"Slash command registration failed: {e}")

    @app_commands.command(
        name="mystats",
        description="View your affiliate stats (this month / last month / all-time).",
    )
    async def mystats(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        month_keys = self.services.month_keys
        this_month = month_keys.current()
        last_month = month_keys.previous(this_month)
        user_id = str(interaction.user.id)

        async with async_session_maker() as session:
            service = LeaderboardService(
                session,
                month_keys,
                top_n=self.config.leaderboard_top_n,
                referral_fee=self.config.referral_fee_eur,
                name_cache=self.services.name_cache,
            )
            this_stats = await service.user_stats(user_id, this_month)
            last_stats = await service.user_stats(user_id, last_month)
            all_time = await service.user_all_time_stats(user_id)

        content = user_stats_message(
            this_month, this_stats, last_month, last_stats, all_time
        )
        await interaction.followup.send(embed=to_embed(content), ephemeral=True)
