"""
Bot Initialization - Services Module.

Module: services.py
Builds the long-lived affiliate services shared by cogs and scheduled jobs.
Validates environment variables.
"""

from dataclasses import dataclass

import discord
import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from app.config.database import async_session_maker
from app.config.settings import Settings, settings
from app.services.invites.attribution_resolver import AttributionResolver
from app.services.invites.join_handler import JoinHandler
from app.services.invites.personal_invites import PersonalInviteService
from app.services.invites.snapshot_store import InviteSnapshotStore
from app.services.leaderboard.aggregation import (
    DisplayNameCache,
    Leaderboards,
    LeaderboardService,
)
from app.services.leaderboard.earnings_notifications import (
    DispatchReport,
    EarningsNotificationDispatcher,
)
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.services.leaderboard.publisher import LeaderboardPublisher
from app.services.leaderboard.rollover import LeaderboardRollover
from bot.platform.discord_adapter import (
    DiscordInvitePlatform,
    DiscordMessagingTransport,
)


@dataclass
class AffiliateServices:
    """Long-lived services of a running bot."""

    config: Settings
    month_keys: MonthKeyCalculator
    invite_platform: DiscordInvitePlatform
    transport: DiscordMessagingTransport
    snapshot_store: InviteSnapshotStore
    join_handler: JoinHandler
    personal_invites: PersonalInviteService
    name_cache: DisplayNameCache
    rollover: LeaderboardRollover | None = None
    redis_client: redis.Redis | None = None

    async def build_leaderboards(self, month_key: str) -> Leaderboards:
        """Build rankings in a fresh session."""
        async with async_session_maker() as session:
            service = LeaderboardService(
                session,
                self.month_keys,
                top_n=self.config.leaderboard_top_n,
                referral_fee=self.config.referral_fee_eur,
                name_cache=self.name_cache,
            )
            return await service.build_leaderboards(month_key)

    async def dispatch_earnings(self, month_key: str) -> DispatchReport:
        """Send payout summaries in a fresh session."""
        async with async_session_maker() as session:
            dispatcher = EarningsNotificationDispatcher(
                session,
                self.month_keys,
                self.transport,
                referral_fee=self.config.referral_fee_eur,
            )
            return await dispatcher.dispatch(month_key)

    def tracked_guild_ids(self, client: discord.Client) -> list[int]:
        """Guilds whose invites are tracked."""
        if self.config.affiliate_guild_id:
            return [int(self.config.affiliate_guild_id)]
        return [guild.id for guild in client.guilds]


def validate_environment() -> None:
    """Validate critical environment variables."""
    if (
        not settings.discord_bot_token
        or "your_" in settings.discord_bot_token.lower()
    ):
        logger.error("DISCORD_BOT_TOKEN is not properly configured")
    if not settings.affiliate_channel_id:
        logger.warning(
            "AFFILIATE_CHANNEL_ID is not set: personal invite links are disabled"
        )
    if not settings.leaderboards_enabled:
        logger.warning(
            "Leaderboards disabled: LEADERBOARD_CHANNEL_ID and "
            "WINNERS_CHANNEL_ID are required"
        )


async def initialize_name_cache() -> tuple[DisplayNameCache, redis.Redis | None]:
    """
    Display name cache, Redis-backed when enabled and reachable.

    Returns:
        (cache, redis client to close on shutdown or None)
    """
    ttl = settings.display_name_cache_ttl
    if not settings.redis_enabled:
        return DisplayNameCache(ttl=ttl), None

    redis_client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )
    try:
        await redis_client.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable, using in-process name cache: {e}")
        await redis_client.aclose()
        return DisplayNameCache(ttl=ttl), None

    logger.info(
        f"Display name cache: Redis at {settings.redis_host}:"
        f"{settings.redis_port}/{settings.redis_db}"
    )
    return DisplayNameCache(redis_client, ttl=ttl), redis_client


async def initialize_all_services(client: discord.Client) -> AffiliateServices:
    """Build all long-lived services."""
    validate_environment()

    month_keys = MonthKeyCalculator.from_settings(settings)
    invite_platform = DiscordInvitePlatform(client)
    transport = DiscordMessagingTransport(
        client, timeout=settings.platform_fetch_timeout
    )
    store = InviteSnapshotStore(
        invite_platform, fetch_timeout=settings.platform_fetch_timeout
    )
    name_cache, redis_client = await initialize_name_cache()

    services = AffiliateServices(
        config=settings,
        month_keys=month_keys,
        invite_platform=invite_platform,
        transport=transport,
        snapshot_store=store,
        join_handler=JoinHandler(
            AttributionResolver(store), month_keys, async_session_maker
        ),
        personal_invites=PersonalInviteService(
            invite_platform,
            store,
            async_session_maker,
            channel_id=settings.affiliate_channel_id,
            community_id=settings.affiliate_guild_id,
            create_timeout=settings.platform_fetch_timeout,
        ),
        name_cache=name_cache,
        redis_client=redis_client,
    )

    if settings.leaderboards_enabled:
        publisher = LeaderboardPublisher(
            transport,
            leaderboard_channel_id=settings.leaderboard_channel_id,
            winners_channel_id=settings.winners_channel_id,
        )
        services.rollover = LeaderboardRollover(
            month_keys,
            build_leaderboards=services.build_leaderboards,
            publisher=publisher,
            dispatch_earnings=services.dispatch_earnings,
        )

    if month_keys.carryover_enabled:
        logger.info(
            f"Launch carryover: joins after {month_keys.launch_at.isoformat()} "
            f"count towards {month_keys.carryover_month}"
        )

    logger.info("Affiliate services initialized")
    return services
