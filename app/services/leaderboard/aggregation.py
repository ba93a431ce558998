"""
Leaderboard aggregation.

Rolls invites log entries into the monthly invite ranking (all attributed
joins) and affiliate ranking (qualified referrals with their payout).
Read-only; safe to run while joins are being written.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DEFAULT_LEADERBOARD_TOP_N
from app.repositories.attribution_repository import AttributionRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.utils.datetime_utils import ensure_aware
from app.utils.formatters import fallback_display_name


@dataclass
class InviterTally:
    """Per-inviter counts within one month."""

    inviter_id: str
    invites: int = 0
    qualified: int = 0
    first_joined_at: datetime | None = None

    def add(self, entry: Any) -> None:
        joined_at = ensure_aware(entry.joined_at)
        self.invites += 1
        if entry.qualified:
            self.qualified += 1
        if self.first_joined_at is None or joined_at < self.first_joined_at:
            self.first_joined_at = joined_at

    @property
    def sort_key(self) -> tuple[datetime, str]:
        # Tie-break: who got there first, then id for full determinism
        return (self.first_joined_at, self.inviter_id)


@dataclass(frozen=True)
class RankingRow:
    """One leaderboard line."""

    rank: int
    inviter_id: str
    display_name: str
    count: int
    amount: Decimal | None = None


@dataclass(frozen=True)
class Leaderboards:
    """Both rankings for one month."""

    month_key: str
    invite_ranking: tuple[RankingRow, ...] = ()
    affiliate_ranking: tuple[RankingRow, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.invite_ranking and not self.affiliate_ranking


@dataclass(frozen=True)
class UserStats:
    """Invite stats of one member."""

    invites: int = 0
    qualified: int = 0
    earned: Decimal = Decimal("0")


def tally_entries(entries: Iterable[Any]) -> dict[str, InviterTally]:
    """Group entries by inviter."""
    tallies: dict[str, InviterTally] = {}
    for entry in entries:
        inviter_id = str(entry.inviter_discord_id)
        tally = tallies.get(inviter_id)
        if tally is None:
            tally = InviterTally(inviter_id=inviter_id)
            tallies[inviter_id] = tally
        tally.add(entry)
    return tallies


def rank_invites(
    tallies: dict[str, InviterTally], top_n: int
) -> list[InviterTally]:
    """Inviters by attributed joins desc, earliest first entry wins ties."""
    ordered = sorted(
        tallies.values(), key=lambda t: (-t.invites, *t.sort_key)
    )
    return ordered[:top_n]


def rank_affiliates(
    tallies: dict[str, InviterTally], top_n: int
) -> list[InviterTally]:
    """Inviters with at least one qualified referral, by qualified count desc."""
    ordered = sorted(
        (t for t in tallies.values() if t.qualified > 0),
        key=lambda t: (-t.qualified, *t.sort_key),
    )
    return ordered[:top_n]


class DisplayNameCache:
    """
    Inviter display name cache.

    Uses Redis when a client is given, an in-process dict otherwise. Cache
    errors are logged and treated as misses.
    """

    KEY_PREFIX = "affiliate:name:"

    def __init__(self, redis_client: Any = None, ttl: int = 3600) -> None:
        """
        Initialize cache.

        Args:
            redis_client: redis.asyncio.Redis with decode_responses=True, or None
            ttl: Entry lifetime in seconds (0 disables caching)
        """
        self.redis = redis_client
        self.ttl = ttl
        self._local: dict[str, tuple[str, float]] = {}

    async def get_many(self, discord_ids: list[str]) -> dict[str, str]:
        """Cached names for the given ids (misses are absent)."""
        if not discord_ids or self.ttl <= 0:
            return {}

        if self.redis is not None:
            try:
                values = await self.redis.mget(
                    [self.KEY_PREFIX + i for i in discord_ids]
                )
            except RedisError as e:
                logger.warning(f"Display name cache read failed: {e}")
                return {}
            return {i: v for i, v in zip(discord_ids, values) if v}

        now = time.monotonic()
        found = {}
        for discord_id in discord_ids:
            cached = self._local.get(discord_id)
            if cached and cached[1] > now:
                found[discord_id] = cached[0]
        return found

    async def set_many(self, names: dict[str, str]) -> None:
        """Store names."""
        if not names or self.ttl <= 0:
            return

        if self.redis is not None:
            try:
                async with self.redis.pipeline(transaction=False) as pipe:
                    for discord_id, name in names.items():
                        pipe.set(self.KEY_PREFIX + discord_id, name, ex=self.ttl)
                    await pipe.execute()
            except RedisError as e:
                logger.warning(f"Display name cache write failed: {e}")
            return

        expires = time.monotonic() + self.ttl
        for discord_id, name in names.items():
            self._local[discord_id] = (name, expires)


class LeaderboardService(BaseService):
    """
    Builds monthly leaderboards and member stats.

    Pure read over the invites log and member table.
    """

    def __init__(
        self,
        session: AsyncSession,
        month_keys: MonthKeyCalculator,
        top_n: int = DEFAULT_LEADERBOARD_TOP_N,
        referral_fee: Decimal = Decimal("5"),
        name_cache: DisplayNameCache | None = None,
    ) -> None:
        """
        Initialize leaderboard service.

        Args:
            session: Async database session
            month_keys: Month key calculator (carryover-aware filters)
            top_n: Rows per ranking
            referral_fee: Payout per qualified referral (EUR)
            name_cache: Display name cache
        """
        super().__init__(session)
        self.month_keys = month_keys
        self.top_n = top_n
        self.referral_fee = Decimal(referral_fee)
        self.name_cache = name_cache or DisplayNameCache()
        self.attribution_repo = AttributionRepository(session)
        self.member_repo = MemberRepository(session)

    async def build_leaderboards(self, month_key: str) -> Leaderboards:
        """
        Build both rankings for a month.

        Args:
            month_key: Month (YYYY-MM)

        Returns:
            Leaderboards, empty when the month has no entries
        """
        month_filter = self.month_keys.query_filter(month_key)
        entries = await self.attribution_repo.find_matching(month_filter)
        tallies = tally_entries(entries)

        invites = rank_invites(tallies, self.top_n)
        affiliates = rank_affiliates(tallies, self.top_n)

        names = await self.resolve_names(
            list(dict.fromkeys(t.inviter_id for t in [*invites, *affiliates]))
        )

        self.logger.debug(
            f"Leaderboards {month_key}: {len(entries)} entries, "
            f"{len(tallies)} inviters"
        )

        return Leaderboards(
            month_key=month_key,
            invite_ranking=tuple(
                RankingRow(
                    rank=i,
                    inviter_id=t.inviter_id,
                    display_name=names[t.inviter_id],
                    count=t.invites,
                )
                for i, t in enumerate(invites, start=1)
            ),
            affiliate_ranking=tuple(
                RankingRow(
                    rank=i,
                    inviter_id=t.inviter_id,
                    display_name=names[t.inviter_id],
                    count=t.qualified,
                    amount=t.qualified * self.referral_fee,
                )
                for i, t in enumerate(affiliates, start=1)
            ),
        )

    async def resolve_names(self, discord_ids: list[str]) -> dict[str, str]:
        """
        Resolve Discord IDs to display names.

        Cache first, then the member table; unknown members get a
        "User 1234" fallback.
        """
        names = await self.name_cache.get_many(discord_ids)

        missing = [i for i in discord_ids if i not in names]
        if missing:
            stored = await self.member_repo.get_display_names(missing)
            await self.name_cache.set_many(stored)
            names.update(stored)

        return {
            i: names.get(i) or fallback_display_name(i)
            for i in discord_ids
        }

    async def user_stats(self, user_id: str, month_key: str) -> UserStats:
        """Invites, qualified referrals and earnings of a member in a month."""
        month_filter = self.month_keys.query_filter(month_key)
        entries = await self.attribution_repo.find_matching(month_filter)
        user_id = str(user_id)
        return self._stats(
            e for e in entries if str(e.inviter_discord_id) == user_id
        )

    async def user_all_time_stats(self, user_id: str) -> UserStats:
        """Lifetime invites, qualified referrals and earnings of a member."""
        entries = await self.attribution_repo.find_by_inviter(user_id)
        return self._stats(entries)

    def _stats(self, entries: Iterable[Any]) -> UserStats:
        invites = 0
        qualified = 0
        for entry in entries:
            invites += 1
            if entry.qualified:
                qualified += 1
        return UserStats(
            invites=invites,
            qualified=qualified,
            earned=qualified * self.referral_fee,
        )
