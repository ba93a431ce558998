"""
Member backfill service.

One-off import of every current guild member into the member table, so
inviters who joined before the bot was running still get display names and
payout summaries.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.member_repository import MemberRepository
from app.services.platform import GuildMemberInfo, MemberListingPlatform


@dataclass
class BackfillReport:
    """Backfill counters."""

    total: int = 0
    written: int = 0
    skipped_bots: int = 0
    failed_batches: int = 0


class MemberBackfillService:
    """Upserts guild members in small batches."""

    def __init__(
        self,
        platform: MemberListingPlatform,
        session_factory: Callable[[], AsyncSession],
        batch_size: int = 10,
        delay_ms: int = 250,
    ) -> None:
        """
        Initialize backfill.

        Args:
            platform: Member listing API
            session_factory: async_session_maker or compatible factory
            batch_size: Members per transaction (1..10)
            delay_ms: Pause between batches in milliseconds
        """
        self.platform = platform
        self.session_factory = session_factory
        self.batch_size = max(1, min(10, batch_size))
        self.delay = max(0, delay_ms) / 1000

    async def run(self, community_id: int) -> BackfillReport:
        """
        Import all members of a guild.

        A failed batch is logged and skipped; the rest continue.

        Args:
            community_id: Guild ID

        Returns:
            BackfillReport
        """
        members = await self.platform.list_members(community_id)
        report = BackfillReport(total=len(members))

        humans = [m for m in members if not m.is_bot]
        report.skipped_bots = len(members) - len(humans)
        logger.info(
            f"Backfill: {len(humans)} members to write "
            f"({report.skipped_bots} bots skipped)"
        )

        for start in range(0, len(humans), self.batch_size):
            batch = humans[start:start + self.batch_size]
            if await self._write_batch(batch):
                report.written += len(batch)
            else:
                report.failed_batches += 1

            if report.written and report.written % 100 == 0:
                logger.info(f"Backfill progress: {report.written}/{len(humans)}")

            if self.delay:
                await asyncio.sleep(self.delay)

        logger.info(
            f"Backfill complete: written={report.written} "
            f"failed_batches={report.failed_batches}. "
            f"Set AFFILIATE_BACKFILL_MEMBERS=false to skip it next start."
        )
        return report

    async def _write_batch(self, batch: list[GuildMemberInfo]) -> bool:
        async with self.session_factory() as session:
            repo = MemberRepository(session)
            try:
                for info in batch:
                    fields = {}
                    if info.display_name:
                        fields["display_name"] = info.display_name
                    await repo.upsert(
                        info.discord_id, username=info.username, **fields
                    )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Backfill batch failed: {e}")
                return False
        return True
