"""
Join handler.

Pipeline run for every member join: member bookkeeping, attribution,
invites log append.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.member_repository import MemberRepository
from app.services.base_service import ServiceResult
from app.services.invites.attribution_log import AttributionLogWriter
from app.services.invites.attribution_resolver import (
    AttributionOutcome,
    AttributionResolver,
    AttributionResult,
)
from app.services.invites.invite_directory import InviteDirectory
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.utils.datetime_utils import to_utc, utc_now


@dataclass(frozen=True)
class JoinReport:
    """What happened to one join."""

    attribution: AttributionResult
    write: ServiceResult

    @property
    def recorded(self) -> bool:
        return self.write.success


class JoinHandler:
    """
    Runs the join pipeline.

    Long-lived: owns the resolver (and through it the snapshot store) and
    opens a fresh database session per join.
    """

    def __init__(
        self,
        resolver: AttributionResolver,
        month_keys: MonthKeyCalculator,
        session_factory: Callable[[], AsyncSession],
    ) -> None:
        """
        Initialize handler.

        Args:
            resolver: Attribution resolver
            month_keys: Month key calculator for new entries
            session_factory: async_session_maker or compatible factory
        """
        self.resolver = resolver
        self.month_keys = month_keys
        self.session_factory = session_factory

    async def handle_join(
        self,
        community_id: int,
        member_id: str,
        username: str | None = None,
        display_name: str | None = None,
        joined_at: datetime | None = None,
    ) -> JoinReport:
        """
        Process a member join.

        Args:
            community_id: Guild ID
            member_id: Discord ID of the joining member
            username: Discord username
            display_name: Guild display name
            joined_at: Join instant, defaults to now

        Returns:
            JoinReport with the resolver decision and the write result
        """
        member_id = str(member_id)
        joined_at = to_utc(joined_at) if joined_at else utc_now()

        async with self.session_factory() as session:
            await self._touch_member(
                session, member_id, username, display_name, joined_at
            )

            try:
                result = await self.resolver.resolve(
                    community_id, member_id, InviteDirectory(session)
                )
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"Join {member_id}: invite directory lookup failed, "
                    f"attribution dropped: {e}"
                )
                return JoinReport(
                    attribution=AttributionResult(
                        outcome=AttributionOutcome.LOOKUP_FAILED,
                        community_id=community_id,
                        invitee_id=member_id,
                    ),
                    write=ServiceResult.fail("lookup_failed", str(e)),
                )

            writer = AttributionLogWriter(session, self.month_keys)
            write = await writer.record(result, joined_at)

        return JoinReport(attribution=result, write=write)

    async def _touch_member(
        self,
        session: AsyncSession,
        member_id: str,
        username: str | None,
        display_name: str | None,
        joined_at: datetime,
    ) -> None:
        fields = {"joined_at": joined_at}
        if display_name:
            fields["display_name"] = display_name

        try:
            await MemberRepository(session).upsert(
                member_id, username=username, **fields
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to upsert member {member_id} on join: {e}")
