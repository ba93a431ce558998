"""
Attribution log writer.

Appends one invites log entry per attributed join and stamps the invitee's
member row. Attribution is write-once: the first successful attribution for
an invitee wins and later joins of the same member are ignored.
"""

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.attribution_repository import AttributionRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService, ServiceResult
from app.services.invites.attribution_resolver import AttributionResult
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.utils.datetime_utils import to_utc


class AttributionLogWriter(BaseService):
    """Persists attribution results."""

    def __init__(
        self,
        session: AsyncSession,
        month_keys: MonthKeyCalculator,
    ) -> None:
        """
        Initialize writer.

        Args:
            session: Async database session
            month_keys: Month key calculator used to bucket the entry
        """
        super().__init__(session)
        self.month_keys = month_keys
        self.member_repo = MemberRepository(session)
        self.attribution_repo = AttributionRepository(session)

    async def record(
        self, result: AttributionResult, joined_at: datetime
    ) -> ServiceResult:
        """
        Record an attribution.

        Args:
            result: Resolver decision
            joined_at: Join instant

        Returns:
            ServiceResult with the new AttributionEntry as data on success.
            error_code is "not_attributed", "already_attributed" or
            "store_error" otherwise.
        """
        if not result.attributed:
            return ServiceResult.fail(
                "not_attributed", f"Join was not attributed ({result.outcome})"
            )

        invitee_id = result.invitee_id
        joined_at = to_utc(joined_at)

        try:
            member = await self.member_repo.get_by_discord_id(invitee_id)
            if member and member.is_attributed:
                self.logger.info(
                    f"Invitee {invitee_id} already attributed to "
                    f"{member.invited_by_discord_id}, skipping"
                )
                return ServiceResult.fail(
                    "already_attributed", "Invitee already attributed"
                )

            existing = await self.attribution_repo.get_by_invitee(invitee_id)
            if existing:
                self.logger.info(
                    f"Invitee {invitee_id} already in invites log "
                    f"(inviter {existing.inviter_discord_id}), skipping"
                )
                return ServiceResult.fail(
                    "already_attributed", "Invitee already attributed"
                )

            await self.member_repo.upsert(
                invitee_id,
                invited_by_discord_id=result.inviter_id,
                invite_code_used=result.code,
            )

            entry = await self.attribution_repo.create(
                invitee_discord_id=invitee_id,
                inviter_discord_id=result.inviter_id,
                invite_code=result.code,
                joined_at=joined_at,
                month_key=self.month_keys.for_instant(joined_at),
                qualified=False,
            )

            await self.commit()
        except SQLAlchemyError as e:
            await self.rollback()
            self.logger.error(
                f"Failed to record attribution {invitee_id} -> "
                f"{result.inviter_id}: {e}"
            )
            return ServiceResult.fail("store_error", str(e))

        self.logger.info(
            f"Recorded attribution {invitee_id} -> {result.inviter_id} "
            f"via {result.code} for {entry.month_key}"
        )
        return ServiceResult.ok(entry)
