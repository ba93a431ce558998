"""
Attribution repository.

Data access layer for the append-only invites log.
"""

from datetime import datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attribution_entry import AttributionEntry
from app.repositories.base import BaseRepository
from app.services.leaderboard.month_keys import MonthFilter


class AttributionRepository(BaseRepository[AttributionEntry]):
    """Invites log repository. Rows are appended, never deleted."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize attribution repository."""
        super().__init__(AttributionEntry, session)

    async def get_by_invitee(
        self, invitee_discord_id: str
    ) -> AttributionEntry | None:
        """Get the attribution entry for an invitee, if any."""
        return await self.get_by(invitee_discord_id=str(invitee_discord_id))

    async def find_matching(
        self,
        month_filter: MonthFilter,
        qualified_only: bool = False,
    ) -> list[AttributionEntry]:
        """
        Find entries selected by a month filter.

        Applies the same rule as MonthFilter.matches(): the target month,
        plus post-launch entries of the previous month when carryover applies,
        minus post-launch entries when the month is the one carried from.

        Args:
            month_filter: Filter built by MonthKeyCalculator.query_filter()
            qualified_only: Return only qualified entries

        Returns:
            Entries ordered by join time, then id
        """
        clause = AttributionEntry.month_key == month_filter.month_key
        if month_filter.excludes_carried_over and month_filter.launch_at:
            clause = and_(
                clause,
                AttributionEntry.joined_at <= month_filter.launch_at,
            )
        if month_filter.carryover_from_month and month_filter.launch_at:
            clause = or_(
                clause,
                and_(
                    AttributionEntry.month_key == month_filter.carryover_from_month,
                    AttributionEntry.joined_at > month_filter.launch_at,
                ),
            )

        stmt = select(AttributionEntry).where(clause)
        if qualified_only:
            stmt = stmt.where(AttributionEntry.qualified.is_(True))
        stmt = stmt.order_by(AttributionEntry.joined_at, AttributionEntry.id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_inviter(
        self, inviter_discord_id: str
    ) -> list[AttributionEntry]:
        """All-time entries credited to an inviter."""
        return await self.find_by(inviter_discord_id=str(inviter_discord_id))

    async def mark_qualified(
        self, invitee_discord_id: str, qualified_at: datetime
    ) -> bool:
        """
        Flip the qualified flag for an invitee's entry.

        The flag is only written while it is still false, so repeated calls
        are no-ops.

        Args:
            invitee_discord_id: Invitee who completed their first deal
            qualified_at: Qualification instant

        Returns:
            True if a row was flipped by this call
        """
        stmt = (
            update(AttributionEntry)
            .where(
                AttributionEntry.invitee_discord_id == str(invitee_discord_id),
                AttributionEntry.qualified.is_(False),
            )
            .values(qualified=True, qualified_at=qualified_at)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return (result.rowcount or 0) > 0
