"""
Member repository.

Data access layer for Member model.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.member import Member
from app.repositories.base import BaseRepository


class MemberRepository(BaseRepository[Member]):
    """Member repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize member repository."""
        super().__init__(Member, session)

    async def get_by_discord_id(self, discord_id: str) -> Member | None:
        """
        Get member by Discord user ID.

        Args:
            discord_id: Discord user ID

        Returns:
            Member or None
        """
        return await self.get_by(discord_id=str(discord_id).strip())

    async def upsert(
        self,
        discord_id: str,
        username: str | None = None,
        **fields: Any,
    ) -> Member:
        """
        Create member or update the given fields on the existing row.

        Args:
            discord_id: Discord user ID
            username: Discord username (left untouched when None)
            **fields: Extra columns to set

        Returns:
            Member entity (flushed, not committed)
        """
        discord_id = str(discord_id).strip()
        data = dict(fields)
        if username is not None:
            data["username"] = username

        existing = await self.get_by_discord_id(discord_id)
        if existing:
            for key, value in data.items():
                setattr(existing, key, value)
            await self.session.flush()
            return existing

        return await self.create(discord_id=discord_id, **data)

    async def get_display_names(self, discord_ids: list[str]) -> dict[str, str]:
        """
        Resolve several Discord IDs to names in one query.

        The guild display name wins; the username is the fallback.

        Args:
            discord_ids: Discord user IDs

        Returns:
            Dict of discord_id -> name for rows that have either
        """
        if not discord_ids:
            return {}

        stmt = select(
            Member.discord_id, Member.display_name, Member.username
        ).where(Member.discord_id.in_(discord_ids))
        result = await self.session.execute(stmt)
        return {
            row.discord_id: row.display_name or row.username
            for row in result.all()
            if row.display_name or row.username
        }
