"""
InviteRecord repository.

Data access layer for InviteRecord model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invite_record import InviteRecord
from app.repositories.base import BaseRepository


class InviteRecordRepository(BaseRepository[InviteRecord]):
    """InviteRecord repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize invite record repository."""
        super().__init__(InviteRecord, session)

    async def get_by_code(self, code: str) -> InviteRecord | None:
        """Get invite record by invite code."""
        return await self.get_by(code=code.strip())

    async def get_by_owner(self, owner_discord_id: str) -> InviteRecord | None:
        """Get the personal invite owned by a member."""
        return await self.get_by(owner_discord_id=str(owner_discord_id).strip())
