"""
Invite directory.

Maps personal invite codes to the members who own them.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invite_record import InviteRecord
from app.repositories.invite_record_repository import InviteRecordRepository


class InviteDirectory:
    """Invite code -> owner lookup backed by the invite_records table."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize directory."""
        self.session = session
        self.invite_repo = InviteRecordRepository(session)

    async def owner_of(self, code: str) -> str | None:
        """
        Find the owner of an invite code.

        Args:
            code: Invite code

        Returns:
            Owner Discord ID, or None for codes that are not personal invites
        """
        if not code:
            return None
        record = await self.invite_repo.get_by_code(code)
        return record.owner_discord_id if record else None

    async def get_for_owner(self, owner_discord_id: str) -> InviteRecord | None:
        """Personal invite already issued to a member, if any."""
        return await self.invite_repo.get_by_owner(owner_discord_id)

    async def create(
        self, code: str, owner_discord_id: str, personal_url: str
    ) -> InviteRecord:
        """
        Store a new personal invite (flushed, not committed).

        Args:
            code: Invite code
            owner_discord_id: Member the invite belongs to
            personal_url: Full invite URL shown to the member

        Returns:
            Created InviteRecord
        """
        return await self.invite_repo.create(
            code=code,
            owner_discord_id=str(owner_discord_id),
            personal_url=personal_url,
        )
