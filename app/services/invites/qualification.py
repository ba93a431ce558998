"""
Referral qualification service.

Deal-completion hook: an invitee who completes their first deal turns the
inviter's referral into a paid (qualified) one.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.attribution_repository import AttributionRepository
from app.services.base_service import (
    BaseService,
    ServiceResult,
    transaction,
)
from app.utils.datetime_utils import to_utc, utc_now


class ReferralQualificationService(BaseService):
    """Flips the qualified flag on invites log entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize qualification service."""
        super().__init__(session)
        self.attribution_repo = AttributionRepository(session)

    @transaction
    async def mark_qualified(
        self,
        invitee_id: str,
        qualified_at: datetime | None = None,
    ) -> ServiceResult:
        """
        Mark the invitee's referral as qualified.

        Idempotent: a second call for the same invitee changes nothing.

        Args:
            invitee_id: Discord ID of the member who completed a deal
            qualified_at: Completion instant, defaults to now

        Returns:
            ServiceResult; error_code "not_found" when the invitee was never
            attributed, "already_qualified" on repeat calls
        """
        invitee_id = str(invitee_id)
        entry = await self.attribution_repo.get_by_invitee(invitee_id)
        if not entry:
            return ServiceResult.fail(
                "not_found", f"No attribution for invitee {invitee_id}"
            )

        flipped = await self.attribution_repo.mark_qualified(
            invitee_id, to_utc(qualified_at or utc_now())
        )
        if not flipped:
            return ServiceResult.fail(
                "already_qualified", "Referral already qualified"
            )

        self.logger.info(
            f"Referral {invitee_id} qualified for inviter "
            f"{entry.inviter_discord_id}"
        )
        return ServiceResult.ok({
            "inviter_id": entry.inviter_discord_id,
            "month_key": entry.month_key,
        })
