"""
Earnings notification dispatcher.

Sends each inviter one payout summary per closed month. The member's
last_earnings_dm_month marker makes the dispatch idempotent: it is only
advanced after confirmed delivery, so failed sends are retried by the
next dispatch while delivered ones are never repeated.

A member is skipped when the marker is at or past the month being
dispatched, not only when it equals it, so the marker never moves
backwards. The cost: once a later month has been delivered, an earlier
month whose summary failed is no longer retried for that member.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DM_SEND_DELAY
from app.repositories.attribution_repository import AttributionRepository
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService, log_operation
from app.services.leaderboard.messages import earnings_summary_message
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.services.platform import MessagingTransport


@dataclass
class DispatchReport:
    """Dispatch counters for one month."""

    month_key: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    failed_inviters: list[str] = field(default_factory=list)


class EarningsNotificationDispatcher(BaseService):
    """Delivers monthly payout summaries to inviters."""

    def __init__(
        self,
        session: AsyncSession,
        month_keys: MonthKeyCalculator,
        transport: MessagingTransport,
        referral_fee: Decimal = Decimal("5"),
        send_delay: float = DM_SEND_DELAY,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            session: Async database session
            month_keys: Month key calculator (carryover-aware filters)
            transport: Messaging transport for direct messages
            referral_fee: Payout per qualified referral (EUR)
            send_delay: Pause between messages in seconds
        """
        super().__init__(session)
        self.month_keys = month_keys
        self.transport = transport
        self.referral_fee = Decimal(referral_fee)
        self.send_delay = send_delay
        self.attribution_repo = AttributionRepository(session)
        self.member_repo = MemberRepository(session)

    async def qualified_counts(self, month_key: str) -> dict[str, int]:
        """Qualified referrals per inviter for a month."""
        month_filter = self.month_keys.query_filter(month_key)
        entries = await self.attribution_repo.find_matching(
            month_filter, qualified_only=True
        )

        counts: dict[str, int] = {}
        for entry in entries:
            inviter_id = str(entry.inviter_discord_id)
            counts[inviter_id] = counts.get(inviter_id, 0) + 1
        return counts

    @log_operation
    async def dispatch(self, month_key: str) -> DispatchReport:
        """
        Send payout summaries for a month.

        Safe to run repeatedly for the same month.

        Args:
            month_key: Closed month (YYYY-MM)

        Returns:
            DispatchReport
        """
        report = DispatchReport(month_key=month_key)
        counts = await self.qualified_counts(month_key)

        for inviter_id, qualified in counts.items():
            member = await self.member_repo.get_by_discord_id(inviter_id)
            if not member:
                self.logger.warning(
                    f"Inviter {inviter_id} has no member row, "
                    f"skipping {month_key} summary"
                )
                report.skipped += 1
                continue

            last_month = member.last_earnings_dm_month
            if last_month and last_month >= month_key:
                report.skipped += 1
                continue

            content = earnings_summary_message(
                month_key, qualified, qualified * self.referral_fee
            )
            delivered = await self._send(inviter_id, content)
            if not delivered:
                report.failed += 1
                report.failed_inviters.append(inviter_id)
                continue

            member.last_earnings_dm_month = month_key
            try:
                await self.commit()
            except SQLAlchemyError as e:
                await self.rollback()
                self.logger.error(
                    f"Summary delivered to {inviter_id} but marker "
                    f"update failed: {e}"
                )
            report.sent += 1

            if self.send_delay > 0:
                await asyncio.sleep(self.send_delay)

        self.logger.info(
            f"Earnings summaries {month_key}: sent={report.sent} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        return report

    async def _send(self, inviter_id: str, content) -> bool:
        try:
            return bool(await self.transport.send_to_user(inviter_id, content))
        except Exception as e:
            self.logger.warning(f"Summary to {inviter_id} failed: {e}")
            return False
