"""
AttributionEntry model.

Append-only invites log: one row per attributed join.
"""

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class AttributionEntry(Base):
    """
    AttributionEntry entity.

    Ground truth for every leaderboard. Rows are never deleted or
    re-created for the same invitee. The only mutation is the one-time
    `qualified` flip performed when the invitee completes their first deal.

    Attributes:
        id: Primary key
        invitee_discord_id: Member who joined
        inviter_discord_id: Owner of the credited invite code
        invite_code: Credited invite code
        joined_at: Join instant (UTC)
        month_key: YYYY-MM bucket computed at write time in the program timezone
        qualified: Invitee completed their first deal
        qualified_at: When the qualified flag was set
    """

    __tablename__ = "invites_log"
    __table_args__ = (
        Index("ix_invites_log_month_inviter", "month_key", "inviter_discord_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    invitee_discord_id: Mapped[str] = mapped_column(
        String(32), index=True, nullable=False
    )
    inviter_discord_id: Mapped[str] = mapped_column(
        String(32), index=True, nullable=False
    )
    invite_code: Mapped[str] = mapped_column(
        String(64), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    month_key: Mapped[str] = mapped_column(
        String(7), index=True, nullable=False
    )
    qualified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    qualified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<AttributionEntry(invitee={self.invitee_discord_id}, "
            f"inviter={self.inviter_discord_id}, month={self.month_key}, "
            f"qualified={self.qualified})>"
        )
