"""
Member model.

Represents a Discord guild member known to the affiliate program.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Member(Base):
    """
    Member entity.

    Fields accrete monotonically and the row is never deleted:
    - invited_by_discord_id / invite_code_used are written at most once
      (first successful attribution wins)
    - last_earnings_dm_month only moves forward in month-key order

    Attributes:
        id: Primary key
        discord_id: Discord user ID (snowflake as string)
        username: Discord username / tag
        display_name: Guild display name
        joined_at: Last time the member joined the guild
        invited_by_discord_id: Inviter Discord ID (write-once)
        invite_code_used: Invite code credited for the join (write-once)
        last_earnings_dm_month: Last month-key a payout summary was delivered
    """

    __tablename__ = "discord_members"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Discord data
    discord_id: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    display_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    joined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Attribution (write-once)
    invited_by_discord_id: Mapped[str | None] = mapped_column(
        String(32), nullable=True, index=True
    )
    invite_code_used: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    # Payout notification marker (YYYY-MM)
    last_earnings_dm_month: Mapped[str | None] = mapped_column(
        String(7), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_attributed(self) -> bool:
        """True once an inviter has been credited for this member."""
        return bool(self.invited_by_discord_id)

    def __repr__(self) -> str:
        return (
            f"<Member(id={self.id}, discord_id={self.discord_id}, "
            f"username={self.username!r})>"
        )
