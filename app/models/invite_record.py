"""
InviteRecord model.

Personal invite link owned by a member (the recruiter).
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class InviteRecord(Base):
    """
    InviteRecord entity.

    One per member who requested a personal invite. Created lazily on the
    first request and never changed afterwards.
    """

    __tablename__ = "invite_records"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    code: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    owner_discord_id: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    personal_url: Mapped[str] = mapped_column(
        String(255), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<InviteRecord(code={self.code}, "
            f"owner_discord_id={self.owner_discord_id})>"
        )
