"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.attribution_entry import AttributionEntry
from app.models.base import Base
from app.models.invite_record import InviteRecord
from app.models.member import Member

__all__ = [
    # Base
    "Base",
    # Core Models
    "Member",
    "InviteRecord",
    "AttributionEntry",
]
