"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    Naive values coming from the record store or callers are UTC by
    convention.

    Args:
        value: Datetime, naive or aware

    Returns:
        Timezone-aware datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_utc(value: datetime) -> datetime:
    """
    Convert to UTC, treating naive values as UTC.

    Timestamps are compared as stored values in the database, so every
    instant written or used as a bound goes through here first.
    """
    return ensure_aware(value).astimezone(UTC)
