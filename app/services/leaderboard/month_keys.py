"""
Month keys and the launch carryover filter.

A month key is a YYYY-MM string computed in a fixed civil timezone so the
bucket does not depend on where the host runs. An entry's month key is
fixed at write time; carryover is applied by the query filter, never by
rewriting the log.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from app.config.constants import DEFAULT_MONTH_KEY_TIMEZONE, MONTH_KEY_PATTERN
from app.utils.datetime_utils import ensure_aware, to_utc, utc_now


_MONTH_KEY_RE = re.compile(MONTH_KEY_PATTERN)


def parse_month_key(month_key: str) -> tuple[int, int]:
    """
    Split a month key into (year, month).

    Raises:
        ValueError: If the key is not YYYY-MM
    """
    if not isinstance(month_key, str) or not _MONTH_KEY_RE.match(month_key):
        raise ValueError(f"Invalid month key: {month_key!r}")
    year, month = month_key.split("-")
    return int(year), int(month)


def previous_month_key(month_key: str) -> str:
    """Calendar month immediately before month_key."""
    year, month = parse_month_key(month_key)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


@dataclass(frozen=True)
class MonthFilter:
    """
    Predicate selecting the invites log entries that count for a month.

    Plain months select entries whose month_key equals the target. With
    carryover configured:
    - the carryover target month also selects entries of the previous month
      that joined after the launch instant;
    - that previous month drops those same entries, so each one counts
      exactly once.

    AttributionRepository.find_matching() renders the same rule as SQL.
    """

    month_key: str
    carryover_from_month: str | None = None
    launch_at: datetime | None = None
    excludes_carried_over: bool = False

    def matches(self, entry: Any) -> bool:
        """Check an entry (anything with month_key and joined_at)."""
        if entry.month_key == self.month_key:
            if self.excludes_carried_over and self._after_launch(entry):
                return False
            return True

        if (
            self.carryover_from_month
            and entry.month_key == self.carryover_from_month
        ):
            return self._after_launch(entry)

        return False

    def _after_launch(self, entry: Any) -> bool:
        if self.launch_at is None:
            return False
        return ensure_aware(entry.joined_at) > self.launch_at


class MonthKeyCalculator:
    """Derives month keys and carryover-aware query filters."""

    def __init__(
        self,
        timezone: str = DEFAULT_MONTH_KEY_TIMEZONE,
        launch_at: datetime | None = None,
        carryover_month: str | None = None,
    ) -> None:
        """
        Initialize calculator.

        Args:
            timezone: IANA zone the month boundaries follow
            launch_at: Exact program launch instant (aware, kept as UTC)
            carryover_month: First official month absorbing post-launch joins
        """
        self.zone = ZoneInfo(timezone)
        self.launch_at = to_utc(launch_at) if launch_at else None
        self.carryover_month = carryover_month
        if carryover_month is not None:
            parse_month_key(carryover_month)

    @classmethod
    def from_settings(cls, settings: Any) -> "MonthKeyCalculator":
        """Build calculator from application settings."""
        return cls(
            timezone=settings.month_key_timezone,
            launch_at=settings.affiliate_launch_at,
            carryover_month=settings.affiliate_carryover_to_month,
        )

    @property
    def carryover_enabled(self) -> bool:
        return bool(self.launch_at and self.carryover_month)

    def for_instant(self, timestamp: datetime) -> str:
        """
        Format an instant as YYYY-MM in the configured timezone.

        Naive datetimes are treated as UTC.
        """
        local = ensure_aware(timestamp).astimezone(self.zone)
        return f"{local.year:04d}-{local.month:02d}"

    def current(self, now: datetime | None = None) -> str:
        """Month key for now."""
        return self.for_instant(now or utc_now())

    @staticmethod
    def previous(month_key: str) -> str:
        """Calendar month immediately before month_key."""
        return previous_month_key(month_key)

    def query_filter(self, month_key: str) -> MonthFilter:
        """
        Build the entry filter for a month.

        Args:
            month_key: Target month (YYYY-MM)

        Returns:
            MonthFilter with carryover applied when configured
        """
        parse_month_key(month_key)

        if not self.carryover_enabled:
            return MonthFilter(month_key=month_key)

        if month_key == self.carryover_month:
            return MonthFilter(
                month_key=month_key,
                carryover_from_month=previous_month_key(month_key),
                launch_at=self.launch_at,
            )

        if month_key == previous_month_key(self.carryover_month):
            return MonthFilter(
                month_key=month_key,
                launch_at=self.launch_at,
                excludes_carried_over=True,
            )

        return MonthFilter(month_key=month_key)
