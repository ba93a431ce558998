"""
Leaderboard rollover.

Month state machine driven by a periodic tick:

    Uninitialized --tick--> InMonth(now)
    InMonth(m) --tick, same month--> InMonth(m)         (live board refresh)
    InMonth(m) --tick, new month--> close m, InMonth(now)

Closing a month builds its final rankings; a non-empty month gets a final
results post followed by payout summaries, an empty one gets neither.

The current month lives in memory only. A restart across a month boundary
starts Uninitialized again, so the closed month's final results are not
posted automatically (payout summaries can be re-run with
scripts/dispatch_earnings.py).
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from loguru import logger

from app.services.leaderboard.aggregation import Leaderboards
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.services.leaderboard.publisher import LeaderboardPublisher
from app.utils.datetime_utils import utc_now


class TickOutcome(StrEnum):
    """What a tick did."""

    INITIALIZED = "initialized"
    REFRESHED = "refreshed"
    ROLLED_OVER = "rolled_over"
    CLOSE_FAILED = "close_failed"


@dataclass(frozen=True)
class TickReport:
    """Result of one tick."""

    outcome: TickOutcome
    month_key: str
    closed_month: str | None = None
    final_published: bool = False
    dispatched: bool = False
    rendered: bool = False


class LeaderboardRollover:
    """Drives live leaderboard refresh and month closing."""

    def __init__(
        self,
        month_keys: MonthKeyCalculator,
        build_leaderboards: Callable[[str], Awaitable[Leaderboards]],
        publisher: LeaderboardPublisher,
        dispatch_earnings: Callable[[str], Awaitable[Any]] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize rollover.

        Args:
            month_keys: Month key calculator
            build_leaderboards: Builds rankings for a month key
            publisher: Live board and final results publisher
            dispatch_earnings: Sends payout summaries for a closed month
            clock: Current instant provider
        """
        self.month_keys = month_keys
        self.build_leaderboards = build_leaderboards
        self.publisher = publisher
        self.dispatch_earnings = dispatch_earnings
        self.clock = clock
        self.current_month: str | None = None

    async def tick(self, now: datetime | None = None) -> TickReport:
        """
        Run one scheduler tick.

        Args:
            now: Tick instant, defaults to the clock

        Returns:
            TickReport
        """
        now_month = self.month_keys.current(now or self.clock())
        previous = self.current_month

        if previous is None:
            outcome = TickOutcome.INITIALIZED
            logger.info(f"Leaderboard rollover initialized at {now_month}")
        elif previous == now_month:
            outcome = TickOutcome.REFRESHED
        else:
            closed = await self._close_month(previous)
            if closed is None:
                return TickReport(
                    outcome=TickOutcome.CLOSE_FAILED,
                    month_key=previous,
                    closed_month=previous,
                )
            published, dispatched = closed
            self.current_month = now_month
            rendered = await self._render_live(now_month)
            return TickReport(
                outcome=TickOutcome.ROLLED_OVER,
                month_key=now_month,
                closed_month=previous,
                final_published=published,
                dispatched=dispatched,
                rendered=rendered,
            )

        self.current_month = now_month
        rendered = await self._render_live(now_month)
        return TickReport(outcome=outcome, month_key=now_month, rendered=rendered)

    async def _close_month(self, month_key: str) -> tuple[bool, bool] | None:
        """
        Publish final results and payout summaries for a closed month.

        Returns:
            (published, dispatched), or None when the close must be retried
        """
        try:
            final = await self.build_leaderboards(month_key)
        except Exception as e:
            logger.error(f"Failed to build final results for {month_key}: {e}")
            return None

        if final.is_empty:
            logger.info(
                f"{month_key} had no data, skipping final results and "
                f"payout summaries"
            )
            return False, False

        try:
            message_id = await self.publisher.publish_final(final)
        except Exception as e:
            logger.error(f"Failed to publish final results for {month_key}: {e}")
            return None

        if not message_id:
            logger.error(f"Final results for {month_key} were not posted")
            return None

        dispatched = False
        if self.dispatch_earnings is not None:
            try:
                await self.dispatch_earnings(month_key)
                dispatched = True
            except Exception as e:
                # Summaries can be re-sent with scripts/dispatch_earnings.py
                logger.error(
                    f"Payout summaries for {month_key} failed: {e}"
                )

        logger.info(f"Closed leaderboard month {month_key}")
        return True, dispatched

    async def _render_live(self, month_key: str) -> bool:
        try:
            leaderboards = await self.build_leaderboards(month_key)
            return await self.publisher.render_live(leaderboards)
        except Exception as e:
            logger.error(f"Live leaderboard refresh for {month_key} failed: {e}")
            return False
