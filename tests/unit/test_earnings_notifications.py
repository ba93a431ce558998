"""
Unit tests for EarningsNotificationDispatcher.

Tests cover:
- One summary per inviter with qualified referrals
- Idempotent re-runs through the monthly marker
- Failed deliveries retried by the next run
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.services.leaderboard.earnings_notifications import (
    EarningsNotificationDispatcher,
)


@pytest.fixture
def march(record_store):
    """1001 has two qualified referrals, 1002 one, 1003 none."""
    store = record_store
    store.add_entry("J1", "1001", datetime(2026, 3, 2, tzinfo=UTC), "2026-03", qualified=True)
    store.add_entry("J2", "1001", datetime(2026, 3, 3, tzinfo=UTC), "2026-03", qualified=True)
    store.add_entry("J3", "1002", datetime(2026, 3, 4, tzinfo=UTC), "2026-03", qualified=True)
    store.add_entry("J4", "1003", datetime(2026, 3, 5, tzinfo=UTC), "2026-03")
    for discord_id in ("1001", "1002", "1003"):
        store.add_member(discord_id, f"user{discord_id}")
    return store


def make_dispatcher(store, month_keys, transport, fee=Decimal("5")):
    return EarningsNotificationDispatcher(
        store.session(), month_keys, transport, referral_fee=fee, send_delay=0
    )


class TestDispatch:
    """Test payout summary delivery."""

    @pytest.mark.asyncio
    async def test_sends_one_summary_per_qualified_inviter(self, march, month_keys, transport):
        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert report.sent == 2
        assert report.failed == 0
        recipients = [user for user, _ in transport.dms]
        assert sorted(recipients) == ["1001", "1002"]

        content = dict(transport.dms)["1001"]
        assert content.title.endswith("2026-03")
        assert "**€10**" in content.description
        assert "**2 qualified referrals**" in content.description

    @pytest.mark.asyncio
    async def test_singular_referral_wording(self, march, month_keys, transport):
        await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        content = dict(transport.dms)["1002"]
        assert "**1 qualified referral**" in content.description

    @pytest.mark.asyncio
    async def test_marker_advanced_after_delivery(self, march, month_keys, transport):
        await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert march.data.members["1001"].last_earnings_dm_month == "2026-03"
        assert march.data.members["1003"].last_earnings_dm_month is None

    @pytest.mark.asyncio
    async def test_rerun_sends_nothing(self, march, month_keys, transport):
        await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert report.sent == 0
        assert report.skipped == 2
        assert len(transport.dms) == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried(self, march, month_keys, transport):
        transport.refuse_dm_to.add("1002")

        first = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert first.sent == 1
        assert first.failed == 1
        assert first.failed_inviters == ["1002"]
        assert march.data.members["1002"].last_earnings_dm_month is None

        transport.refuse_dm_to.clear()
        second = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert second.sent == 1
        assert [user for user, _ in transport.dms].count("1002") == 1
        assert [user for user, _ in transport.dms].count("1001") == 1

    @pytest.mark.asyncio
    async def test_missing_member_row_is_skipped(self, march, month_keys, transport):
        del march.data.members["1002"]

        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert report.sent == 1
        assert report.skipped == 1

    @pytest.mark.asyncio
    async def test_marker_of_later_month_blocks_older_dispatch(self, march, month_keys, transport):
        march.data.members["1001"].last_earnings_dm_month = "2026-04"

        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert "1001" not in [user for user, _ in transport.dms]
        assert march.data.members["1001"].last_earnings_dm_month == "2026-04"
        assert report.skipped == 1

    @pytest.mark.asyncio
    async def test_transport_exception_counts_as_failure(self, march, month_keys, transport):
        async def explode(user_id, content):
            raise RuntimeError("gateway closed")

        transport.send_to_user = explode

        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-03")

        assert report.sent == 0
        assert report.failed == 2
        assert march.data.members["1001"].last_earnings_dm_month is None

    @pytest.mark.asyncio
    async def test_month_without_qualified_referrals(self, march, month_keys, transport):
        report = await make_dispatcher(march, month_keys, transport).dispatch("2026-02")

        assert (report.sent, report.skipped, report.failed) == (0, 0, 0)
        assert transport.dms == []

    @pytest.mark.asyncio
    async def test_qualified_counts(self, march, month_keys, transport):
        counts = await make_dispatcher(march, month_keys, transport).qualified_counts("2026-03")

        assert counts == {"1001": 2, "1002": 1}
