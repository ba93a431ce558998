"""
Unit tests for AttributionLogWriter.

Tests cover:
- Entry creation with the civil-timezone month key
- Write-once attribution per invitee
- Store failures leaving no partial state
"""

from datetime import UTC, datetime

import pytest

from app.services.invites.attribution_log import AttributionLogWriter
from app.services.invites.attribution_resolver import (
    AttributionOutcome,
    AttributionResult,
)

GUILD = 111


def attributed(invitee="J1", inviter="M1", code="CODE-A"):
    return AttributionResult(
        outcome=AttributionOutcome.ATTRIBUTED,
        community_id=GUILD,
        invitee_id=invitee,
        code=code,
        inviter_id=inviter,
        delta=1,
    )


class TestAttributionLogWriter:
    """Test invites log writes."""

    @pytest.mark.asyncio
    async def test_records_entry_and_member(self, record_store, month_keys):
        """Test an attributed join creates an entry and stamps the member."""
        joined_at = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
        writer = AttributionLogWriter(record_store.session(), month_keys)

        result = await writer.record(attributed(), joined_at)

        assert result.success
        entry = result.data
        assert entry.invitee_discord_id == "J1"
        assert entry.inviter_discord_id == "M1"
        assert entry.invite_code == "CODE-A"
        assert entry.month_key == "2026-03"
        assert entry.qualified is False

        member = record_store.data.members["J1"]
        assert member.invited_by_discord_id == "M1"
        assert member.invite_code_used == "CODE-A"
        assert record_store.commits == 1

    @pytest.mark.asyncio
    async def test_month_key_uses_amsterdam_time(self, record_store, month_keys):
        """Test a late-evening UTC join lands in the next Amsterdam month."""
        joined_at = datetime(2026, 1, 31, 23, 30, tzinfo=UTC)
        writer = AttributionLogWriter(record_store.session(), month_keys)

        result = await writer.record(attributed(), joined_at)

        assert result.data.month_key == "2026-02"

    @pytest.mark.asyncio
    async def test_naive_join_time_is_utc(self, record_store, month_keys):
        """Test naive timestamps are treated as UTC."""
        writer = AttributionLogWriter(record_store.session(), month_keys)

        result = await writer.record(attributed(), datetime(2026, 5, 1, 1, 0))

        assert result.data.joined_at.tzinfo is not None
        assert result.data.month_key == "2026-05"

    @pytest.mark.asyncio
    async def test_not_attributed_writes_nothing(self, record_store, month_keys):
        """Test non-attributed results are not logged."""
        writer = AttributionLogWriter(record_store.session(), month_keys)
        result = AttributionResult(
            outcome=AttributionOutcome.AMBIGUOUS,
            community_id=GUILD,
            invitee_id="J1",
        )

        outcome = await writer.record(result, datetime.now(UTC))

        assert not outcome.success
        assert outcome.error_code == "not_attributed"
        assert record_store.data.entries == []


class TestWriteOnce:
    """Test first attribution wins."""

    @pytest.mark.asyncio
    async def test_rejoin_keeps_first_attribution(self, record_store, month_keys):
        """Test a member who leaves and rejoins keeps the first inviter."""
        writer = AttributionLogWriter(record_store.session(), month_keys)
        await writer.record(attributed(inviter="M1"), datetime(2026, 3, 1, tzinfo=UTC))

        second = await writer.record(
            attributed(inviter="M2", code="CODE-B"),
            datetime(2026, 4, 1, tzinfo=UTC),
        )

        assert not second.success
        assert second.error_code == "already_attributed"
        assert len(record_store.data.entries) == 1
        assert record_store.data.members["J1"].invited_by_discord_id == "M1"

    @pytest.mark.asyncio
    async def test_existing_entry_without_member_stamp(self, record_store, month_keys):
        """Test the invites log alone is enough to block a second entry."""
        record_store.add_entry(
            "J1", "M1", datetime(2026, 3, 1, tzinfo=UTC), "2026-03"
        )
        writer = AttributionLogWriter(record_store.session(), month_keys)

        result = await writer.record(
            attributed(inviter="M2"), datetime(2026, 3, 2, tzinfo=UTC)
        )

        assert result.error_code == "already_attributed"
        assert len(record_store.data.entries) == 1


class TestStoreFailures:
    """Test record store errors."""

    @pytest.mark.asyncio
    async def test_store_error_rolls_back(self, record_store, month_keys):
        """Test a failed write reports store_error and leaves no rows."""
        record_store.fail_writes = True
        writer = AttributionLogWriter(record_store.session(), month_keys)

        result = await writer.record(attributed(), datetime(2026, 3, 1, tzinfo=UTC))

        assert not result.success
        assert result.error_code == "store_error"
        assert record_store.rollbacks == 1
        assert record_store.data.entries == []
        assert "J1" not in record_store.data.members
