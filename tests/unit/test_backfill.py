"""Unit tests for MemberBackfillService."""

import pytest

from app.services.members.backfill import MemberBackfillService
from app.services.platform import GuildMemberInfo


def members(count, bots=0):
    humans = [
        GuildMemberInfo(discord_id=str(1000 + i), username=f"user{i}", display_name=f"User {i}")
        for i in range(count)
    ]
    robots = [
        GuildMemberInfo(discord_id=str(9000 + i), username=f"bot{i}", is_bot=True)
        for i in range(bots)
    ]
    return humans + robots


class TestBackfill:
    """Test member import."""

    @pytest.mark.asyncio
    async def test_writes_humans_in_batches(self, platform, record_store):
        platform.members = members(23, bots=2)
        service = MemberBackfillService(platform, record_store.session, batch_size=10, delay_ms=0)

        report = await service.run(111)

        assert report.total == 25
        assert report.skipped_bots == 2
        assert report.written == 23
        assert report.failed_batches == 0
        # 10 + 10 + 3
        assert record_store.commits == 3
        assert record_store.data.members["1005"].username == "user5"
        assert record_store.data.members["1005"].display_name == "User 5"
        assert "9000" not in record_store.data.members

    @pytest.mark.asyncio
    async def test_batch_size_is_clamped(self, platform, record_store):
        service = MemberBackfillService(platform, record_store.session, batch_size=50)

        assert service.batch_size == 10
        assert MemberBackfillService(platform, record_store.session, batch_size=0).batch_size == 1

    @pytest.mark.asyncio
    async def test_existing_members_keep_attribution(self, platform, record_store):
        record_store.add_member("1000", "old", invited_by_discord_id="42")
        platform.members = members(1)
        service = MemberBackfillService(platform, record_store.session, delay_ms=0)

        await service.run(111)

        member = record_store.data.members["1000"]
        assert member.username == "user0"
        assert member.invited_by_discord_id == "42"

    @pytest.mark.asyncio
    async def test_failed_batch_is_counted(self, platform, record_store):
        platform.members = members(5)
        record_store.fail_writes = True
        service = MemberBackfillService(platform, record_store.session, batch_size=2, delay_ms=0)

        report = await service.run(111)

        assert report.written == 0
        assert report.failed_batches == 3
        assert record_store.data.members == {}
