"""
Unit tests for the SQL repositories against an in-memory SQLite database.

SQLite keeps no offset on DateTime(timezone=True) columns, so timestamps
are compared as stored UTC values; these tests pin that the written and
bound instants are normalized before they reach the database.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.repositories.attribution_repository import AttributionRepository
from app.repositories.member_repository import MemberRepository
from app.services.invites.attribution_log import AttributionLogWriter
from app.services.invites.attribution_resolver import AttributionOutcome, AttributionResult
from app.services.leaderboard.month_keys import MonthKeyCalculator
from app.utils.datetime_utils import to_utc

pytest.importorskip("aiosqlite")

LAUNCH = datetime.fromisoformat("2026-01-28T00:00:00+01:00")


class SqliteSession:
    """Fresh in-memory schema per test, one session over it."""

    def __init__(self) -> None:
        self._engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        self._sessionmaker = async_sessionmaker(
            self._engine, expire_on_commit=False, class_=AsyncSession
        )
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> AsyncSession:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._session = self._sessionmaker()
        return await self._session.__aenter__()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session is not None:
            await self._session.__aexit__(exc_type, exc, tb)
        await self._engine.dispose()


def carryover_keys() -> MonthKeyCalculator:
    return MonthKeyCalculator(
        timezone="Europe/Amsterdam", launch_at=LAUNCH, carryover_month="2026-02"
    )


async def add_entry(
    repo: AttributionRepository,
    invitee: str,
    joined_at: str,
    month_key: str,
    inviter: str = "1001",
    qualified: bool = False,
):
    return await repo.create(
        invitee_discord_id=invitee,
        inviter_discord_id=inviter,
        invite_code="CODE-A",
        joined_at=to_utc(datetime.fromisoformat(joined_at)),
        month_key=month_key,
        qualified=qualified,
    )


class TestAttributionRepositoryCarryover:
    """Test the SQL month filter."""

    @pytest.mark.asyncio
    async def test_post_launch_january_entry_counts_for_february(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "a", "2026-01-28T01:00:00+01:00", "2026-01")
            await add_entry(repo, "b", "2026-01-20T12:00:00+01:00", "2026-01")
            await add_entry(repo, "c", "2026-02-05T12:00:00+01:00", "2026-02")
            await session.commit()
            keys = carryover_keys()

            february = await repo.find_matching(keys.query_filter("2026-02"))
            january = await repo.find_matching(keys.query_filter("2026-01"))

        assert [e.invitee_discord_id for e in february] == ["a", "c"]
        assert [e.invitee_discord_id for e in january] == ["b"]

    @pytest.mark.asyncio
    async def test_launch_instant_itself_stays_in_january(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "edge", "2026-01-28T00:00:00+01:00", "2026-01")
            await session.commit()
            keys = carryover_keys()

            february = await repo.find_matching(keys.query_filter("2026-02"))
            january = await repo.find_matching(keys.query_filter("2026-01"))

        assert february == []
        assert [e.invitee_discord_id for e in january] == ["edge"]

    @pytest.mark.asyncio
    async def test_plain_month_without_carryover(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "a", "2026-01-28T01:00:00+01:00", "2026-01")
            await add_entry(repo, "c", "2026-02-05T12:00:00+01:00", "2026-02")
            await session.commit()
            keys = MonthKeyCalculator(timezone="Europe/Amsterdam")

            february = await repo.find_matching(keys.query_filter("2026-02"))

        assert [e.invitee_discord_id for e in february] == ["c"]

    @pytest.mark.asyncio
    async def test_qualified_only(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "a", "2026-02-02T12:00:00+01:00", "2026-02", qualified=True)
            await add_entry(repo, "b", "2026-02-03T12:00:00+01:00", "2026-02")
            await session.commit()
            keys = MonthKeyCalculator(timezone="Europe/Amsterdam")

            entries = await repo.find_matching(
                keys.query_filter("2026-02"), qualified_only=True
            )

        assert [e.invitee_discord_id for e in entries] == ["a"]

    @pytest.mark.asyncio
    async def test_writer_normalizes_offset_join_times(self):
        async with SqliteSession() as session:
            keys = carryover_keys()
            writer = AttributionLogWriter(session, keys)
            result = AttributionResult(
                outcome=AttributionOutcome.ATTRIBUTED,
                community_id=111,
                invitee_id="a",
                code="CODE-A",
                inviter_id="1001",
            )

            write = await writer.record(
                result, datetime.fromisoformat("2026-01-28T01:00:00+01:00")
            )
            repo = AttributionRepository(session)
            february = await repo.find_matching(keys.query_filter("2026-02"))
            january = await repo.find_matching(keys.query_filter("2026-01"))

        assert write.success
        assert write.data.month_key == "2026-01"
        assert [e.invitee_discord_id for e in february] == ["a"]
        assert january == []


class TestAttributionRepositoryQualification:
    """Test the conditional qualified flip."""

    @pytest.mark.asyncio
    async def test_mark_qualified_flips_once(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "a", "2026-02-02T12:00:00+01:00", "2026-02")
            await session.commit()
            at = datetime(2026, 2, 10, 9, tzinfo=UTC)

            first = await repo.mark_qualified("a", at)
            second = await repo.mark_qualified("a", at)
            await session.commit()
            entry = await repo.get_by_invitee("a")

        assert first is True
        assert second is False
        assert entry.qualified is True

    @pytest.mark.asyncio
    async def test_mark_qualified_unknown_invitee(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)

            flipped = await repo.mark_qualified("nobody", datetime(2026, 2, 10, tzinfo=UTC))

        assert flipped is False

    @pytest.mark.asyncio
    async def test_find_by_inviter(self):
        async with SqliteSession() as session:
            repo = AttributionRepository(session)
            await add_entry(repo, "a", "2026-01-05T12:00:00+01:00", "2026-01")
            await add_entry(repo, "b", "2026-02-05T12:00:00+01:00", "2026-02")
            await add_entry(repo, "c", "2026-02-06T12:00:00+01:00", "2026-02", inviter="1002")
            await session.commit()

            entries = await repo.find_by_inviter("1001")

        assert [e.invitee_discord_id for e in entries] == ["a", "b"]


class TestMemberRepository:
    """Test member upsert and name lookup."""

    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self):
        async with SqliteSession() as session:
            repo = MemberRepository(session)

            created = await repo.upsert("2001", username="newbie")
            await session.commit()
            updated = await repo.upsert(" 2001 ", display_name="Newbie")
            await session.commit()
            stored = await repo.find_by(discord_id="2001")

        assert created.id == updated.id
        assert len(stored) == 1
        assert stored[0].username == "newbie"
        assert stored[0].display_name == "Newbie"

    @pytest.mark.asyncio
    async def test_upsert_keeps_username_when_none(self):
        async with SqliteSession() as session:
            repo = MemberRepository(session)
            await repo.upsert("2001", username="newbie")

            member = await repo.upsert("2001", username=None, last_earnings_dm_month="2026-02")

        assert member.username == "newbie"
        assert member.last_earnings_dm_month == "2026-02"

    @pytest.mark.asyncio
    async def test_display_names_prefer_guild_name(self):
        async with SqliteSession() as session:
            repo = MemberRepository(session)
            await repo.upsert("1001", username="alice", display_name="Alice A.")
            await repo.upsert("1002", username="bob")
            await repo.upsert("1003")
            await session.commit()

            names = await repo.get_display_names(["1001", "1002", "1003", "9999"])

        assert names == {"1001": "Alice A.", "1002": "bob"}

    @pytest.mark.asyncio
    async def test_display_names_empty_input(self):
        async with SqliteSession() as session:
            names = await MemberRepository(session).get_display_names([])

        assert names == {}
