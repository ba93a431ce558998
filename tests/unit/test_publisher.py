"""
Unit tests for LeaderboardPublisher and standing channel messages.
"""

from decimal import Decimal

import pytest

from app.config.constants import LEADERBOARD_TITLE_PREFIX
from app.services.leaderboard.aggregation import Leaderboards, RankingRow
from app.services.leaderboard.messages import (
    NO_INVITES_TEXT,
    NO_QUALIFIED_TEXT,
    TOP_AFFILIATES_FIELD,
    TOP_INVITERS_FIELD,
    live_leaderboard_message,
)
from app.services.leaderboard.publisher import (
    LeaderboardPublisher,
    ensure_channel_message,
)
from app.services.platform import MessageContent

LIVE = 10
WINNERS = 20


def march_board():
    return Leaderboards(
        month_key="2026-03",
        invite_ranking=(RankingRow(1, "1001", "alice", 3),),
        affiliate_ranking=(RankingRow(1, "1001", "alice", 1, Decimal("5")),),
    )


class TestRenderLive:
    """Test live leaderboard rendering."""

    @pytest.mark.asyncio
    async def test_posts_and_pins_when_missing(self, transport):
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        assert await publisher.render_live(march_board())

        channel, content = transport.channel_posts[0]
        assert channel == LIVE
        assert content.title == f"{LEADERBOARD_TITLE_PREFIX} 2026-03"
        assert len(transport.pins) == 1

    @pytest.mark.asyncio
    async def test_adopts_existing_message_after_restart(self, transport):
        """Test a fresh publisher edits our earlier post instead of reposting."""
        old_id = await transport.send_to_channel(
            LIVE, live_leaderboard_message(Leaderboards(month_key="2026-02"))
        )
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        assert await publisher.render_live(march_board())

        assert len(transport.channel_posts) == 1
        assert transport.edits[0][1] == old_id
        assert transport.messages[old_id][1].title.endswith("2026-03")
        assert (LIVE, old_id) in transport.pins

    @pytest.mark.asyncio
    async def test_reposts_when_cached_message_is_gone(self, transport):
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)
        await publisher.render_live(march_board())
        transport.messages.clear()

        assert await publisher.render_live(march_board())

        assert len(transport.channel_posts) == 2

    @pytest.mark.asyncio
    async def test_post_failure_returns_false(self, transport):
        transport.fail_channel_posts = True
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        assert not await publisher.render_live(march_board())

    @pytest.mark.asyncio
    async def test_empty_board_placeholders(self, transport):
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        await publisher.render_live(Leaderboards(month_key="2026-03"))

        content = transport.channel_posts[0][1]
        assert content.fields == (
            (TOP_INVITERS_FIELD, NO_INVITES_TEXT),
            (TOP_AFFILIATES_FIELD, NO_QUALIFIED_TEXT),
        )


class TestPublishFinal:
    """Test final results posts."""

    @pytest.mark.asyncio
    async def test_final_goes_to_winners_channel(self, transport):
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        message_id = await publisher.publish_final(march_board())

        assert message_id is not None
        channel, content = transport.channel_posts[0]
        assert channel == WINNERS
        assert "2026-03" in content.title
        assert "alice" in content.fields[0][1]
        assert "€5" in content.fields[1][1]

    @pytest.mark.asyncio
    async def test_final_failure_returns_none(self, transport):
        transport.fail_channel_posts = True
        publisher = LeaderboardPublisher(transport, LIVE, WINNERS)

        assert await publisher.publish_final(march_board()) is None


class TestEnsureChannelMessage:
    """Test standing informational messages."""

    @pytest.mark.asyncio
    async def test_creates_and_pins(self, transport):
        content = MessageContent(title="ℹ️ Info", description="v1")

        message_id = await ensure_channel_message(transport, 30, content, pin=True)

        assert message_id is not None
        assert transport.pins == [(30, message_id)]

    @pytest.mark.asyncio
    async def test_updates_existing_instead_of_duplicating(self, transport):
        first = await ensure_channel_message(
            transport, 30, MessageContent(title="ℹ️ Info", description="v1")
        )

        second = await ensure_channel_message(
            transport, 30, MessageContent(title="ℹ️ Info", description="v2")
        )

        assert first == second
        assert len(transport.channel_posts) == 1
        assert transport.messages[first][1].description == "v2"

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, transport):
        transport.fail_channel_posts = True

        result = await ensure_channel_message(
            transport, 30, MessageContent(title="ℹ️ Info")
        )

        assert result is None
        assert transport.pins == []
