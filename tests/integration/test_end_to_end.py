"""
End-to-end flow over in-memory platform and record store.

Two members get personal invites, two newcomers join through them, one
completes a deal; the month is ranked, closed and paid out.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.services.invites.attribution_resolver import AttributionResolver
from app.services.invites.join_handler import JoinHandler
from app.services.invites.personal_invites import PersonalInviteService
from app.services.invites.qualification import ReferralQualificationService
from app.services.leaderboard.aggregation import LeaderboardService
from app.services.leaderboard.earnings_notifications import (
    EarningsNotificationDispatcher,
)
from app.services.leaderboard.publisher import LeaderboardPublisher
from app.services.leaderboard.rollover import LeaderboardRollover, TickOutcome

GUILD = 111
AFFILIATE_CHANNEL = 222
LIVE_CHANNEL = 333
WINNERS_CHANNEL = 444


@pytest.mark.asyncio
async def test_invite_attribution_to_payout(
    platform, snapshot_store, record_store, month_keys, transport
):
    record_store.add_member("M1", "maria")
    record_store.add_member("M2", "marco")

    invites = PersonalInviteService(
        platform, snapshot_store, record_store.session, AFFILIATE_CHANNEL, GUILD
    )
    m1_invite = await invites.get_or_create("M1")
    m2_invite = await invites.get_or_create("M2")
    code_a = m1_invite.data["code"]
    code_b = m2_invite.data["code"]

    # Baseline with both fresh codes, then one use each
    platform.snapshots = [{code_a: 0, code_b: 0}]
    await snapshot_store.refresh(GUILD)
    platform.snapshots = [{code_a: 1, code_b: 0}, {code_a: 1, code_b: 1}]

    handler = JoinHandler(AttributionResolver(snapshot_store), month_keys, record_store.session)
    j1 = await handler.handle_join(
        GUILD, "J1", username="jade", joined_at=datetime(2026, 3, 5, 10, tzinfo=UTC)
    )
    j2 = await handler.handle_join(
        GUILD, "J2", username="jon", joined_at=datetime(2026, 3, 6, 10, tzinfo=UTC)
    )

    assert j1.attribution.inviter_id == "M1"
    assert j2.attribution.inviter_id == "M2"
    assert j1.recorded and j2.recorded

    def build(month_key):
        service = LeaderboardService(record_store.session(), month_keys)
        return service.build_leaderboards(month_key)

    boards = await build("2026-03")
    assert [(r.inviter_id, r.count) for r in boards.invite_ranking] == [("M1", 1), ("M2", 1)]
    assert boards.affiliate_ranking == ()

    qualified = await ReferralQualificationService(record_store.session()).mark_qualified("J1")
    assert qualified.success

    boards = await build("2026-03")
    assert [(r.display_name, r.amount) for r in boards.affiliate_ranking] == [
        ("maria", Decimal("5"))
    ]

    async def dispatch(month_key):
        dispatcher = EarningsNotificationDispatcher(
            record_store.session(), month_keys, transport, send_delay=0
        )
        return await dispatcher.dispatch(month_key)

    rollover = LeaderboardRollover(
        month_keys=month_keys,
        build_leaderboards=build,
        publisher=LeaderboardPublisher(transport, LIVE_CHANNEL, WINNERS_CHANNEL),
        dispatch_earnings=dispatch,
    )
    await rollover.tick(datetime(2026, 3, 20, tzinfo=UTC))
    report = await rollover.tick(datetime(2026, 4, 1, 6, tzinfo=UTC))

    assert report.outcome == TickOutcome.ROLLED_OVER
    assert report.final_published
    assert [user for user, _ in transport.dms] == ["M1"]
    assert "**€5**" in transport.dms[0][1].description
    assert record_store.data.members["M1"].last_earnings_dm_month == "2026-03"

    # Re-running the payout for the closed month sends nothing new
    rerun = await dispatch("2026-03")
    assert rerun.sent == 0
    assert len(transport.dms) == 1
