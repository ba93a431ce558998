"""
Leaderboard and affiliate message content.

Builders return platform-neutral MessageContent; the Discord transport
renders them as embeds.
"""

from datetime import datetime
from decimal import Decimal

from app.config.constants import (
    AFFILIATE_INFO_TITLE,
    AFFILIATE_PROGRAM_TITLE,
    BRAND_COLOR,
    EARNINGS_COLOR,
    FINAL_RESULTS_TITLE_PREFIX,
    LEADERBOARD_INFO_TITLE,
    LEADERBOARD_TITLE_PREFIX,
    TOP_INVITER_PRIZES,
)
from app.services.leaderboard.aggregation import Leaderboards, UserStats
from app.services.platform import MessageContent
from app.utils.formatters import format_eur, format_table


TOP_INVITERS_FIELD = "🔥 Top Inviters"
TOP_AFFILIATES_FIELD = "💰 Top Affiliates"
NO_INVITES_TEXT = "No invites yet this month."
NO_QUALIFIED_TEXT = "No qualified referrals yet."

MEDALS = ("🥇", "🥈", "🥉")


def _ranking_fields(leaderboards: Leaderboards) -> tuple[tuple[str, str], ...]:
    if leaderboards.invite_ranking:
        invites = format_table(
            ("User", "Invites"),
            [(r.display_name, str(r.count)) for r in leaderboards.invite_ranking],
        )
    else:
        invites = NO_INVITES_TEXT

    if leaderboards.affiliate_ranking:
        affiliates = format_table(
            ("User", "Total Earnings"),
            [
                (r.display_name, format_eur(r.amount or 0))
                for r in leaderboards.affiliate_ranking
            ],
        )
    else:
        affiliates = NO_QUALIFIED_TEXT

    return ((TOP_INVITERS_FIELD, invites), (TOP_AFFILIATES_FIELD, affiliates))


def live_leaderboard_message(leaderboards: Leaderboards) -> MessageContent:
    """Pinned live leaderboard for the running month."""
    return MessageContent(
        title=f"{LEADERBOARD_TITLE_PREFIX} {leaderboards.month_key}",
        fields=_ranking_fields(leaderboards),
        color=BRAND_COLOR,
    )


def final_results_message(leaderboards: Leaderboards) -> MessageContent:
    """Winners post for a closed month."""
    return MessageContent(
        title=f"{FINAL_RESULTS_TITLE_PREFIX} {leaderboards.month_key}",
        fields=_ranking_fields(leaderboards),
        color=BRAND_COLOR,
    )


def earnings_summary_message(
    month_key: str, qualified_count: int, amount: Decimal
) -> MessageContent:
    """Monthly payout summary sent to an inviter."""
    referrals = "referral" if qualified_count == 1 else "referrals"
    return MessageContent(
        title=f"💰 Affiliate Summary — {month_key}",
        description=(
            f"You earned **{format_eur(amount)}** from "
            f"**{qualified_count} qualified {referrals}**.\n\n"
            "Thanks for helping grow the community 🤝"
        ),
        color=EARNINGS_COLOR,
    )


def _stats_block(stats: UserStats) -> str:
    return (
        f"Invites: **{stats.invites}**\n"
        f"Qualified: **{stats.qualified}**\n"
        f"Earned: **{format_eur(stats.earned)}**"
    )


def user_stats_message(
    this_month: str,
    this_month_stats: UserStats,
    last_month: str,
    last_month_stats: UserStats,
    all_time_stats: UserStats,
) -> MessageContent:
    """/mystats reply."""
    return MessageContent(
        title="📈 Your Affiliate Stats",
        fields=(
            (f"This Month — {this_month}", _stats_block(this_month_stats)),
            (f"Last Month — {last_month}", _stats_block(last_month_stats)),
            ("All-time", _stats_block(all_time_stats)),
        ),
        color=BRAND_COLOR,
    )


def affiliate_program_message(referral_fee: Decimal) -> MessageContent:
    """Program message carrying the personal invite button."""
    return MessageContent(
        title=AFFILIATE_PROGRAM_TITLE,
        description="\n".join([
            "Click below to get your **personal invite link**.",
            "",
            "• Monthly invite leaderboard",
            f"• Earn **{format_eur(referral_fee)}** per invited member that "
            "completes their **first deal**",
        ]),
        color=BRAND_COLOR,
    )


def affiliate_info_message(referral_fee: Decimal) -> MessageContent:
    """How the affiliate program works."""
    return MessageContent(
        title=AFFILIATE_INFO_TITLE,
        description="\n".join([
            "**Why this program exists**",
            "We reward members who help grow a strong, active community.",
            "",
            "**How you earn**",
            f"• Earn **{format_eur(referral_fee)}** for each invited member "
            "who completes their **first deal**",
            "• Earn extra prizes by finishing among the "
            "**Top 3 Monthly Inviters**",
            "• Earnings are calculated monthly",
            "",
            "**How to join**",
            "1) Click **Get my Invite URL** in the affiliate channel",
            "2) Share your personal invite link",
            "3) Invites are tracked automatically",
            "",
            "**Important**",
            "• No spam or fake accounts",
            "• Abuse results in removal from the program",
        ]),
        color=BRAND_COLOR,
    )


def leaderboard_info_message(
    top_n: int,
    referral_fee: Decimal,
    affiliate_channel_id: int | None = None,
    launch_at: datetime | None = None,
    carryover_month: str | None = None,
) -> MessageContent:
    """How the monthly leaderboards and rewards work."""
    prizes = [
        f"{medal} - {format_eur(prize)}"
        for medal, prize in zip(MEDALS, TOP_INVITER_PRIZES)
    ]
    channel = (
        f"<#{affiliate_channel_id}>" if affiliate_channel_id
        else "the affiliate channel"
    )

    lines = [
        "Two leaderboards are tracked each month:",
        "",
        f"{TOP_INVITERS_FIELD}",
        "• Ranked by total invites into the server "
        "(via your personal invite link)",
        f"• Top {top_n} are displayed on the leaderboard",
        "• **Top 3** receive prizes:",
        "",
        *prizes,
        "",
        f"{TOP_AFFILIATES_FIELD}",
        "• Ranked by **qualified referrals** (invited members who complete "
        "their **first deal**)",
        f"• Earnings = **{format_eur(referral_fee)}** per qualified referral",
        f"• Top {top_n} are displayed on the leaderboard",
        "",
        "**How do I get my invite link?**",
        f"• Go to {channel} and click **Get my Invite URL**",
        "",
        "**When do I get paid?**",
        "• Earnings are calculated monthly",
        "• You receive a monthly DM summary after month end",
        "• Payouts are handled by admins",
        "",
        "**How do I see my stats if I'm not in the leaderboards?**",
        "• Use the **/mystats** command in any channel",
        "",
    ]

    if launch_at and carryover_month:
        lines += [
            "**Launch carryover**",
            f"• Invites after **{launch_at.isoformat()}** will count towards "
            f"**{carryover_month}**",
            "",
        ]

    lines += [
        "**Important**",
        "• Abuse/spam/fake accounts may result in removal from the program",
    ]

    return MessageContent(
        title=LEADERBOARD_INFO_TITLE,
        description="\n".join(lines),
        color=BRAND_COLOR,
    )


def personal_invite_reply(url: str) -> str:
    """Ephemeral reply with the member's invite link."""
    return "\n".join([
        "✅ **Your personal invite link:**",
        url,
        "",
        "Copy-paste message:",
        f"Join us: {url}",
    ])
