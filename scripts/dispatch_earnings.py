#!/usr/bin/env python3
"""
Re-run monthly payout summaries.

Members who already received the summary for the month are skipped, so
running it twice is safe.

Usage:
    python scripts/dispatch_earnings.py --month 2026-02
    python scripts/dispatch_earnings.py            # previous month
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import discord  # noqa: E402
from loguru import logger  # noqa: E402

from app.config.database import async_session_maker, engine  # noqa: E402
from app.config.settings import settings  # noqa: E402
from app.services.leaderboard.earnings_notifications import (  # noqa: E402
    EarningsNotificationDispatcher,
)
from app.services.leaderboard.month_keys import (  # noqa: E402
    MonthKeyCalculator,
    parse_month_key,
)
from bot.platform.discord_adapter import DiscordMessagingTransport  # noqa: E402

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def dispatch(month_key: str) -> int:
    """Send summaries for a month. Returns the number of failed sends."""
    month_keys = MonthKeyCalculator.from_settings(settings)

    # REST-only client: enough to fetch users and open DMs
    client = discord.Client(intents=discord.Intents.none())
    await client.login(settings.discord_bot_token)

    try:
        transport = DiscordMessagingTransport(
            client, timeout=settings.platform_fetch_timeout
        )
        async with async_session_maker() as session:
            dispatcher = EarningsNotificationDispatcher(
                session,
                month_keys,
                transport,
                referral_fee=settings.referral_fee_eur,
            )
            report = await dispatcher.dispatch(month_key)
    finally:
        await client.close()
        await engine.dispose()

    logger.info(
        f"{month_key}: sent={report.sent} skipped={report.skipped} "
        f"failed={report.failed}"
    )
    if report.failed_inviters:
        logger.warning(f"Failed: {', '.join(report.failed_inviters)}")
    return report.failed


def main() -> None:
    parser = argparse.ArgumentParser(description="Send monthly payout summaries")
    parser.add_argument(
        "--month",
        help="Month key YYYY-MM (default: previous month)",
    )
    args = parser.parse_args()

    month_key = args.month
    if month_key is None:
        month_keys = MonthKeyCalculator.from_settings(settings)
        month_key = month_keys.previous(month_keys.current())

    try:
        parse_month_key(month_key)
    except ValueError as e:
        parser.error(str(e))

    failed = asyncio.run(dispatch(month_key))
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
