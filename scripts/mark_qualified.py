#!/usr/bin/env python3
"""
Mark a referral as qualified after the invitee's first completed deal.

Usage:
    python scripts/mark_qualified.py <invitee_discord_id> [...]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from app.config.database import async_session_maker, engine  # noqa: E402
from app.services.invites.qualification import (  # noqa: E402
    ReferralQualificationService,
)

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def mark(invitee_ids: list[str]) -> int:
    """Mark invitees qualified. Returns the number of unknown invitees."""
    unknown = 0
    try:
        for invitee_id in invitee_ids:
            async with async_session_maker() as session:
                result = await ReferralQualificationService(
                    session
                ).mark_qualified(invitee_id)

            if result.success:
                logger.success(
                    f"{invitee_id}: qualified (inviter "
                    f"{result.data['inviter_id']}, month "
                    f"{result.data['month_key']})"
                )
            elif result.error_code == "already_qualified":
                logger.info(f"{invitee_id}: already qualified")
            else:
                logger.warning(f"{invitee_id}: {result.error}")
                unknown += 1
    finally:
        await engine.dispose()
    return unknown


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Mark referrals as qualified (first deal completed)"
    )
    parser.add_argument("invitee_ids", nargs="+", help="Invitee Discord IDs")
    args = parser.parse_args()

    unknown = asyncio.run(mark(args.invitee_ids))
    sys.exit(1 if unknown else 0)


if __name__ == "__main__":
    main()
