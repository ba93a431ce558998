"""Leaderboard tick task: live board refresh and month rollover."""

import discord
from loguru import logger

from app.services.leaderboard.rollover import TickOutcome


async def run_leaderboard_tick(client: discord.Client, services) -> None:
    """
    Run one rollover tick.

    Skipped while the bot is not connected to the affiliate guild.
    """
    if services.rollover is None:
        return

    guild_id = services.config.affiliate_guild_id
    if guild_id and client.get_guild(int(guild_id)) is None:
        logger.debug("Leaderboard tick skipped: affiliate guild not available")
        return

    report = await services.rollover.tick()

    if report.outcome == TickOutcome.ROLLED_OVER:
        logger.info(
            f"Leaderboard rolled over {report.closed_month} -> "
            f"{report.month_key} (final posted: {report.final_published})"
        )
    elif report.outcome == TickOutcome.CLOSE_FAILED:
        logger.warning(
            f"Closing {report.closed_month} failed, retrying next tick"
        )
