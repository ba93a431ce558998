"""Invite snapshot refresh task."""

import discord
from loguru import logger

from app.utils.exceptions import InviteFetchError


async def refresh_invite_snapshots(client: discord.Client, services) -> int:
    """
    Refresh invite snapshots of all tracked guilds.

    Returns:
        Number of guilds refreshed
    """
    refreshed = 0
    for guild_id in services.tracked_guild_ids(client):
        try:
            await services.snapshot_store.refresh(guild_id)
            refreshed += 1
        except InviteFetchError as e:
            logger.warning(f"Periodic snapshot refresh failed: {e}")
    return refreshed
