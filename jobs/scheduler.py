"""
Job scheduler.

Runs the periodic jobs inside the bot's event loop with APScheduler:
- invite snapshot refresh
- leaderboard tick (live board refresh and month rollover)
"""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.utils.datetime_utils import utc_now
from jobs.health import set_scheduler
from jobs.tasks.invite_refresh import refresh_invite_snapshots
from jobs.tasks.leaderboard_tick import run_leaderboard_tick


# Global scheduler reference (used by graceful shutdown)
scheduler_instance: AsyncIOScheduler | None = None


def _wrap_job(
    job: Callable[..., Awaitable[Any]],
    *,
    name: str,
) -> Callable[..., Awaitable[Any]]:
    """Wrap coroutine job to log duration and keep failures inside the job."""

    @wraps(job)
    async def _inner(*args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        try:
            result = await job(*args, **kwargs)
        except Exception as e:
            logger.exception(
                f"Job {name} failed after {time.perf_counter() - started:.2f}s: {e}"
            )
            return None

        logger.debug(f"Job {name} finished in {time.perf_counter() - started:.2f}s")
        return result

    return _inner


def start_scheduler(client: discord.Client, services) -> AsyncIOScheduler:
    """
    Create and start the scheduler.

    Args:
        client: Connected bot
        services: AffiliateServices

    Returns:
        Running AsyncIOScheduler
    """
    global scheduler_instance

    config = services.config
    scheduler = AsyncIOScheduler(
        timezone=config.month_key_timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )

    scheduler.add_job(
        _wrap_job(refresh_invite_snapshots, name="invite_refresh"),
        trigger=IntervalTrigger(seconds=config.invite_refresh_interval_seconds),
        args=[client, services],
        id="invite_refresh",
        name="invite_refresh",
    )

    if services.rollover is not None:
        scheduler.add_job(
            _wrap_job(run_leaderboard_tick, name="leaderboard_tick"),
            trigger=IntervalTrigger(minutes=config.leaderboard_tick_minutes),
            args=[client, services],
            id="leaderboard_tick",
            name="leaderboard_tick",
            next_run_time=utc_now(),
        )

    scheduler.start()
    scheduler_instance = scheduler
    set_scheduler(scheduler)

    logger.info(
        f"Scheduler started with {len(scheduler.get_jobs())} jobs "
        f"(invite refresh every {config.invite_refresh_interval_seconds}s, "
        f"leaderboard tick every {config.leaderboard_tick_minutes}m)"
    )
    return scheduler
