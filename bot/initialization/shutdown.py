"""
Bot Initialization - Shutdown Module.

Module: shutdown.py
Releases what the bot holds open, in order: scheduled jobs first (so no
tick starts mid-shutdown), then the name cache connection, then the
database pool. Each step is independent; one failing does not skip the
rest.
"""

from collections.abc import Awaitable, Callable

from loguru import logger

from app.config.database import engine


async def _stop_scheduler() -> None:
    from jobs.scheduler import scheduler_instance

    if scheduler_instance and scheduler_instance.running:
        scheduler_instance.shutdown(wait=False)


async def shutdown_handler(redis_client=None) -> None:
    """
    Release scheduler, Redis and database resources.

    Args:
        redis_client: Name cache Redis client, if one was opened
    """
    steps: list[tuple[str, Callable[[], Awaitable[None]]]] = [
        ("scheduler", _stop_scheduler),
    ]
    if redis_client is not None:
        steps.append(("redis", redis_client.aclose))
    steps.append(("database", engine.dispose))

    for name, step in steps:
        try:
            await step()
            logger.info(f"Shutdown: {name} closed")
        except Exception as e:
            logger.warning(f"Shutdown: closing {name} failed: {e}")

    logger.info("Shutdown complete")
