"""
Bot Initialization - Logging Module.

Module: logging.py
Configures loguru: stderr plus a daily-rotated file kept for a week.
"""

import sys

from loguru import logger

from app.config.settings import settings

LOG_FILE = "logs/bot.log"


def setup_logging() -> None:
    """Replace the default loguru sink with the bot's sinks."""
    level = "DEBUG" if settings.debug else settings.log_level

    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        LOG_FILE,
        level=level,
        rotation="1 day",
        retention="7 days",
        encoding="utf-8",
        enqueue=True,
    )

    logger.info(
        f"Starting affiliate invites bot ({settings.environment}, log level {level})"
    )
