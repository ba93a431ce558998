#!/usr/bin/env python3
"""
Create the affiliate tables directly from the models.

For local development and throwaway databases; deployed databases are
managed with `alembic upgrade head`.

Usage:
    python scripts/init_database.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402
from sqlalchemy import inspect  # noqa: E402

from app.config.database import engine  # noqa: E402
from app.models import Base  # noqa: E402


async def init_database() -> list[str]:
    """
    Create missing tables.

    Returns:
        Names of the tables created by this run
    """
    wanted = [table.name for table in Base.metadata.sorted_tables]

    async with engine.begin() as conn:
        existing = set(
            await conn.run_sync(lambda sync: inspect(sync).get_table_names())
        )
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await engine.dispose()

    created = [name for name in wanted if name not in existing]
    for name in wanted:
        logger.info(f"{name}: {'created' if name in created else 'already present'}")
    return created


if __name__ == "__main__":
    logger.remove()
    logger.add(sys.stderr, level="INFO")
    asyncio.run(init_database())
