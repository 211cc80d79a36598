#!/usr/bin/env python3
"""Initialize database tables and seed the default VIP tiers."""

import asyncio

from loguru import logger

from earnhub.config.logging import setup_logging
from earnhub.database import (
    create_engine,
    create_session_maker,
    init_models,
    seed_vip_tiers,
)


async def init_database() -> None:
    """Create all database tables and insert missing VIP tiers."""
    logger.info("Connecting to database...")
    engine = create_engine()

    try:
        logger.info("Creating tables (checkfirst=True)...")
        await init_models(engine)

        inserted = await seed_vip_tiers(create_session_maker(engine))
        logger.info(f"VIP tiers inserted: {inserted}")
    finally:
        await engine.dispose()

    logger.success("Database initialized successfully!")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
