"""
Logging setup.

Configures the loguru logger: stderr sink plus an optional rotating file.
"""

import sys

from loguru import logger

from earnhub.config.settings import settings


def setup_logging() -> None:
    """Configure logger sinks from settings."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(
        "Logging configured",
        extra={"level": settings.log_level, "environment": settings.environment},
    )
