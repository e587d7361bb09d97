"""Logging setup.

Every module logs through loguru's shared ``logger``. This module only
decides where the records go and at which level.
"""

import sys

from loguru import logger

from api_store.config import settings


def configure_logging(level: str | None = None) -> None:
    """Install a single stderr sink at the configured level.

    Args:
        level: Loguru level name. Defaults to settings.log_level.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or settings.log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )


__all__ = ["configure_logging", "logger"]
