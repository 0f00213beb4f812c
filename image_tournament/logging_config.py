"""
Logging configuration for image tournament.

Sets up loguru with appropriate levels and formatting.
"""

import sys

from loguru import logger
from typing import Any


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Configure loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, enable debug logging and more verbose output
    """
    # Remove default handler
    logger.remove()
    logger.configure(extra={"name": "image_tournament"})

    log_level = "DEBUG" if debug else level

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}:{function}:{line}</cyan> - <level>{message}</level>",
    )

    # Session events (freezes, eliminations, finish) go to the run log
    logger.add(
        "image_tournament.log",
        level="INFO",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )

    if debug:
        logger.add(
            "image_tournament_debug.log",
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}",
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger instance bound to a component name.

    Args:
        name: Optional component name (defaults to "image_tournament")

    Returns:
        Logger instance
    """
    return logger.bind(name=name or "image_tournament")
