"""Loguru setup shared by the command line entry points."""

import sys

from loguru import logger

from filewatch.utils.config import DEFAULT_LOG_FORMAT


def configure_logging(level: str = "INFO", fmt: str = DEFAULT_LOG_FORMAT) -> None:
    """Replace loguru's default handler with a single stdout sink."""
    logger.remove()
    logger.add(sys.stdout, format=fmt, level=level.upper())
