"""Logging configuration for dastkit."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, level: str = "INFO") -> None:
    """Configure loguru; verbose forces DEBUG."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else level, format="{level.icon} {message}")
