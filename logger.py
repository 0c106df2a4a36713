# logger.py
"""Logging configuration for the vending fleet simulation using loguru."""

import sys
from typing import Optional

from loguru import logger

from config import LOG_LEVEL


def setup_logger(
    log_level: str = LOG_LEVEL,
    log_file: Optional[str] = None,
    console_output: bool = True,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru sinks for console and/or file output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a log file sink
        console_output: Whether to log to stderr
        rotation: Log rotation size for the file sink
        retention: How long to keep rotated files
    """
    logger.remove()
    logger.configure(extra={"name": "vending"})

    if console_output:
        logger.add(
            sys.stderr,
            level=log_level,
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan> - <level>{message}</level>",
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}",
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
        )


def get_logger(name: Optional[str] = None):
    """Return the loguru logger bound to `name` (defaults to "vending")."""
    return logger.bind(name=name or "vending")
