"""Logging configuration."""

import sys
from pathlib import Path

from loguru import logger

from settings import LOG_DIR, LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL, to_file: bool = True, log_dir: Path = LOG_DIR):
    """Send logs to stderr and, optionally, to a daily rotated file in log_dir."""
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <cyan>{name}</cyan> | {message}",
        level=level,
        colorize=True,
    )

    if to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "tablecache_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
            compression="gz",
        )
        logger.info("Logging to {}", log_dir)

    return logger
