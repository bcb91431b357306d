"""Logging configuration for MoveScan.

This module configures Loguru for environment-specific logging:
- Development: File-based logging with rotation plus colored stdout
- Production: stdout logging for the container log collector
- Test: Minimal logging to avoid noise
"""

import sys
from pathlib import Path

from loguru import logger

from config.settings import settings


def setup_logging() -> None:
    """Configure logging based on environment.

    Development:
        - Logs to file: logs/movescan_{date}.log
        - Rotation: daily, retention: 14 days
        - Level: from settings.LOG_LEVEL
        - Backtrace and diagnose enabled

    Production:
        - Logs to stdout
        - Level: from settings.LOG_LEVEL
        - Diagnose disabled (API keys may appear in locals)

    Test:
        - Logs to stdout at WARNING
    """
    logger.remove()

    if settings.ENVIRONMENT == "development":
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        logger.add(
            "logs/movescan_{time:YYYY-MM-DD}.log",
            rotation="1 day",
            retention="14 days",
            level=settings.LOG_LEVEL,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{module}:{function}:{line} | "
                "{message}"
            ),
            backtrace=True,
            diagnose=True,
            enqueue=True,  # Thread-safe
        )

        logger.add(
            sys.stdout,
            level=settings.LOG_LEVEL,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{module}</cyan>:<cyan>{function}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

        logger.info("Logging configured for DEVELOPMENT environment")

    elif settings.ENVIRONMENT == "production":
        logger.add(
            sys.stdout,
            level=settings.LOG_LEVEL,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{module}:{function}:{line} | "
                "{message}"
            ),
            serialize=False,
            backtrace=True,
            diagnose=False,
            enqueue=True,  # Thread-safe
        )

        logger.info("Logging configured for PRODUCTION environment")

    elif settings.ENVIRONMENT == "test":
        logger.add(
            sys.stdout,
            level="WARNING",
            format="{level: <8} | {message}",
            colorize=False,
        )

        logger.debug("Logging configured for TEST environment")

    else:
        logger.add(
            sys.stdout,
            level="INFO",
            format="{time:HH:mm:ss} | {level: <8} | {message}",
        )
        logger.warning(f"Unknown environment: {settings.ENVIRONMENT}, using fallback logging")
