"""
Logging setup.

Configures loguru with a stderr sink and a rotated file sink.
"""

import sys

from loguru import logger

from referral_hierarchy.config.settings import settings


def setup_logging(log_file: str | None = None, level: str | None = None) -> None:
    """
    Configure logger with file rotation.

    Args:
        log_file: File sink path (settings.log_file when omitted)
        level: Minimum level (settings.log_level when omitted)
    """
    level = (level or settings.log_level).upper()

    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        log_file or settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
    )

    logger.info(
        f"Logging configured (environment={settings.environment}, level={level})"
    )
