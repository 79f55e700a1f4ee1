"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings

# Third-party loggers that drown out per-source progress at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore", "apscheduler")


def setup_logging(level: Optional[str] = None):
    """
    Configure application logging.

    ``level`` overrides ``settings.LOG_LEVEL`` (the CLI ``--log-level`` flag).
    ``settings.LOGGER_LEVELS`` is applied last, so single modules such as the
    retry guard can be raised or lowered independently of the root level.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name, name_level in settings.LOGGER_LEVELS.items():
        logging.getLogger(name).setLevel(name_level.upper())

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level ({settings.ENVIRONMENT})")
