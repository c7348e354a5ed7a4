# marketplace/core/logging_config.py
"""
Centralized logging configuration for the order core.

Application loggers (``marketplace.*``) follow LOG_LEVEL; database drivers,
the HTTP client used in tests and the server access log are held at WARNING.
"""

import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "asyncpg",
    "aiosqlite",
    "alembic",
    "httpx",
    "httpcore",
    "uvicorn.access",
)


def configure_logging(level: str = None):
    """
    Configure logging for the application.

    Args:
        level: Overrides LOG_LEVEL from the environment (DEBUG, INFO, ...)
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, handlers=[logging.StreamHandler()])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("marketplace").setLevel(numeric_level)

    logging.getLogger(__name__).info(f"Logging configured at level: {log_level}")
