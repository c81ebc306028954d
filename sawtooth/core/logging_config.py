# sawtooth/core/logging_config.py
"""
Centralized logging configuration for the application.

Keeps library chatter (database drivers, HTTP clients, the Stripe SDK and the
scheduler) at WARNING while application loggers follow LOG_LEVEL.
"""

import logging
import os


def configure_logging():
    """
    Configure logging for the application.

    - App code: INFO (or DEBUG if LOG_LEVEL=DEBUG)
    - HTTP clients (httpx, httpcore): WARNING only
    - Database: WARNING only
    - Stripe SDK and APScheduler: WARNING only
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Quiet noisy HTTP client loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # Quiet database loggers
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    # Payment SDK and scheduler
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.getLogger("sawtooth").setLevel(level)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured at level: %s", log_level)
