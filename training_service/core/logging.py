"""Structured logging configuration."""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import add_logger_name

from training_service.core.config import settings

# Libraries whose INFO output drowns out request logs
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "asyncio")


def add_service_context(logger, method_name, event_dict):
    """Stamp every event with the service identity."""
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("version", settings.APP_VERSION)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None):
    """Configure structlog and the stdlib root logger.

    ``log_level`` and ``log_format`` default to ``LOG_LEVEL`` and ``LOG_FORMAT``.
    """
    level = getattr(logging, log_level or settings.LOG_LEVEL)
    if (log_format or settings.LOG_FORMAT) == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            add_log_level,
            add_logger_name,
            add_service_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            TimeStamper(fmt="iso"),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    # SQL statements are echoed by the engine itself when DATABASE_ECHO is set
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DATABASE_ECHO else logging.WARNING
    )
