"""Structured logging for the service and its libraries."""

import logging
import sys

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import add_logger_name

from learntrack.core.config import settings

# Library loggers that are too chatty at INFO
QUIET_LOGGERS = ("aiosqlite", "asyncio", "multipart")


def _renderer():
    if settings.LOG_FORMAT == "json":
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging():
    """Configure structlog over stdlib logging.

    Every event carries the service name and environment so lines from
    several deployments can share one sink.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            add_log_level,
            add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            TimeStamper(fmt="iso", utc=True),
            _renderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.LOG_LEVEL)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    if not settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(
        service=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT
    )
