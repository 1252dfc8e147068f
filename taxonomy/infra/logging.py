"""Structured logging for the taxonomy service.

Every event carries the service name and, inside a request, the bound request
context (method, path, tenant, locale) through structlog's context variables.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from taxonomy import __version__
from taxonomy.config import settings

SERVICE_NAME = "taxonomy-service"

# Loggers that only add noise at the service log level
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "aiosqlite", "asyncpg")


def add_service_info(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderer(use_json: bool) -> list[Processor]:
    if use_json:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def setup_logging() -> None:
    """Configure structlog and route standard library logging to stdout.

    JSON lines unless running in ``dev`` with ``LOG_JSON`` on; SQL statements
    are logged only when ``DEBUG`` is set.
    """
    use_json = settings.log_json and settings.environment != "dev"
    level = logging.getLevelName(settings.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_info,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        *_renderer(use_json),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


def bind_request_context(**context: Any) -> None:
    """Attach ``context`` to every event logged in the current request."""
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Logger for ``name`` (usually ``__name__``) with ``initial_context`` bound."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
