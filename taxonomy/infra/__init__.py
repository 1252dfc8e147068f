"""Infrastructure - Database, logging."""

from taxonomy.infra.database import atomic, close_db_engine, get_db_session, DatabaseSession
from taxonomy.infra.logging import bind_request_context, get_logger, setup_logging

__all__ = [
    "atomic",
    "get_db_session",
    "DatabaseSession",
    "close_db_engine",
    "setup_logging",
    "get_logger",
    "bind_request_context",
]
