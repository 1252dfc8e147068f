"""Async database configuration with Row Level Security (RLS) support.

Provides:
- Async SQLAlchemy engine and session factory
- RLS tenant context setter for multi-tenant isolation
- The ``atomic`` unit-of-work helper used by every mutating service call
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taxonomy.config import settings
from taxonomy.infra.logging import get_logger

logger = get_logger(__name__)

# Type alias for dependency injection
DatabaseSession = AsyncSession

# Global engine (initialized on app startup)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine

    if _engine is None:
        url = settings.database_url
        options: dict[str, Any] = {"echo": settings.debug}

        # SQLite (local runs) has no connection pool to size
        if not url.startswith("sqlite"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_pool_max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
            )

        logger.info(
            "Creating database engine",
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_pool_max_overflow,
        )
        _engine = create_async_engine(url, **options)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


@asynccontextmanager
async def get_db_session(tenant_id: str | None = None) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session with optional RLS tenant context.

    Args:
        tenant_id: Tenant ID for RLS isolation. If provided, sets the
                  `app.current_tenant` session variable for RLS policies.

    Yields:
        AsyncSession with tenant context set

    Example:
        async with get_db_session(tenant_id="tenant-123") as session:
            service = TaxonomyService(session)
            page = await service.paginate("category")

    Note:
        Service calls commit their own units of work through ``atomic``;
        the final commit here only flushes whatever a caller left pending.
    """
    factory = get_session_factory()
    session = factory()

    # Row level security is a PostgreSQL feature; other dialects run unscoped
    if tenant_id and get_engine().dialect.name == "postgresql":
        # Transaction-local setting, re-applied to every unit of work on the session
        @event.listens_for(session.sync_session, "after_begin")
        def set_tenant_context(sync_session, transaction, connection) -> None:
            connection.execute(
                text("SELECT set_config('app.current_tenant', :tenant_id, true)"),
                {"tenant_id": tenant_id},
            )

        logger.debug("RLS tenant context set", tenant_id=tenant_id)

    try:
        yield session
        await session.commit()

    except Exception as e:
        await session.rollback()
        logger.error("Database session error", error=str(e), tenant_id=tenant_id)
        raise

    finally:
        await session.close()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Run a block as one transaction on ``session``.

    Commits when the block completes and rolls back on any exception,
    which is re-raised unchanged.

    Example:
        async with atomic(session):
            session.add(node)
            await path_index.build_path_on_create(node)
    """
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.info(
            "Transaction rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all tables registered on the declarative metadata."""
    from taxonomy.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created", tables=sorted(Base.metadata.tables))


async def close_db_engine() -> None:
    """Close the database engine and all connections.

    Call this during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.info("Closing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def verify_db_connection() -> bool:
    """Verify database connectivity.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        return False
