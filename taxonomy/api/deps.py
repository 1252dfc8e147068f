"""FastAPI dependencies for dependency injection.

Provides:
- Database session with RLS context
- Request locale
- Taxonomy service bound to the request session
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.config import settings
from taxonomy.core.locale import set_locale
from taxonomy.infra.database import get_db_session
from taxonomy.infra.logging import bind_request_context, get_logger
from taxonomy.services.taxonomy_service import TaxonomyService

logger = get_logger(__name__)


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    """Extract tenant ID from request header.

    Args:
        x_tenant_id: Tenant ID header

    Returns:
        Tenant ID string, empty when the request carries none
    """
    if not x_tenant_id:
        logger.debug("No X-Tenant-Id header, RLS context not set")
        return ""
    return x_tenant_id


async def get_db(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session with RLS tenant context.

    Args:
        tenant_id: Tenant ID for RLS isolation

    Yields:
        AsyncSession with tenant context
    """
    async with get_db_session(tenant_id=tenant_id if tenant_id else None) as session:
        yield session


def parse_accept_language(header: str | None) -> str | None:
    """First language tag of an ``Accept-Language`` header, without region.

    ``"fa-IR,fa;q=0.9,en;q=0.8"`` -> ``"fa"``
    """
    if not header:
        return None
    tag = header.split(",")[0].split(";")[0].strip()
    if not tag or tag == "*":
        return None
    return tag.split("-")[0].lower()


async def get_request_locale(
    locale: Annotated[str | None, Query(description="Response locale")] = None,
    accept_language: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve and activate the locale of the request.

    The ``locale`` query parameter wins over ``Accept-Language``.
    """
    resolved = locale or parse_accept_language(accept_language) or settings.default_locale
    set_locale(resolved)
    bind_request_context(locale=resolved)
    return resolved


async def get_taxonomy_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    _locale: Annotated[str, Depends(get_request_locale)],
) -> TaxonomyService:
    """Get a taxonomy service bound to the request session."""
    return TaxonomyService(db)


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
RequestLocale = Annotated[str, Depends(get_request_locale)]
Taxonomies = Annotated[TaxonomyService, Depends(get_taxonomy_service)]
