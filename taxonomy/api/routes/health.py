"""Health check endpoints.

Provides health status for container probes and monitoring.
Only the readiness probe touches the database.
"""

from fastapi import APIRouter

from taxonomy import __version__
from taxonomy.config import settings
from taxonomy.core.type_registry import get_type_registry
from taxonomy.infra.database import verify_db_connection
from taxonomy.infra.logging import get_logger
from taxonomy.schemas.common import HealthResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Basic health check.

    Returns 200 if service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={},
    )


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready() -> HealthResponse:
    """Readiness check.

    Verifies:
    - Database connectivity
    - At least one taxonomy type registered
    """
    checks: dict[str, bool] = {"database": await verify_db_connection()}

    try:
        checks["taxonomy_types"] = bool(get_type_registry().get_available())
    except Exception as e:
        logger.warning("Taxonomy type registry check failed", error=str(e))
        checks["taxonomy_types"] = False

    all_healthy = all(checks.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={"alive": True},
    )
