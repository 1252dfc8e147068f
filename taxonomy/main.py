"""FastAPI application entry point.

Taxonomy service: translated, hierarchical categories of any registered
type, kept queryable through a closure table.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taxonomy import __version__
from taxonomy.config import settings
from taxonomy.core.exceptions import TaxonomyError
from taxonomy.core.type_registry import get_type_registry, load_type_registry, set_type_registry
from taxonomy.infra.database import close_db_engine, verify_db_connection
from taxonomy.infra.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from taxonomy.schemas.common import ErrorResponse

# Import routers
from taxonomy.api.routes.health import router as health_router
from taxonomy.api.routes.taxonomies import router as taxonomies_router

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Load the taxonomy type registry
    - Verify database connection

    Shutdown:
    - Close database connections
    - Drop the loaded type registry
    """
    logger.info("Taxonomy service starting", environment=settings.environment)

    registry = load_type_registry()
    set_type_registry(registry)
    logger.info("Taxonomy types loaded", types=registry.get_available())

    db_ok = await verify_db_connection()
    if not db_ok:
        logger.warning("Database connection failed - will retry on first request")

    yield

    logger.info("Taxonomy service shutting down")
    await close_db_engine()
    set_type_registry(None)
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Taxonomy Service",
    description="Hierarchical, translated taxonomies backed by a closure table",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (mainly for local development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind request context for every log event, then log the outcome."""
    clear_request_context()
    bind_request_context(
        method=request.method,
        path=request.url.path,
        tenant_id=request.headers.get("X-Tenant-Id", ""),
    )
    response = await call_next(request)

    logger.debug("Request handled", status_code=response.status_code)
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(TaxonomyError)
async def taxonomy_exception_handler(request: Request, exc: TaxonomyError) -> JSONResponse:
    """Map taxonomy errors to their status code."""
    logger.info(
        "Taxonomy error",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=exc.message, error_type=type(exc).__name__).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            message="Internal server error", error_type=type(exc).__name__
        ).model_dump(),
    )


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(taxonomies_router, prefix="/taxonomies", tags=["Taxonomies"])


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "Taxonomy Service",
        "version": __version__,
        "environment": settings.environment,
        "taxonomy_types": get_type_registry().get_available(),
    }
