"""API routes module."""

from taxonomy.api.routes.health import router as health_router
from taxonomy.api.routes.taxonomies import router as taxonomies_router

__all__ = ["health_router", "taxonomies_router"]
