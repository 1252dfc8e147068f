"""Business logic services."""

from taxonomy.services.entity_store import TaxonomyEntity, TaxonomyStore
from taxonomy.services.path_index import PathIndex
from taxonomy.services.query import QueryHandle, TaxonomyQueryComposer
from taxonomy.services.taxonomy_service import TaxonomyService

__all__ = [
    "TaxonomyEntity",
    "TaxonomyStore",
    "PathIndex",
    "QueryHandle",
    "TaxonomyQueryComposer",
    "TaxonomyService",
]
