"""Pydantic schemas for request/response validation."""

from taxonomy.schemas.common import ErrorResponse, HealthResponse, Page, ServiceResponse
from taxonomy.schemas.taxonomy import (
    ListParams,
    PathView,
    RelationView,
    SetTranslationRequest,
    StoreTaxonomyRequest,
    TaxonomyView,
    UpdateTaxonomyRequest,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "Page",
    "ServiceResponse",
    "ListParams",
    "PathView",
    "RelationView",
    "SetTranslationRequest",
    "StoreTaxonomyRequest",
    "TaxonomyView",
    "UpdateTaxonomyRequest",
]
