"""Core module - type registry, domain events, locale and errors."""

from taxonomy.core.events import (
    EventDispatcher,
    TaxonomyDeleteEvent,
    TaxonomyEvent,
    TaxonomyStoreEvent,
    TaxonomyUpdateEvent,
    get_event_dispatcher,
)
from taxonomy.core.exceptions import (
    CannotMakeParentSubsetOwnChildError,
    InvalidQueryFieldError,
    PathIntegrityError,
    TaxonomyError,
    TaxonomyNotFoundError,
    TaxonomyUsedError,
    UnknownTaxonomyTypeError,
)
from taxonomy.core.type_registry import TaxonomyType, TaxonomyTypeRegistry, get_type_registry

__all__ = [
    "EventDispatcher",
    "TaxonomyEvent",
    "TaxonomyStoreEvent",
    "TaxonomyUpdateEvent",
    "TaxonomyDeleteEvent",
    "get_event_dispatcher",
    "TaxonomyError",
    "TaxonomyNotFoundError",
    "CannotMakeParentSubsetOwnChildError",
    "TaxonomyUsedError",
    "UnknownTaxonomyTypeError",
    "InvalidQueryFieldError",
    "PathIntegrityError",
    "TaxonomyType",
    "TaxonomyTypeRegistry",
    "get_type_registry",
]
