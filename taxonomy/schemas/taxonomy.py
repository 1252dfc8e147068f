"""Taxonomy command and view schemas."""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

Translations = dict[str, dict[str, str | None]]
MediaInput = dict[str, int | list[int] | None]


def _check_translation(value: Translations) -> Translations:
    for locale, fields in value.items():
        if not locale or not locale.strip():
            raise ValueError("translation locale must not be empty")
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValueError(f"translation.{locale}.name must not be empty")
    return value


def _check_slug(value: str | None) -> str | None:
    if value is not None and not SLUG_PATTERN.match(value):
        raise ValueError("slug must be lowercase words separated by hyphens")
    return value


class StoreTaxonomyRequest(BaseModel):
    """Payload creating a taxonomy node."""

    type: str = Field(min_length=1, max_length=50, description="Registered taxonomy type")
    parent_id: int | None = Field(default=None, description="Parent node (hierarchical types)")
    ordering: int = Field(default=0, description="Sibling display order")
    status: bool = Field(default=True, description="Active flag")
    translation: Translations = Field(
        default_factory=dict,
        description="Per-locale texts, e.g. {'en': {'name': 'Phones'}}",
    )
    slug: str | None = Field(default=None, max_length=255, description="URL slug")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Metadata key/values")
    media: MediaInput = Field(
        default_factory=dict,
        description="Media ids per collection (a list for multiple collections)",
    )

    model_config = {"extra": "forbid"}

    @field_validator("translation")
    @classmethod
    def validate_translation(cls, v: Translations) -> Translations:
        """Validate locales and names."""
        return _check_translation(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        """Validate slug format."""
        return _check_slug(v)


class UpdateTaxonomyRequest(BaseModel):
    """Payload updating a taxonomy node. Only the given fields change."""

    parent_id: int | None = None
    ordering: int | None = None
    status: bool | None = None
    translation: Translations | None = None
    slug: str | None = Field(default=None, max_length=255)
    metadata: dict[str, Any] | None = None
    media: MediaInput | None = None

    model_config = {"extra": "forbid"}

    @field_validator("translation")
    @classmethod
    def validate_translation(cls, v: Translations | None) -> Translations | None:
        """Validate locales and names."""
        return v if v is None else _check_translation(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        """Validate slug format."""
        return _check_slug(v)


class SetTranslationRequest(BaseModel):
    """Bulk per-locale translation upsert on an existing node."""

    translatable_id: int = Field(description="Taxonomy node id")
    translation: Translations = Field(min_length=1)

    model_config = {"extra": "forbid"}

    @field_validator("translation")
    @classmethod
    def validate_translation(cls, v: Translations) -> Translations:
        """Validate locales and names."""
        return _check_translation(v)


class ListParams(BaseModel):
    """Request-driven listing options (filters, sorting, metadata filters)."""

    search: dict[str, Any] = Field(
        default_factory=dict,
        description="Request filters: partial match on name, equality elsewhere",
    )
    sort: list[str] = Field(
        default_factory=list,
        description="Sort fields, '-' prefix for descending",
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Metadata equality filters")

    model_config = {"extra": "forbid"}


class PathView(BaseModel):
    """One closure table row of a node."""

    model_config = ConfigDict(from_attributes=True)

    path_id: int
    level: int


class RelationView(BaseModel):
    """An entity using a taxonomy node."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    taxonomy_id: int
    taxonomizable_type: str
    taxonomizable_id: int
    collection: str | None = None
    created_at: datetime | None = None


class TaxonomyView(BaseModel):
    """Listing / response representation of a taxonomy node."""

    id: int
    type: str
    hierarchical: bool
    name: str | None = None
    name_multiple: str | None = None
    parent_id: int | None = None
    ordering: int
    status: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    translations: Translations = Field(default_factory=dict)

    # Present only when eagerly requested
    taxonomy_relations: list[RelationView] | None = None
    metas: dict[str, Any] | None = None
    paths: list[PathView] | None = None
    children_count: int | None = None
    files: dict[str, list[int]] | None = None


class BulkDeleteRequest(BaseModel):
    """Ids of the nodes to delete."""

    ids: list[int] = Field(min_length=1)

    model_config = {"extra": "forbid"}


class ChangeStatusRequest(BaseModel):
    """Set the active flag of several nodes."""

    ids: list[int] = Field(min_length=1)
    status: bool

    model_config = {"extra": "forbid"}
