"""Validation of taxonomy store/update payloads.

Two stages: the pydantic schema checks shape, then the business rules that
need the type registry or the database. Both report a flat list of error
strings; nothing here raises for invalid input.
"""

from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.config import settings
from taxonomy.core.type_registry import TaxonomyType, TaxonomyTypeRegistry
from taxonomy.models.taxonomy import MORPH_TYPE, Taxonomy
from taxonomy.models.translation import Translation
from taxonomy.models.url import Url
from taxonomy.schemas.taxonomy import StoreTaxonomyRequest, UpdateTaxonomyRequest


def format_validation_error(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into ``"field.path: message"`` strings."""
    errors: list[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        errors.append(f"{location}: {message}" if location else message)
    return errors


def parse_payload(
    schema: type[BaseModel], data: dict[str, Any]
) -> tuple[BaseModel | None, list[str]]:
    """Validate ``data`` against ``schema``, returning ``(model, errors)``."""
    try:
        return schema.model_validate(data), []
    except ValidationError as e:
        return None, format_validation_error(e)


class TaxonomyValidator:
    """Business rules shared by store and update."""

    def __init__(self, session: AsyncSession, registry: TaxonomyTypeRegistry) -> None:
        self.db = session
        self.registry = registry

    async def validate_store(self, request: StoreTaxonomyRequest) -> list[str]:
        if not self.registry.has_type(request.type):
            return [f"type: taxonomy type '{request.type}' is not registered"]

        taxonomy_type = self.registry.type(request.type)
        errors: list[str] = []

        errors += await self._check_parent(taxonomy_type, request.parent_id)

        default_name = request.translation.get(settings.default_locale, {}).get("name")
        if not default_name:
            errors.append(f"translation.{settings.default_locale}.name: field required")

        errors += await self._check_names(taxonomy_type, request.parent_id, request.translation)
        errors += self._check_metadata(taxonomy_type, request.metadata)
        errors += self._check_media(taxonomy_type, request.media)
        errors += await self._check_slug(taxonomy_type, request.slug)
        return errors

    async def validate_update(self, node: Taxonomy, request: UpdateTaxonomyRequest) -> list[str]:
        taxonomy_type = self.registry.type(node.type)
        given = request.model_fields_set
        errors: list[str] = []

        parent_id = node.parent_id
        if "parent_id" in given:
            parent_id = request.parent_id
            if parent_id != node.parent_id:
                errors += await self._check_parent(taxonomy_type, parent_id)

        if "ordering" in given and request.ordering is None:
            errors.append("ordering: must be an integer")
        if "status" in given and request.status is None:
            errors.append("status: must be a boolean")

        if request.translation:
            errors += await self._check_names(taxonomy_type, parent_id, request.translation, node.id)
        if request.metadata:
            errors += self._check_metadata(taxonomy_type, request.metadata)
        if request.media:
            errors += self._check_media(taxonomy_type, request.media)
        if "slug" in given:
            errors += await self._check_slug(taxonomy_type, request.slug, node.id)
        return errors

    async def _check_parent(self, taxonomy_type: TaxonomyType, parent_id: int | None) -> list[str]:
        if parent_id is None:
            return []
        if not taxonomy_type.hierarchical:
            return [f"parent_id: taxonomy type '{taxonomy_type.name}' is not hierarchical"]

        result = await self.db.execute(
            select(Taxonomy.id).where(Taxonomy.id == parent_id, Taxonomy.type == taxonomy_type.name)
        )
        if result.scalar_one_or_none() is None:
            return [f"parent_id: taxonomy {parent_id} does not exist in '{taxonomy_type.name}'"]
        return []

    async def _check_names(
        self,
        taxonomy_type: TaxonomyType,
        parent_id: int | None,
        translation: dict[str, dict[str, str | None]],
        exclude_id: int | None = None,
    ) -> list[str]:
        """Names must be unique among siblings in each locale."""
        errors: list[str] = []
        for locale, fields in translation.items():
            name = fields.get("name")
            if not name:
                continue

            siblings = select(Taxonomy.id).where(Taxonomy.type == taxonomy_type.name)
            if parent_id is None:
                siblings = siblings.where(Taxonomy.parent_id.is_(None))
            else:
                siblings = siblings.where(Taxonomy.parent_id == parent_id)
            if exclude_id is not None:
                siblings = siblings.where(Taxonomy.id != exclude_id)

            result = await self.db.execute(
                select(Translation.id)
                .where(
                    Translation.translatable_type == MORPH_TYPE,
                    Translation.translatable_id.in_(siblings),
                    Translation.locale == locale,
                    Translation.key == "name",
                    Translation.value == name,
                )
                .limit(1)
            )
            if result.scalar_one_or_none() is not None:
                errors.append(f"translation.{locale}.name: '{name}' already exists at this level")
        return errors

    @staticmethod
    def _check_metadata(taxonomy_type: TaxonomyType, metadata: dict[str, Any]) -> list[str]:
        allowed = taxonomy_type.metadata_keys()
        return [
            f"metadata.{key}: not allowed for taxonomy type '{taxonomy_type.name}'"
            for key in metadata
            if key not in allowed
        ]

    @staticmethod
    def _check_media(
        taxonomy_type: TaxonomyType, media: dict[str, int | list[int] | None]
    ) -> list[str]:
        collections = taxonomy_type.media_allow_collections()
        errors: list[str] = []
        for collection, value in media.items():
            if collection not in collections:
                errors.append(
                    f"media.{collection}: collection not allowed for taxonomy type "
                    f"'{taxonomy_type.name}'"
                )
            elif collections[collection].multiple and not isinstance(value, list):
                errors.append(f"media.{collection}: must be a list of media ids")
            elif not collections[collection].multiple and isinstance(value, list):
                errors.append(f"media.{collection}: must be a single media id")
        return errors

    async def _check_slug(
        self, taxonomy_type: TaxonomyType, slug: str | None, exclude_id: int | None = None
    ) -> list[str]:
        if slug is None:
            return []
        if not taxonomy_type.has_url:
            return [f"slug: taxonomy type '{taxonomy_type.name}' has no urls"]

        stmt = select(Url.id).where(Url.collection == taxonomy_type.name, Url.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(
                ~((Url.urlable_type == MORPH_TYPE) & (Url.urlable_id == exclude_id))
            )
        result = await self.db.execute(stmt.limit(1))
        if result.scalar_one_or_none() is not None:
            return [f"slug: '{slug}' is already taken"]
        return []
