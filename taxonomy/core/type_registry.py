"""Taxonomy Type Registry - capability flags for each registered taxonomy type.

Types are declared in YAML, loaded from (first match):
1. settings.taxonomy_types_file
2. config/taxonomy_types.yaml next to the project root
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from taxonomy.config import settings
from taxonomy.core.exceptions import UnknownTaxonomyTypeError
from taxonomy.infra.logging import get_logger

logger = get_logger(__name__)

BASE_MEDIA_COLLECTION = "base"


@dataclass(frozen=True)
class MediaCollection:
    """A named media collection a taxonomy node may attach files to."""

    collection: str
    multiple: bool = False
    sizes: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MediaCollection":
        """Create from dictionary."""
        return cls(
            collection=data["collection"],
            multiple=bool(data.get("multiple", False)),
            sizes=dict(data.get("sizes", {})),
        )


@dataclass(frozen=True)
class MetadataField:
    """A metadata key a taxonomy type accepts."""

    key: str
    label: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataField":
        """Create from dictionary."""
        return cls(key=data["key"], label=data.get("label", data["key"]))


@dataclass(frozen=True)
class TaxonomyType:
    """Configuration of one taxonomy type (e.g. "category", "tag")."""

    name: str
    label: str = ""
    description: str = ""
    hierarchical: bool = False
    has_url: bool = False
    has_base_media: bool = False
    media: tuple[MediaCollection, ...] = field(default_factory=tuple)
    metadata: tuple[MetadataField, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "TaxonomyType":
        """Create from dictionary."""
        data = data or {}
        return cls(
            name=name,
            label=data.get("label", name),
            description=data.get("description", ""),
            hierarchical=bool(data.get("hierarchical", False)),
            has_url=bool(data.get("url", False)),
            has_base_media=bool(data.get("base_media", False)),
            media=tuple(MediaCollection.from_dict(m) for m in data.get("media", [])),
            metadata=tuple(MetadataField.from_dict(m) for m in data.get("metadata", [])),
        )

    def media_allow_collections(self) -> dict[str, MediaCollection]:
        """Collections a node of this type may attach media to."""
        collections: dict[str, MediaCollection] = {}
        if self.has_base_media:
            collections[BASE_MEDIA_COLLECTION] = MediaCollection(BASE_MEDIA_COLLECTION)
        for item in self.media:
            collections[item.collection] = item
        return collections

    def metadata_keys(self) -> list[str]:
        """Metadata keys accepted by this type."""
        return [item.key for item in self.metadata]


class TaxonomyTypeRegistry:
    """Registry of taxonomy types.

    Types are registered by name and looked up by the service facade and the
    query composer before any database access.
    """

    def __init__(self) -> None:
        self._types: dict[str, TaxonomyType] = {}

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "TaxonomyTypeRegistry":
        """Parse YAML content into a registry.

        Args:
            yaml_content: Raw YAML string with a top level ``types`` mapping

        Returns:
            Registry holding every declared type
        """
        data = yaml.safe_load(yaml_content) or {}

        registry = cls()
        for type_name, type_data in (data.get("types") or {}).items():
            registry.register(TaxonomyType.from_dict(type_name, type_data))
        return registry

    def register(self, taxonomy_type: TaxonomyType) -> None:
        """Register (or replace) a taxonomy type."""
        if taxonomy_type.name in self._types:
            logger.warning("Taxonomy type replaced", type=taxonomy_type.name)
        self._types[taxonomy_type.name] = taxonomy_type
        logger.debug(
            "Taxonomy type registered",
            type=taxonomy_type.name,
            hierarchical=taxonomy_type.hierarchical,
        )

    def type(self, name: str) -> TaxonomyType:
        """Get a registered type.

        Raises:
            UnknownTaxonomyTypeError: If the type is not registered
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownTaxonomyTypeError(name) from None

    def has_type(self, name: str) -> bool:
        """Check if a type is registered."""
        return name in self._types

    def get_available(self) -> list[str]:
        """Get list of registered type names."""
        return list(self._types.keys())


def load_type_registry(path: str | None = None) -> TaxonomyTypeRegistry:
    """Load the type registry from the first YAML file found.

    Returns an empty registry (with a warning) when no file exists.
    """
    search_paths = [
        Path(path or settings.taxonomy_types_file),
        Path(__file__).parent.parent.parent / "config" / "taxonomy_types.yaml",
    ]

    for candidate in search_paths:
        if candidate.exists():
            registry = TaxonomyTypeRegistry.from_yaml(candidate.read_text(encoding="utf-8"))
            logger.info(
                "Taxonomy types loaded",
                path=str(candidate),
                types=registry.get_available(),
            )
            return registry

    logger.warning("Taxonomy types file not found", searched=[str(p) for p in search_paths])
    return TaxonomyTypeRegistry()


# Singleton registry
_registry: TaxonomyTypeRegistry | None = None


def get_type_registry() -> TaxonomyTypeRegistry:
    """Get the singleton type registry."""
    global _registry
    if _registry is None:
        _registry = load_type_registry()
    return _registry


def set_type_registry(registry: TaxonomyTypeRegistry | None) -> None:
    """Replace the singleton registry (``None`` forces a reload)."""
    global _registry
    _registry = registry
