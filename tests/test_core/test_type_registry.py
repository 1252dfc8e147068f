"""Tests for the taxonomy type registry."""

import pytest

from taxonomy.core.exceptions import UnknownTaxonomyTypeError
from taxonomy.core.type_registry import (
    BASE_MEDIA_COLLECTION,
    MediaCollection,
    TaxonomyType,
    TaxonomyTypeRegistry,
    load_type_registry,
)


class TestTaxonomyType:
    """Tests for TaxonomyType parsing."""

    def test_from_dict_reads_capability_flags(self):
        taxonomy_type = TaxonomyType.from_dict(
            "category",
            {
                "hierarchical": True,
                "url": True,
                "base_media": True,
                "media": [{"collection": "gallery", "multiple": True}],
                "metadata": [{"key": "color", "label": "Color"}],
            },
        )

        assert taxonomy_type.hierarchical is True
        assert taxonomy_type.has_url is True
        assert taxonomy_type.has_base_media is True
        assert taxonomy_type.metadata_keys() == ["color"]

    def test_defaults_to_flat_type(self):
        taxonomy_type = TaxonomyType.from_dict("tag", None)

        assert taxonomy_type.hierarchical is False
        assert taxonomy_type.has_url is False
        assert taxonomy_type.label == "tag"
        assert taxonomy_type.media_allow_collections() == {}

    def test_base_media_adds_single_base_collection(self):
        taxonomy_type = TaxonomyType.from_dict(
            "category",
            {"base_media": True, "media": [{"collection": "gallery", "multiple": True}]},
        )

        collections = taxonomy_type.media_allow_collections()
        assert collections[BASE_MEDIA_COLLECTION].multiple is False
        assert collections["gallery"].multiple is True

    def test_type_is_immutable(self):
        taxonomy_type = TaxonomyType(name="tag")

        with pytest.raises(AttributeError):
            taxonomy_type.hierarchical = True  # type: ignore[misc]

    def test_media_collection_sizes(self):
        collection = MediaCollection.from_dict(
            {"collection": "gallery", "sizes": {"thumb": {"w": 10, "h": 20}}}
        )

        assert collection.multiple is False
        assert collection.sizes == {"thumb": {"w": 10, "h": 20}}


class TestTaxonomyTypeRegistry:
    """Tests for TaxonomyTypeRegistry."""

    def test_from_yaml(self, registry: TaxonomyTypeRegistry):
        assert registry.get_available() == ["category", "tag"]
        assert registry.type("category").hierarchical is True
        assert registry.type("tag").hierarchical is False

    def test_unknown_type_raises(self, registry: TaxonomyTypeRegistry):
        assert registry.has_type("brand") is False

        with pytest.raises(UnknownTaxonomyTypeError) as exc_info:
            registry.type("brand")

        assert exc_info.value.status_code == 400
        assert "brand" in exc_info.value.message

    def test_register_replaces_type(self):
        registry = TaxonomyTypeRegistry()
        registry.register(TaxonomyType(name="tag"))
        registry.register(TaxonomyType(name="tag", hierarchical=True))

        assert registry.get_available() == ["tag"]
        assert registry.type("tag").hierarchical is True

    def test_empty_yaml(self):
        assert TaxonomyTypeRegistry.from_yaml("").get_available() == []

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "types.yaml"
        path.write_text("types:\n  brand:\n    hierarchical: false\n", encoding="utf-8")

        registry = load_type_registry(str(path))

        assert registry.has_type("brand")

    def test_load_project_file(self, tmp_path):
        # Falls back to config/taxonomy_types.yaml of the project
        registry = load_type_registry(str(tmp_path / "missing.yaml"))

        assert registry.has_type("product_category")
        assert registry.type("product_category").has_base_media is True
