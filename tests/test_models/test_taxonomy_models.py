"""Tests for the taxonomy, closure table and capability models."""

import pytest

from taxonomy.models import (
    MediaRelation,
    Meta,
    Taxonomy,
    TaxonomyPath,
    TaxonomyRelation,
    Translation,
    Url,
)


def columns(model) -> set[str]:
    return {c.name for c in model.__table__.columns}


def unique_constraints(model) -> list[tuple[str, ...]]:
    return [
        tuple(c.name for c in constraint.columns)
        for constraint in model.__table__.constraints
        if constraint.__class__.__name__ == "UniqueConstraint"
    ]


@pytest.mark.parametrize(
    ("model", "table"),
    [
        (Taxonomy, "taxonomies"),
        (TaxonomyPath, "taxonomy_paths"),
        (TaxonomyRelation, "taxonomy_relations"),
        (Translation, "translations"),
        (Meta, "metas"),
        (MediaRelation, "media_relations"),
        (Url, "urls"),
    ],
)
def test_tablenames(model, table):
    assert model.__tablename__ == table


def test_taxonomy_columns():
    """Taxonomy should have type, parent_id, ordering and status columns."""
    assert {"id", "type", "parent_id", "ordering", "status"} <= columns(Taxonomy)
    assert Taxonomy.__table__.columns["parent_id"].nullable is True


def test_taxonomy_path_primary_key():
    """The closure table key spans type, node, ancestor and level."""
    primary_key = [c.name for c in TaxonomyPath.__table__.primary_key.columns]
    assert primary_key == ["type", "taxonomy_id", "path_id", "level"]


def test_taxonomy_path_unique_ancestor():
    """A node lists each ancestor once."""
    assert ("type", "taxonomy_id", "path_id") in unique_constraints(TaxonomyPath)


def test_taxonomy_path_cascades_with_nodes():
    foreign_keys = TaxonomyPath.__table__.foreign_keys
    assert {fk.column.table.name for fk in foreign_keys} == {"taxonomies"}
    assert {fk.ondelete for fk in foreign_keys} == {"CASCADE"}


def test_relation_columns():
    """TaxonomyRelation links a node to a (type, id) entity."""
    assert {"taxonomy_id", "taxonomizable_type", "taxonomizable_id", "collection"} <= columns(
        TaxonomyRelation
    )


def test_capability_tables_are_keyed_by_owner():
    assert ("translatable_type", "translatable_id", "locale", "key") in unique_constraints(
        Translation
    )
    assert ("metaable_type", "metaable_id", "key") in unique_constraints(Meta)
    assert ("collection", "slug") in unique_constraints(Url)


def test_repr():
    node = Taxonomy(id=3, type="category", parent_id=1)
    path = TaxonomyPath(taxonomy_id=3, path_id=1, level=0)

    assert repr(node) == "<Taxonomy(id=3, type='category', parent_id=1)>"
    assert repr(path) == "<TaxonomyPath(taxonomy_id=3, path_id=1, level=0)>"
