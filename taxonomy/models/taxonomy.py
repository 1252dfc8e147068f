"""Taxonomy model - one node of a category/tag taxonomy."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taxonomy.config import settings
from taxonomy.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from taxonomy.models.taxonomy_path import TaxonomyPath
    from taxonomy.models.taxonomy_relation import TaxonomyRelation

# Owner type stored on translations, metas, media and urls of a taxonomy node
MORPH_TYPE = "taxonomy"


class Taxonomy(Base, TimestampMixin):
    """Taxonomy node.

    Nodes of every type share one flat table; ``parent_id`` points at a node of
    the same type and ancestor lookups go through the closure table instead of
    walking the parent chain.
    """

    __tablename__ = settings.taxonomy_table
    __table_args__ = (
        Index(f"ix_{settings.taxonomy_table}_type_parent", "type", "parent_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey(f"{settings.taxonomy_table}.id"),
        nullable=True,
    )
    ordering: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships (loaded explicitly, never implicitly walked)
    paths: Mapped[list["TaxonomyPath"]] = relationship(
        "TaxonomyPath",
        foreign_keys="TaxonomyPath.taxonomy_id",
        order_by="TaxonomyPath.level",
        viewonly=True,
        lazy="raise",
    )
    children: Mapped[list["Taxonomy"]] = relationship(
        "Taxonomy",
        viewonly=True,
        lazy="raise",
    )
    taxonomy_relations: Mapped[list["TaxonomyRelation"]] = relationship(
        "TaxonomyRelation",
        viewonly=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Taxonomy(id={self.id}, type='{self.type}', parent_id={self.parent_id})>"
