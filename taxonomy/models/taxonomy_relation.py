"""TaxonomyRelation model - records that some entity uses a taxonomy node."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from taxonomy.config import settings
from taxonomy.models.base import Base


class TaxonomyRelation(Base):
    """Link between a taxonomy node and the entity tagged with it.

    Written by the owning applications. A node with at least one relation
    cannot be deleted.
    """

    __tablename__ = settings.taxonomy_relation_table

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    taxonomy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{settings.taxonomy_table}.id"),
        nullable=False,
        index=True,
    )
    taxonomizable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    taxonomizable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    collection: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<TaxonomyRelation(taxonomy_id={self.taxonomy_id}, "
            f"taxonomizable='{self.taxonomizable_type}:{self.taxonomizable_id}')>"
        )
