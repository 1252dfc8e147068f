"""TaxonomyPath model - closure table of ancestor paths."""

from sqlalchemy import ForeignKey, Index, Integer, PrimaryKeyConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taxonomy.config import settings
from taxonomy.models.base import Base


class TaxonomyPath(Base):
    """One (descendant, ancestor, level) triple.

    For a node N the rows with ``taxonomy_id = N`` ordered by ``level`` are
    exactly its ancestor chain from the root (level 0) down to N itself.
    """

    __tablename__ = settings.taxonomy_path_table
    __table_args__ = (
        PrimaryKeyConstraint("type", "taxonomy_id", "path_id", "level"),
        UniqueConstraint(
            "type",
            "taxonomy_id",
            "path_id",
            name=f"uq_{settings.taxonomy_path_table}_type_taxonomy_path",
        ),
        Index(f"ix_{settings.taxonomy_path_table}_type_path", "type", "path_id"),
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    taxonomy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{settings.taxonomy_table}.id", ondelete="CASCADE"),
        nullable=False,
    )
    path_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{settings.taxonomy_table}.id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TaxonomyPath(taxonomy_id={self.taxonomy_id}, "
            f"path_id={self.path_id}, level={self.level})>"
        )
