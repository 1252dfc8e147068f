"""Url model - URL slug of an owner within a collection."""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taxonomy.config import settings
from taxonomy.models.base import Base, TimestampMixin


class Url(Base, TimestampMixin):
    """Slug under which an owner is published. Unique per collection."""

    __tablename__ = settings.url_table
    __table_args__ = (
        UniqueConstraint("collection", "slug", name=f"uq_{settings.url_table}_collection_slug"),
        UniqueConstraint(
            "urlable_type",
            "urlable_id",
            "collection",
            name=f"uq_{settings.url_table}_owner_collection",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    urlable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    urlable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    collection: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<Url(slug='{self.slug}', collection='{self.collection}')>"
