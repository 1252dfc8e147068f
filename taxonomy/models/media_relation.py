"""MediaRelation model - media item attached to an owner in a named collection."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from taxonomy.config import settings
from taxonomy.models.base import Base


class MediaRelation(Base):
    """Attachment of media ``media_id`` to an owner in ``collection``."""

    __tablename__ = settings.media_relation_table
    __table_args__ = (
        UniqueConstraint(
            "mediable_type",
            "mediable_id",
            "collection",
            "media_id",
            name=f"uq_{settings.media_relation_table}_owner_collection_media",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_id: Mapped[int] = mapped_column(Integer, nullable=False)
    mediable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    mediable_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    collection: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<MediaRelation(media_id={self.media_id}, collection='{self.collection}')>"
