"""Meta model - key/value metadata of any owner."""

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taxonomy.config import settings
from taxonomy.models.base import Base, TimestampMixin


class Meta(Base, TimestampMixin):
    """Metadata value. Non-string values are stored JSON encoded."""

    __tablename__ = settings.meta_table
    __table_args__ = (
        UniqueConstraint(
            "metaable_type",
            "metaable_id",
            "key",
            name=f"uq_{settings.meta_table}_owner_key",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    metaable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    metaable_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_json: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Meta(key='{self.key}', owner={self.metaable_type}:{self.metaable_id})>"
