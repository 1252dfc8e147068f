"""Translation model - per-locale key/value text of any owner."""

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taxonomy.config import settings
from taxonomy.models.base import Base, TimestampMixin


class Translation(Base, TimestampMixin):
    """Translated value of ``key`` in ``locale`` for one owner row."""

    __tablename__ = settings.translation_table
    __table_args__ = (
        UniqueConstraint(
            "translatable_type",
            "translatable_id",
            "locale",
            "key",
            name=f"uq_{settings.translation_table}_owner_locale_key",
        ),
        Index(
            f"ix_{settings.translation_table}_lookup",
            "translatable_type",
            "locale",
            "key",
            "translatable_id",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    translatable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    translatable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    locale: Mapped[str] = mapped_column(String(10), nullable=False)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Translation(locale='{self.locale}', key='{self.key}')>"
