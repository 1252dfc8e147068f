"""SQL-backed translation set of one owner row."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.infra.logging import get_logger
from taxonomy.models.translation import Translation

logger = get_logger(__name__)


class TranslationSet:
    """Translations of ``(owner_type, owner_id)`` stored in the translation table."""

    def __init__(self, session: AsyncSession, owner_type: str, owner_id: int) -> None:
        self.db = session
        self.owner_type = owner_type
        self.owner_id = owner_id

    def _owned(self):
        return select(Translation).where(
            Translation.translatable_type == self.owner_type,
            Translation.translatable_id == self.owner_id,
        )

    async def translate(self, locale: str, values: dict[str, str | None]) -> None:
        """Upsert ``values`` (key -> text) for ``locale``."""
        if not values:
            return

        result = await self.db.execute(
            self._owned().where(
                Translation.locale == locale,
                Translation.key.in_(list(values)),
            )
        )
        existing = {row.key: row for row in result.scalars()}

        for key, value in values.items():
            if key in existing:
                existing[key].value = value
            else:
                self.db.add(
                    Translation(
                        translatable_type=self.owner_type,
                        translatable_id=self.owner_id,
                        locale=locale,
                        key=key,
                        value=value,
                    )
                )
        await self.db.flush()

        logger.debug(
            "Translations stored",
            owner_type=self.owner_type,
            owner_id=self.owner_id,
            locale=locale,
            keys=list(values),
        )

    async def get(self, locale: str, key: str) -> str | None:
        result = await self.db.execute(
            self._owned()
            .with_only_columns(Translation.value)
            .where(Translation.locale == locale, Translation.key == key)
        )
        return result.scalar_one_or_none()

    async def all(self) -> dict[str, dict[str, str | None]]:
        """All translations as ``{locale: {key: value}}``."""
        result = await self.db.execute(self._owned().order_by(Translation.locale, Translation.key))
        translations: dict[str, dict[str, str | None]] = {}
        for row in result.scalars():
            translations.setdefault(row.locale, {})[row.key] = row.value
        return translations

    async def forget(self) -> None:
        """Delete every translation of the owner."""
        await self.db.execute(
            delete(Translation).where(
                Translation.translatable_type == self.owner_type,
                Translation.translatable_id == self.owner_id,
            )
        )
