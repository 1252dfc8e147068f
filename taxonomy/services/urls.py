"""SQL-backed URL slug dispatcher."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.infra.logging import get_logger
from taxonomy.models.url import Url

logger = get_logger(__name__)


class UrlSet:
    """Slugs of ``(owner_type, owner_id)``, at most one per collection."""

    def __init__(self, session: AsyncSession, owner_type: str, owner_id: int) -> None:
        self.db = session
        self.owner_type = owner_type
        self.owner_id = owner_id

    def _owned(self):
        return select(Url).where(
            Url.urlable_type == self.owner_type,
            Url.urlable_id == self.owner_id,
        )

    async def dispatch(self, slug: str, collection: str) -> None:
        """Publish the owner under ``slug`` in ``collection``."""
        result = await self.db.execute(self._owned().where(Url.collection == collection))
        url = result.scalar_one_or_none()
        if url is None:
            self.db.add(
                Url(
                    urlable_type=self.owner_type,
                    urlable_id=self.owner_id,
                    slug=slug,
                    collection=collection,
                )
            )
        else:
            url.slug = slug
        await self.db.flush()

        logger.debug("Url dispatched", owner_id=self.owner_id, slug=slug, collection=collection)

    async def get(self, collection: str) -> str | None:
        result = await self.db.execute(
            self._owned().with_only_columns(Url.slug).where(Url.collection == collection)
        )
        return result.scalar_one_or_none()

    async def forget(self) -> None:
        await self.db.execute(
            delete(Url).where(
                Url.urlable_type == self.owner_type,
                Url.urlable_id == self.owner_id,
            )
        )
