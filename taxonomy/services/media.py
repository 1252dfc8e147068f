"""SQL-backed media attachment set."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.infra.logging import get_logger
from taxonomy.models.media_relation import MediaRelation

logger = get_logger(__name__)


class MediaSet:
    """Media attached to ``(owner_type, owner_id)``, grouped by collection."""

    def __init__(self, session: AsyncSession, owner_type: str, owner_id: int) -> None:
        self.db = session
        self.owner_type = owner_type
        self.owner_id = owner_id

    def _owned(self):
        return select(MediaRelation).where(
            MediaRelation.mediable_type == self.owner_type,
            MediaRelation.mediable_id == self.owner_id,
        )

    async def attach(self, media_id: int, collection: str, multiple: bool = False) -> None:
        """Attach ``media_id`` to ``collection``.

        A single collection holds one item, so attaching replaces it. A
        multiple collection keeps every item once.
        """
        result = await self.db.execute(self._owned().where(MediaRelation.collection == collection))
        current = list(result.scalars())
        attached = {item.media_id for item in current}

        if not multiple:
            for item in current:
                if item.media_id != media_id:
                    await self.db.delete(item)

        if media_id not in attached:
            self.db.add(
                MediaRelation(
                    media_id=media_id,
                    mediable_type=self.owner_type,
                    mediable_id=self.owner_id,
                    collection=collection,
                )
            )
        await self.db.flush()

        logger.debug(
            "Media attached",
            owner_id=self.owner_id,
            media_id=media_id,
            collection=collection,
        )

    async def all(self) -> dict[str, list[int]]:
        result = await self.db.execute(
            self._owned().order_by(MediaRelation.collection, MediaRelation.id)
        )
        files: dict[str, list[int]] = {}
        for item in result.scalars():
            files.setdefault(item.collection, []).append(item.media_id)
        return files

    async def forget(self) -> None:
        await self.db.execute(
            delete(MediaRelation).where(
                MediaRelation.mediable_type == self.owner_type,
                MediaRelation.mediable_id == self.owner_id,
            )
        )
