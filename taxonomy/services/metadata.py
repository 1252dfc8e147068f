"""SQL-backed metadata set and the metadata listing filter."""

import json
from typing import Any

from sqlalchemy import ColumnElement, Select, delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.infra.logging import get_logger
from taxonomy.models.meta import Meta

logger = get_logger(__name__)


def encode_meta_value(value: Any) -> tuple[str | None, bool]:
    """Encode a metadata value for storage, returning ``(text, is_json)``."""
    if value is None or isinstance(value, str):
        return value, False
    return json.dumps(value, ensure_ascii=False, sort_keys=True), True


def decode_meta_value(value: str | None, is_json: bool) -> Any:
    """Inverse of :func:`encode_meta_value`."""
    if is_json and value is not None:
        return json.loads(value)
    return value


class MetaSet:
    """Metadata of ``(owner_type, owner_id)``. One row per key."""

    def __init__(self, session: AsyncSession, owner_type: str, owner_id: int) -> None:
        self.db = session
        self.owner_type = owner_type
        self.owner_id = owner_id

    def _owned(self):
        return select(Meta).where(
            Meta.metaable_type == self.owner_type,
            Meta.metaable_id == self.owner_id,
        )

    async def store(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, overwriting any previous value."""
        text, is_json = encode_meta_value(value)

        result = await self.db.execute(self._owned().where(Meta.key == key))
        meta = result.scalar_one_or_none()
        if meta is None:
            self.db.add(
                Meta(
                    metaable_type=self.owner_type,
                    metaable_id=self.owner_id,
                    key=key,
                    value=text,
                    is_json=is_json,
                )
            )
        else:
            meta.value = text
            meta.is_json = is_json
        await self.db.flush()

        logger.debug(
            "Metadata stored",
            owner_type=self.owner_type,
            owner_id=self.owner_id,
            key=key,
        )

    async def get(self, key: str, default: Any = None) -> Any:
        result = await self.db.execute(self._owned().where(Meta.key == key))
        meta = result.scalar_one_or_none()
        if meta is None:
            return default
        return decode_meta_value(meta.value, meta.is_json)

    async def all(self) -> dict[str, Any]:
        result = await self.db.execute(self._owned().order_by(Meta.key))
        return {meta.key: decode_meta_value(meta.value, meta.is_json) for meta in result.scalars()}

    async def forget(self) -> None:
        await self.db.execute(
            delete(Meta).where(
                Meta.metaable_type == self.owner_type,
                Meta.metaable_id == self.owner_id,
            )
        )


class MetadataFilter:
    """Restricts a listing to owners whose metadata match every ``key=value``."""

    def apply(
        self,
        stmt: Select,
        owner_type: str,
        id_column: ColumnElement[int],
        filters: dict[str, Any],
    ) -> Select:
        for key, value in filters.items():
            text, _ = encode_meta_value(value)
            stmt = stmt.where(
                exists().where(
                    Meta.metaable_type == owner_type,
                    Meta.metaable_id == id_column,
                    Meta.key == key,
                    Meta.value == text,
                )
            )
        return stmt
