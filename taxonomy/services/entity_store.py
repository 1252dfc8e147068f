"""Entity Store - persistence of taxonomy nodes and their owned capabilities."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.core.contracts import MediaContract, MetaContract, TranslationContract, UrlContract
from taxonomy.core.exceptions import TaxonomyNotFoundError
from taxonomy.infra.logging import get_logger
from taxonomy.models.taxonomy import MORPH_TYPE, Taxonomy
from taxonomy.models.taxonomy_relation import TaxonomyRelation
from taxonomy.services.media import MediaSet
from taxonomy.services.metadata import MetaSet
from taxonomy.services.translations import TranslationSet
from taxonomy.services.urls import UrlSet

logger = get_logger(__name__)

CapabilityFactory = Callable[[AsyncSession, str, int], Any]


@dataclass
class TaxonomyEntity:
    """A taxonomy node composed with its capability sets."""

    node: Taxonomy
    translations: TranslationContract
    metas: MetaContract
    media: MediaContract
    url: UrlContract

    @property
    def id(self) -> int:
        return self.node.id

    async def forget_owned(self) -> None:
        """Discard every owned resource, translations first."""
        await self.translations.forget()
        await self.metas.forget()
        await self.media.forget()
        await self.url.forget()


class TaxonomyStore:
    """Create, find, update and delete taxonomy nodes.

    Capability implementations default to the SQL-backed sets and can be
    swapped per store for other translation/metadata/media/url backends.
    """

    def __init__(
        self,
        session: AsyncSession,
        translation_factory: CapabilityFactory = TranslationSet,
        meta_factory: CapabilityFactory = MetaSet,
        media_factory: CapabilityFactory = MediaSet,
        url_factory: CapabilityFactory = UrlSet,
    ) -> None:
        self.db = session
        self._translation_factory = translation_factory
        self._meta_factory = meta_factory
        self._media_factory = media_factory
        self._url_factory = url_factory

    def bind(self, node: Taxonomy) -> TaxonomyEntity:
        """Compose ``node`` with its capability sets."""
        return TaxonomyEntity(
            node=node,
            translations=self._translation_factory(self.db, MORPH_TYPE, node.id),
            metas=self._meta_factory(self.db, MORPH_TYPE, node.id),
            media=self._media_factory(self.db, MORPH_TYPE, node.id),
            url=self._url_factory(self.db, MORPH_TYPE, node.id),
        )

    async def create(
        self,
        type: str,
        parent_id: int | None = None,
        ordering: int = 0,
        status: bool = True,
    ) -> Taxonomy:
        """Insert a node and return it with its id and timestamps populated."""
        node = Taxonomy(type=type, parent_id=parent_id, ordering=ordering, status=status)
        self.db.add(node)
        await self.db.flush()
        await self.db.refresh(node)

        logger.debug("Taxonomy node created", taxonomy_id=node.id, type=type, parent_id=parent_id)
        return node

    async def find(self, taxonomy_id: int, type: str | None = None) -> Taxonomy:
        """Load a node by id.

        Args:
            taxonomy_id: Node id
            type: When given, the node must also be of this type

        Raises:
            TaxonomyNotFoundError: If no such node exists
        """
        node = await self.db.get(Taxonomy, taxonomy_id)
        if node is None or (type is not None and node.type != type):
            raise TaxonomyNotFoundError(taxonomy_id)
        return node

    async def exists(self, taxonomy_id: int, type: str | None = None) -> bool:
        stmt = select(Taxonomy.id).where(Taxonomy.id == taxonomy_id)
        if type is not None:
            stmt = stmt.where(Taxonomy.type == type)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update_fields(self, node: Taxonomy, **fields: Any) -> Taxonomy:
        """Assign column values on ``node`` and flush them."""
        for name, value in fields.items():
            setattr(node, name, value)
        await self.db.flush()
        await self.db.refresh(node)
        return node

    async def delete_many(self, taxonomy_ids: Iterable[int]) -> int:
        """Delete node rows by id, returning the number removed."""
        ids = list(taxonomy_ids)
        if not ids:
            return 0
        result = await self.db.execute(delete(Taxonomy).where(Taxonomy.id.in_(ids)))
        logger.debug("Taxonomy nodes deleted", taxonomy_ids=ids)
        return result.rowcount

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    async def has_used(self, taxonomy_id: int) -> bool:
        result = await self.db.execute(
            select(TaxonomyRelation.id).where(TaxonomyRelation.taxonomy_id == taxonomy_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def used_ids(self, taxonomy_ids: Iterable[int]) -> set[int]:
        """Subset of ``taxonomy_ids`` referenced by at least one relation."""
        ids = list(taxonomy_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(TaxonomyRelation.taxonomy_id)
            .where(TaxonomyRelation.taxonomy_id.in_(ids))
            .distinct()
        )
        return set(result.scalars())

    async def relations(self, taxonomy_id: int) -> list[TaxonomyRelation]:
        result = await self.db.execute(
            select(TaxonomyRelation)
            .where(TaxonomyRelation.taxonomy_id == taxonomy_id)
            .order_by(TaxonomyRelation.id)
        )
        return list(result.scalars())
