"""Path Index - closure table maintenance for hierarchical taxonomy types.

For every node N of a hierarchical type the index holds one row per ancestor
of N plus N itself::

    (type, taxonomy_id=N, path_id=ancestor, level=depth of ancestor)

so ancestors are one indexed lookup and descendants are every row whose
``path_id`` is the node. The rows are written when a node is created,
recombined for the whole subtree when a node moves, and removed with the
subtree on delete. All methods run inside the caller's transaction.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.core.exceptions import CannotMakeParentSubsetOwnChildError, PathIntegrityError
from taxonomy.infra.logging import get_logger
from taxonomy.models.taxonomy import Taxonomy
from taxonomy.models.taxonomy_path import TaxonomyPath

logger = get_logger(__name__)


class PathIndex:
    """Reads and maintains the taxonomy closure table."""

    def __init__(self, session: AsyncSession) -> None:
        self.db = session

    async def ancestors(self, type: str, taxonomy_id: int | None) -> list[int]:
        """Ordered ``path_id`` chain of a node, root first, the node itself last.

        Returns an empty list for ``None`` (the virtual root).
        """
        if taxonomy_id is None:
            return []
        result = await self.db.execute(
            select(TaxonomyPath.path_id)
            .where(TaxonomyPath.type == type, TaxonomyPath.taxonomy_id == taxonomy_id)
            .order_by(TaxonomyPath.level)
        )
        return list(result.scalars())

    async def is_descendant_or_self(self, type: str, candidate_id: int, taxonomy_id: int) -> bool:
        """Whether ``candidate_id`` is ``taxonomy_id`` or lies below it."""
        result = await self.db.execute(
            select(TaxonomyPath.level)
            .where(
                TaxonomyPath.type == type,
                TaxonomyPath.taxonomy_id == candidate_id,
                TaxonomyPath.path_id == taxonomy_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def build_path_on_create(self, node: Taxonomy) -> list[int]:
        """Write the path rows of a freshly created node.

        The chain is the parent's chain followed by the node itself.
        """
        chain = await self.ancestors(node.type, node.parent_id)
        chain.append(node.id)
        await self._insert_chain(node.type, node.id, chain)

        logger.debug(
            "Taxonomy path built",
            taxonomy_id=node.id,
            type=node.type,
            depth=len(chain) - 1,
        )
        return chain

    async def reparent(self, node: Taxonomy, new_parent_id: int | None) -> list[int]:
        """Move ``node`` (and its subtree) under ``new_parent_id``.

        Returns the ids whose chains were rewritten (the node and all of its
        descendants).

        Raises:
            CannotMakeParentSubsetOwnChildError: If the new parent is the node
                itself or one of its descendants. Nothing is written.
            PathIntegrityError: If a recombined chain repeats an ancestor.
        """
        if new_parent_id is not None and await self.is_descendant_or_self(
            node.type, new_parent_id, node.id
        ):
            raise CannotMakeParentSubsetOwnChildError(node.id, new_parent_id)

        old_parent_id = node.parent_id
        node.parent_id = new_parent_id
        await self.db.flush()

        new_prefix = await self.ancestors(node.type, new_parent_id)

        # Level of the moved node inside each descendant's chain
        result = await self.db.execute(
            select(TaxonomyPath.taxonomy_id, TaxonomyPath.level)
            .where(TaxonomyPath.type == node.type, TaxonomyPath.path_id == node.id)
            .order_by(TaxonomyPath.level, TaxonomyPath.taxonomy_id)
            .with_for_update()
        )
        subtree = result.all()

        for taxonomy_id, node_level in subtree:
            # Drop the stale prefix above the moved node
            await self.db.execute(
                delete(TaxonomyPath).where(
                    TaxonomyPath.type == node.type,
                    TaxonomyPath.taxonomy_id == taxonomy_id,
                    TaxonomyPath.level < node_level,
                )
            )
            suffix = await self.ancestors(node.type, taxonomy_id)
            chain = new_prefix + suffix
            self._assert_unique_chain(taxonomy_id, chain)
            await self._upsert_chain(node.type, taxonomy_id, chain)

        logger.info(
            "Taxonomy reparented",
            taxonomy_id=node.id,
            type=node.type,
            old_parent_id=old_parent_id,
            new_parent_id=new_parent_id,
            rewritten=len(subtree),
        )
        return [taxonomy_id for taxonomy_id, _ in subtree]

    async def subtree_ids(self, type: str, taxonomy_id: int) -> list[int]:
        """The node and every descendant at any depth, ascending by id."""
        result = await self.db.execute(
            select(TaxonomyPath.taxonomy_id)
            .where(TaxonomyPath.type == type, TaxonomyPath.path_id == taxonomy_id)
            .order_by(TaxonomyPath.taxonomy_id)
        )
        return list(result.scalars())

    async def delete_paths(self, type: str, taxonomy_ids: Iterable[int]) -> int:
        """Remove every path row of the given descendants."""
        ids = list(taxonomy_ids)
        if not ids:
            return 0
        result = await self.db.execute(
            delete(TaxonomyPath).where(
                TaxonomyPath.type == type,
                TaxonomyPath.taxonomy_id.in_(ids),
            )
        )
        return result.rowcount

    async def verify(self, type: str, taxonomy_id: int) -> list[int]:
        """Check the closure invariant for one node and return its chain.

        Levels must run 0..depth without gaps or repeats and the last row
        must be the node itself.

        Raises:
            PathIntegrityError: If the rows do not form a valid chain
        """
        result = await self.db.execute(
            select(TaxonomyPath.path_id, TaxonomyPath.level)
            .where(TaxonomyPath.type == type, TaxonomyPath.taxonomy_id == taxonomy_id)
            .order_by(TaxonomyPath.level)
        )
        rows = result.all()

        levels = [level for _, level in rows]
        chain = [path_id for path_id, _ in rows]
        if levels != list(range(len(rows))):
            raise PathIntegrityError(f"Taxonomy {taxonomy_id} has path levels {levels}")
        if not chain or chain[-1] != taxonomy_id:
            raise PathIntegrityError(f"Taxonomy {taxonomy_id} path does not end at itself")
        self._assert_unique_chain(taxonomy_id, chain)
        return chain

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def _assert_unique_chain(taxonomy_id: int, chain: Sequence[int]) -> None:
        if len(set(chain)) != len(chain):
            raise PathIntegrityError(
                f"Taxonomy {taxonomy_id} path repeats an ancestor: {list(chain)}"
            )

    async def _insert_chain(self, type: str, taxonomy_id: int, chain: Sequence[int]) -> None:
        await self.db.execute(
            insert(TaxonomyPath),
            [
                {"type": type, "taxonomy_id": taxonomy_id, "path_id": path_id, "level": level}
                for level, path_id in enumerate(chain)
            ],
        )

    async def _upsert_chain(self, type: str, taxonomy_id: int, chain: Sequence[int]) -> None:
        """Write ``chain`` keyed by (type, taxonomy_id, path_id) with fresh levels."""
        result = await self.db.execute(
            select(TaxonomyPath.path_id, TaxonomyPath.level).where(
                TaxonomyPath.type == type,
                TaxonomyPath.taxonomy_id == taxonomy_id,
            )
        )
        existing = dict(result.all())

        missing: list[dict[str, object]] = []
        for level, path_id in enumerate(chain):
            if path_id not in existing:
                missing.append(
                    {"type": type, "taxonomy_id": taxonomy_id, "path_id": path_id, "level": level}
                )
            elif existing[path_id] != level:
                await self.db.execute(
                    update(TaxonomyPath)
                    .where(
                        TaxonomyPath.type == type,
                        TaxonomyPath.taxonomy_id == taxonomy_id,
                        TaxonomyPath.path_id == path_id,
                    )
                    .values(level=level)
                )

        if missing:
            await self.db.execute(insert(TaxonomyPath), missing)
