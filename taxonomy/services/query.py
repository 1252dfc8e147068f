"""Hierarchical Query Composer - translated, filterable taxonomy listings.

The listing is one SQL statement per call:

* flat types: nodes left-joined to their ``name`` translation in the locale;
* hierarchical types: closure rows joined to the nodes and to the ``name``
  translation of every ancestor, grouped per node into ``name``, ``depth``
  and ``named_levels``.

Filters and sorting apply to that projection, so only the requested page
ever leaves the database. The rows are then hydrated into
``TaxonomyView`` objects with a fixed number of batched lookups for the
page's ids (translations, ancestor name chains and eager loads).
"""

import math
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, case, func, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.config import settings
from taxonomy.core.contracts import MetadataFilterContract
from taxonomy.core.exceptions import InvalidQueryFieldError
from taxonomy.core.locale import get_locale, name_separator
from taxonomy.core.type_registry import TaxonomyType, TaxonomyTypeRegistry, get_type_registry
from taxonomy.infra.logging import get_logger
from taxonomy.models.media_relation import MediaRelation
from taxonomy.models.meta import Meta
from taxonomy.models.taxonomy import MORPH_TYPE, Taxonomy
from taxonomy.models.taxonomy_path import TaxonomyPath
from taxonomy.models.taxonomy_relation import TaxonomyRelation
from taxonomy.models.translation import Translation
from taxonomy.schemas.common import Page
from taxonomy.schemas.taxonomy import ListParams, PathView, RelationView, TaxonomyView
from taxonomy.services.metadata import MetadataFilter, decode_meta_value

logger = get_logger(__name__)

BASE_FIELDS = ["id", "name", "ordering", "status", "created_at", "updated_at"]
INCLUDES = ("taxonomy_relations", "metas", "paths", "children", "files")
DEFAULT_SORT = ["name"]


class QueryHandle:
    """A composed listing statement, ready to fetch as a list or a page."""

    def __init__(
        self,
        session: AsyncSession,
        statement: Select,
        taxonomy_type: TaxonomyType,
        with_: Sequence[str],
        locale: str,
    ) -> None:
        self.db = session
        self.statement = statement
        self.taxonomy_type = taxonomy_type
        self.with_ = tuple(with_)
        self.locale = locale

    async def all(self) -> list[TaxonomyView]:
        result = await self.db.execute(self.statement)
        return await self._hydrate(result.mappings().all())

    async def first(self) -> TaxonomyView | None:
        result = await self.db.execute(self.statement.limit(1))
        views = await self._hydrate(result.mappings().all())
        return views[0] if views else None

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(self.statement.order_by(None).subquery())
        )
        return result.scalar_one()

    async def paginate(self, page_size: int | None = None, page: int = 1) -> Page[TaxonomyView]:
        """Fetch one page (1-based) of the listing."""
        page_size = page_size or settings.default_page_size
        page = max(page, 1)

        total = await self.count()
        result = await self.db.execute(
            self.statement.limit(page_size).offset((page - 1) * page_size)
        )
        items = await self._hydrate(result.mappings().all())

        return Page[TaxonomyView](
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            last_page=max(1, math.ceil(total / page_size)),
        )

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    async def _hydrate(self, rows: Sequence[RowMapping]) -> list[TaxonomyView]:
        if not rows:
            return []

        hierarchical = self.taxonomy_type.hierarchical
        ids = [row["id"] for row in rows]

        translations = await self._translations(ids)

        chains: dict[int, list[str]] = {}
        if hierarchical:
            complete = [row["id"] for row in rows if row["named_levels"] == row["depth"] + 1]
            chains = await self._name_chains(complete)

        includes: dict[str, dict[int, Any]] = {}
        for include in self.with_:
            includes[include] = await getattr(self, f"_load_{include}")(ids)

        separator = name_separator(self.locale)
        views: list[TaxonomyView] = []
        for row in rows:
            node_id = row["id"]
            view = TaxonomyView(
                id=node_id,
                type=row["type"],
                hierarchical=hierarchical,
                name=row["name"],
                name_multiple=separator.join(chains[node_id]) if node_id in chains else None,
                parent_id=row["parent_id"] if hierarchical else None,
                ordering=row["ordering"],
                status=row["status"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                translations=translations.get(node_id, {}),
            )
            if "taxonomy_relations" in includes:
                view.taxonomy_relations = includes["taxonomy_relations"].get(node_id, [])
            if "metas" in includes:
                view.metas = includes["metas"].get(node_id, {})
            if "paths" in includes:
                view.paths = includes["paths"].get(node_id, [])
            if "children" in includes:
                view.children_count = includes["children"].get(node_id, 0)
            if "files" in includes:
                view.files = includes["files"].get(node_id, {})
            views.append(view)

        return views

    async def _translations(self, ids: list[int]) -> dict[int, dict[str, dict[str, str | None]]]:
        result = await self.db.execute(
            select(Translation.translatable_id, Translation.locale, Translation.key, Translation.value)
            .where(
                Translation.translatable_type == MORPH_TYPE,
                Translation.translatable_id.in_(ids),
            )
            .order_by(Translation.translatable_id, Translation.locale, Translation.key)
        )
        translations: dict[int, dict[str, dict[str, str | None]]] = {}
        for owner_id, locale, key, value in result.all():
            translations.setdefault(owner_id, {}).setdefault(locale, {})[key] = value
        return translations

    async def _name_chains(self, ids: list[int]) -> dict[int, list[str]]:
        """Ancestor names (root first) of nodes whose every level is named."""
        if not ids:
            return {}
        cp = TaxonomyPath.__table__.alias("cp")
        t = Translation.__table__.alias("t")
        result = await self.db.execute(
            select(cp.c.taxonomy_id, t.c.value)
            .select_from(cp)
            .join(t, and_(t.c.translatable_id == cp.c.path_id, _name_translation(t, self.locale)))
            .where(cp.c.type == self.taxonomy_type.name, cp.c.taxonomy_id.in_(ids))
            .order_by(cp.c.taxonomy_id, cp.c.level)
        )
        chains: dict[int, list[str]] = {}
        for taxonomy_id, value in result.all():
            chains.setdefault(taxonomy_id, []).append(value)
        return chains

    async def _load_taxonomy_relations(self, ids: list[int]) -> dict[int, list[RelationView]]:
        result = await self.db.execute(
            select(TaxonomyRelation)
            .where(TaxonomyRelation.taxonomy_id.in_(ids))
            .order_by(TaxonomyRelation.id)
        )
        relations: dict[int, list[RelationView]] = {}
        for relation in result.scalars():
            relations.setdefault(relation.taxonomy_id, []).append(
                RelationView.model_validate(relation)
            )
        return relations

    async def _load_metas(self, ids: list[int]) -> dict[int, dict[str, Any]]:
        result = await self.db.execute(
            select(Meta.metaable_id, Meta.key, Meta.value, Meta.is_json)
            .where(Meta.metaable_type == MORPH_TYPE, Meta.metaable_id.in_(ids))
            .order_by(Meta.metaable_id, Meta.key)
        )
        metas: dict[int, dict[str, Any]] = {}
        for owner_id, key, value, is_json in result.all():
            metas.setdefault(owner_id, {})[key] = decode_meta_value(value, is_json)
        return metas

    async def _load_paths(self, ids: list[int]) -> dict[int, list[PathView]]:
        result = await self.db.execute(
            select(TaxonomyPath.taxonomy_id, TaxonomyPath.path_id, TaxonomyPath.level)
            .where(
                TaxonomyPath.type == self.taxonomy_type.name,
                TaxonomyPath.taxonomy_id.in_(ids),
            )
            .order_by(TaxonomyPath.taxonomy_id, TaxonomyPath.level)
        )
        paths: dict[int, list[PathView]] = {}
        for taxonomy_id, path_id, level in result.all():
            paths.setdefault(taxonomy_id, []).append(PathView(path_id=path_id, level=level))
        return paths

    async def _load_children(self, ids: list[int]) -> dict[int, int]:
        result = await self.db.execute(
            select(Taxonomy.parent_id, func.count(Taxonomy.id))
            .where(Taxonomy.parent_id.in_(ids))
            .group_by(Taxonomy.parent_id)
        )
        return {parent_id: count for parent_id, count in result.all()}

    async def _load_files(self, ids: list[int]) -> dict[int, dict[str, list[int]]]:
        result = await self.db.execute(
            select(MediaRelation.mediable_id, MediaRelation.collection, MediaRelation.media_id)
            .where(MediaRelation.mediable_type == MORPH_TYPE, MediaRelation.mediable_id.in_(ids))
            .order_by(MediaRelation.mediable_id, MediaRelation.collection, MediaRelation.id)
        )
        files: dict[int, dict[str, list[int]]] = {}
        for owner_id, collection, media_id in result.all():
            files.setdefault(owner_id, {}).setdefault(collection, []).append(media_id)
        return files


def _name_translation(t: Any, locale: str) -> ColumnElement[bool]:
    """Join condition selecting the ``name`` translation of a taxonomy in ``locale``."""
    return and_(
        t.c.translatable_type == MORPH_TYPE,
        t.c.locale == locale,
        t.c.key == "name",
    )


class TaxonomyQueryComposer:
    """Builds taxonomy listings for one registered type at a time."""

    def __init__(
        self,
        session: AsyncSession,
        registry: TaxonomyTypeRegistry | None = None,
        metadata_filter: MetadataFilterContract | None = None,
    ) -> None:
        self.db = session
        self.registry = registry or get_type_registry()
        self.metadata_filter = metadata_filter or MetadataFilter()

    @staticmethod
    def allowed_fields(taxonomy_type: TaxonomyType) -> list[str]:
        """Fields a listing of ``taxonomy_type`` may filter and sort on."""
        if taxonomy_type.hierarchical:
            return [*BASE_FIELDS, "parent_id"]
        return list(BASE_FIELDS)

    def build(
        self,
        type: str,
        filters: dict[str, Any] | None = None,
        params: ListParams | None = None,
        locale: str | None = None,
    ) -> Select:
        """Compose the listing statement.

        Args:
            type: Registered taxonomy type
            filters: Exact equality constraints on whitelisted fields
            params: Request filters, sorting and metadata filters
            locale: Locale of the ``name`` column (defaults to the active one)

        Raises:
            UnknownTaxonomyTypeError: If ``type`` is not registered
            InvalidQueryFieldError: If a filter or sort names a field outside the whitelist
        """
        taxonomy_type = self.registry.type(type)
        filters = filters or {}
        params = params or ListParams()
        locale = locale or get_locale()
        allowed = self.allowed_fields(taxonomy_type)

        for field in [*filters, *params.search]:
            if field not in allowed:
                raise InvalidQueryFieldError("filter", field, allowed)
        sort = params.sort or DEFAULT_SORT
        for item in sort:
            if item.lstrip("-") not in allowed:
                raise InvalidQueryFieldError("sort", item.lstrip("-"), allowed)

        c = Taxonomy.__table__.alias("c")
        t = Translation.__table__.alias("t")
        node_columns = [
            c.c.id,
            c.c.type,
            c.c.parent_id,
            c.c.ordering,
            c.c.status,
            c.c.created_at,
            c.c.updated_at,
        ]

        if taxonomy_type.hierarchical:
            cp = TaxonomyPath.__table__.alias("cp")
            inner = (
                select(
                    *node_columns,
                    func.max(case((cp.c.path_id == c.c.id, t.c.value))).label("name"),
                    func.max(cp.c.level).label("depth"),
                    func.count(t.c.value).label("named_levels"),
                )
                .select_from(cp)
                .join(c, cp.c.taxonomy_id == c.c.id)
                .outerjoin(t, and_(t.c.translatable_id == cp.c.path_id, _name_translation(t, locale)))
                .where(cp.c.type == type, c.c.type == type)
                .group_by(*node_columns)
            )
        else:
            inner = (
                select(*node_columns, t.c.value.label("name"))
                .select_from(c)
                .outerjoin(t, and_(t.c.translatable_id == c.c.id, _name_translation(t, locale)))
                .where(c.c.type == type)
            )

        if params.metadata:
            inner = self.metadata_filter.apply(inner, MORPH_TYPE, c.c.id, params.metadata)

        listing = inner.subquery(settings.taxonomy_table)
        stmt = select(listing)

        for field, value in filters.items():
            column = listing.c[field]
            stmt = stmt.where(column.is_(None) if value is None else column == value)

        for field, value in params.search.items():
            column = listing.c[field]
            if value is None:
                stmt = stmt.where(column.is_(None))
            elif field == "name":
                stmt = stmt.where(column.icontains(str(value), autoescape=True))
            else:
                stmt = stmt.where(column == value)

        for item in sort:
            column = listing.c[item.lstrip("-")]
            stmt = stmt.order_by(column.desc() if item.startswith("-") else column.asc())
        stmt = stmt.order_by(listing.c.id.asc())

        logger.debug(
            "Taxonomy listing composed",
            type=type,
            hierarchical=taxonomy_type.hierarchical,
            locale=locale,
            filters=list(filters),
            search=list(params.search),
            sort=sort,
        )
        return stmt

    def query(
        self,
        type: str,
        filters: dict[str, Any] | None = None,
        with_: Sequence[str] | None = None,
        params: ListParams | None = None,
        locale: str | None = None,
    ) -> QueryHandle:
        """Compose a listing and wrap it in a :class:`QueryHandle`.

        Raises:
            InvalidQueryFieldError: If ``with_`` names an unknown eager load
        """
        taxonomy_type = self.registry.type(type)
        with_ = list(with_ or [])
        for include in with_:
            if include not in INCLUDES:
                raise InvalidQueryFieldError("include", include, list(INCLUDES))

        locale = locale or get_locale()
        statement = self.build(type, filters, params, locale)
        return QueryHandle(self.db, statement, taxonomy_type, with_, locale)
