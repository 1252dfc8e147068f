"""Taxonomy Service - the facade over nodes, paths, listings and events.

Every mutation runs in one transaction through ``atomic()``:

1. Validate the payload (schema, then business rules)
2. Write the node and its owned capabilities
3. Maintain the closure table for hierarchical types
4. Commit, then publish the domain event

Validation failures come back as ``ServiceResponse(ok=False, status=422)``.
Missing nodes, cycles and used nodes raise ``TaxonomyError`` subclasses and
roll the transaction back.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.config import settings
from taxonomy.core.events import (
    EventDispatcher,
    TaxonomyDeleteEvent,
    TaxonomyStoreEvent,
    TaxonomyUpdateEvent,
    get_event_dispatcher,
)
from taxonomy.core.exceptions import TaxonomyNotFoundError, TaxonomyUsedError
from taxonomy.core.locale import get_locale
from taxonomy.core.type_registry import TaxonomyType, TaxonomyTypeRegistry, get_type_registry
from taxonomy.infra.database import atomic
from taxonomy.infra.logging import get_logger
from taxonomy.models.taxonomy import Taxonomy
from taxonomy.schemas.common import Page, ServiceResponse
from taxonomy.schemas.taxonomy import (
    ListParams,
    MediaInput,
    RelationView,
    SetTranslationRequest,
    StoreTaxonomyRequest,
    TaxonomyView,
    UpdateTaxonomyRequest,
)
from taxonomy.services.entity_store import TaxonomyEntity, TaxonomyStore
from taxonomy.services.path_index import PathIndex
from taxonomy.services.query import QueryHandle, TaxonomyQueryComposer
from taxonomy.services.validation import TaxonomyValidator, parse_payload

logger = get_logger(__name__)


def _validation_failed(errors: list[str]) -> ServiceResponse:
    return ServiceResponse(ok=False, message="Validation errors", errors=errors, status=422)


class TaxonomyService:
    """Store, update, delete and list taxonomy nodes of any registered type."""

    def __init__(
        self,
        session: AsyncSession,
        registry: TaxonomyTypeRegistry | None = None,
        events: EventDispatcher | None = None,
        store: TaxonomyStore | None = None,
        path_index: PathIndex | None = None,
        composer: TaxonomyQueryComposer | None = None,
    ) -> None:
        """Initialize the taxonomy service.

        Args:
            session: Database session shared by every collaborator
            registry: Taxonomy type registry (defaults to the loaded one)
            events: Event dispatcher (defaults to the process-wide one)
            store: Entity store (optional)
            path_index: Closure table maintenance (optional)
            composer: Listing composer (optional)
        """
        self.db = session
        self.registry = registry or get_type_registry()
        self.events = events or get_event_dispatcher()
        self.entities = store or TaxonomyStore(session)
        self.paths = path_index or PathIndex(session)
        self.composer = composer or TaxonomyQueryComposer(session, self.registry)
        self.validator = TaxonomyValidator(session, self.registry)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def query(
        self,
        type: str,
        filters: dict[str, Any] | None = None,
        with_: Sequence[str] | None = None,
        params: ListParams | None = None,
    ) -> QueryHandle:
        """Compose a listing of ``type``.

        Raises:
            UnknownTaxonomyTypeError: If ``type`` is not registered
            InvalidQueryFieldError: If a filter, sort or include is not allowed
        """
        return self.composer.query(type, filters=filters, with_=with_, params=params)

    async def paginate(
        self,
        type: str,
        filters: dict[str, Any] | None = None,
        page_size: int | None = None,
        with_: Sequence[str] | None = None,
        page: int = 1,
        params: ListParams | None = None,
    ) -> Page[TaxonomyView]:
        return await self.query(type, filters, with_, params).paginate(page_size, page)

    async def all(
        self,
        type: str,
        filters: dict[str, Any] | None = None,
        with_: Sequence[str] | None = None,
        params: ListParams | None = None,
    ) -> list[TaxonomyView]:
        return await self.query(type, filters, with_, params).all()

    async def view(self, node: Taxonomy) -> TaxonomyView | None:
        """Listing representation of one node in the active locale."""
        return await self.composer.query(node.type, filters={"id": node.id}).first()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def store(self, data: dict[str, Any]) -> ServiceResponse[TaxonomyView]:
        """Create a taxonomy node.

        Args:
            data: ``type``, optional ``parent_id``, ``ordering``, ``status``,
                ``translation``, ``slug``, ``metadata`` and ``media``

        Returns:
            ServiceResponse with the created node (201), or the validation
            errors (422)
        """
        request, errors = parse_payload(StoreTaxonomyRequest, data)
        if request is None:
            return _validation_failed(errors)
        errors = await self.validator.validate_store(request)
        if errors:
            logger.info("Taxonomy store rejected", type=request.type, errors=errors)
            return _validation_failed(errors)

        taxonomy_type = self.registry.type(request.type)

        async with atomic(self.db):
            node = await self.entities.create(
                type=request.type,
                parent_id=request.parent_id,
                ordering=request.ordering,
                status=request.status,
            )
            entity = self.entities.bind(node)

            for locale, values in request.translation.items():
                await entity.translations.translate(locale, values)
            if request.slug is not None:
                await entity.url.dispatch(request.slug, taxonomy_type.name)
            for key, value in request.metadata.items():
                await entity.metas.store(key, value)
            await self._attach_media(entity, taxonomy_type, request.media)

            if taxonomy_type.hierarchical:
                await self.paths.build_path_on_create(node)

        logger.info(
            "Taxonomy stored",
            taxonomy_id=node.id,
            type=node.type,
            parent_id=node.parent_id,
        )
        await self.events.publish(
            TaxonomyStoreEvent(
                taxonomy=node,
                data=request.model_dump(),
                hierarchical=taxonomy_type.hierarchical,
            )
        )

        return ServiceResponse(
            ok=True,
            message="Taxonomy created",
            data=await self.view(node),
            status=201,
        )

    async def update(self, taxonomy_id: int, data: dict[str, Any]) -> ServiceResponse[TaxonomyView]:
        """Update a taxonomy node. Only the keys present in ``data`` change.

        Moving a hierarchical node rewrites the path rows of its whole subtree.

        Raises:
            TaxonomyNotFoundError: If the node does not exist
            CannotMakeParentSubsetOwnChildError: If the new parent lies in the
                node's own subtree
        """
        node = await self.entities.find(taxonomy_id)

        request, errors = parse_payload(UpdateTaxonomyRequest, data)
        if request is None:
            return _validation_failed(errors)
        errors = await self.validator.validate_update(node, request)
        if errors:
            logger.info("Taxonomy update rejected", taxonomy_id=taxonomy_id, errors=errors)
            return _validation_failed(errors)

        taxonomy_type = self.registry.type(node.type)
        given = request.model_fields_set
        change_parent_id = (
            taxonomy_type.hierarchical
            and "parent_id" in given
            and request.parent_id != node.parent_id
        )

        async with atomic(self.db):
            if change_parent_id:
                await self.paths.reparent(node, request.parent_id)

            fields = {name: getattr(request, name) for name in ("ordering", "status") if name in given}
            await self.entities.update_fields(node, **fields)

            entity = self.entities.bind(node)
            for locale, values in (request.translation or {}).items():
                await entity.translations.translate(locale, values)
            if "slug" in given:
                if request.slug is None:
                    await entity.url.forget()
                else:
                    await entity.url.dispatch(request.slug, taxonomy_type.name)
            for key, value in (request.metadata or {}).items():
                await entity.metas.store(key, value)
            await self._attach_media(entity, taxonomy_type, request.media or {})

        logger.info(
            "Taxonomy updated",
            taxonomy_id=node.id,
            type=node.type,
            fields=sorted(given),
            change_parent_id=change_parent_id,
        )
        await self.events.publish(
            TaxonomyUpdateEvent(
                taxonomy=node,
                data=request.model_dump(exclude_unset=True),
                change_parent_id=change_parent_id,
            )
        )

        return ServiceResponse(ok=True, message="Taxonomy updated", data=await self.view(node))

    async def delete(self, taxonomy_id: int) -> ServiceResponse[TaxonomyView]:
        """Delete a node together with its whole subtree.

        Raises:
            TaxonomyNotFoundError: If the node does not exist
            TaxonomyUsedError: If the node or any descendant is referenced by a
                relation. Nothing is deleted.
        """
        node = await self.entities.find(taxonomy_id)
        view = await self.view(node)
        await self._delete_subtree(node)
        return ServiceResponse(ok=True, message="Taxonomy deleted", data=view)

    async def deletes(self, taxonomy_ids: Iterable[int]) -> ServiceResponse[list[int]]:
        """Delete several nodes, each in its own transaction.

        Ids already removed along with an earlier subtree are skipped. Stops
        at the first failure and re-raises it; nodes deleted before it stay
        deleted.
        """
        removed: set[int] = set()
        deleted: list[int] = []
        for taxonomy_id in taxonomy_ids:
            if taxonomy_id in removed:
                continue
            node = await self.entities.find(taxonomy_id)
            removed.update(await self._delete_subtree(node))
            deleted.append(taxonomy_id)
        return ServiceResponse(ok=True, message="Taxonomies deleted", data=deleted)

    async def change_status(
        self, taxonomy_ids: Iterable[int], value: bool
    ) -> ServiceResponse[list[TaxonomyView]]:
        """Set ``status`` on every node in ``taxonomy_ids``.

        Stops at the first rejected update and returns its errors, prefixed
        with the node id, alongside the views of the nodes already changed.
        """
        views: list[TaxonomyView] = []
        for taxonomy_id in taxonomy_ids:
            response = await self.update(taxonomy_id, {"status": value})
            if not response.ok:
                return ServiceResponse(
                    ok=False,
                    message=response.message,
                    data=views,
                    errors=[f"ids.{taxonomy_id}.{error}" for error in response.errors or []],
                    status=response.status,
                )
            views.append(response.data)
        return ServiceResponse(ok=True, message="Taxonomy status changed", data=views)

    async def set_translation(self, data: dict[str, Any]) -> ServiceResponse[TaxonomyView]:
        """Upsert translations of an existing node for several locales at once.

        Raises:
            TaxonomyNotFoundError: If ``translatable_id`` does not exist
        """
        request, errors = parse_payload(SetTranslationRequest, data)
        if request is None:
            return _validation_failed(errors)

        node = await self.entities.find(request.translatable_id)
        errors = await self.validator.validate_update(
            node, UpdateTaxonomyRequest(translation=request.translation)
        )
        if errors:
            return _validation_failed(errors)

        async with atomic(self.db):
            entity = self.entities.bind(node)
            for locale, values in request.translation.items():
                await entity.translations.translate(locale, values)

        logger.info(
            "Taxonomy translations set",
            taxonomy_id=node.id,
            locales=sorted(request.translation),
        )
        return ServiceResponse(ok=True, message="Translations saved", data=await self.view(node))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_name(
        self, taxonomy_id: int, concat: bool = True, locale: str | None = None
    ) -> str:
        """Display name of a node.

        With ``concat`` a hierarchical node is named by its full ancestor
        chain (``Electronics›Phones›Smartphones``). Returns an empty string
        when the name (or any level of the chain) is untranslated.

        Raises:
            TaxonomyNotFoundError: If the node does not exist
        """
        node = await self.entities.find(taxonomy_id)
        view = await self.composer.query(
            node.type, filters={"id": node.id}, locale=locale or get_locale()
        ).first()
        if view is None:
            return ""
        if concat and view.hierarchical:
            return view.name_multiple or ""
        return view.name or ""

    async def has_used(self, taxonomy_id: int) -> bool:
        """Whether any entity references the node."""
        return await self.entities.has_used(taxonomy_id)

    async def used_in(self, taxonomy_id: int) -> ServiceResponse[list[RelationView]]:
        """Entities referencing the node.

        Raises:
            TaxonomyNotFoundError: If the node does not exist
        """
        if not await self.entities.exists(taxonomy_id):
            raise TaxonomyNotFoundError(taxonomy_id)
        relations = await self.entities.relations(taxonomy_id)
        return ServiceResponse(
            ok=True,
            message="Taxonomy usages",
            data=[RelationView.model_validate(relation) for relation in relations],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _attach_media(
        entity: TaxonomyEntity, taxonomy_type: TaxonomyType, media: MediaInput
    ) -> None:
        collections = taxonomy_type.media_allow_collections()
        for collection, value in media.items():
            if value is None:
                continue
            multiple = collections[collection].multiple
            media_ids = value if isinstance(value, list) else [value]
            for media_id in media_ids:
                await entity.media.attach(media_id, collection, multiple=multiple)

    async def _display_name(self, taxonomy_id: int) -> str:
        """Name identifying a node in error messages, never empty.

        Tries the active locale, then the default locale, then ``#<id>``.
        """
        for locale in dict.fromkeys((get_locale(), settings.default_locale)):
            name = await self.get_name(taxonomy_id, locale=locale)
            if name:
                return name
        return f"#{taxonomy_id}"

    async def _delete_subtree(self, node: Taxonomy) -> list[int]:
        """Remove ``node``, its descendants and everything they own. Returns the removed ids."""
        taxonomy_type = self.registry.type(node.type)

        async with atomic(self.db):
            if taxonomy_type.hierarchical:
                ids = await self.paths.subtree_ids(node.type, node.id)
            else:
                ids = [node.id]

            used = await self.entities.used_ids(ids)
            if used:
                blocking = min(used)
                raise TaxonomyUsedError(await self._display_name(blocking), taxonomy_id=blocking)

            for owned_id in ids:
                entity = self.entities.bind(await self.entities.find(owned_id))
                await entity.forget_owned()
            if taxonomy_type.hierarchical:
                await self.paths.delete_paths(node.type, ids)
            await self.entities.delete_many(ids)

        logger.info("Taxonomy deleted", taxonomy_id=node.id, type=node.type, deleted=len(ids))
        await self.events.publish(TaxonomyDeleteEvent(taxonomy=node, deleted_ids=tuple(ids)))
        return ids
