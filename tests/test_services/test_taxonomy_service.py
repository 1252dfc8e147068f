"""Tests for TaxonomyService commands and lookups."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_node, mark_used
from taxonomy.core.events import (
    EventDispatcher,
    TaxonomyDeleteEvent,
    TaxonomyEvent,
    TaxonomyStoreEvent,
    TaxonomyUpdateEvent,
)
from taxonomy.core.exceptions import TaxonomyNotFoundError, TaxonomyUsedError
from taxonomy.core.locale import use_locale
from taxonomy.models import MORPH_TYPE, MediaRelation, Meta, Taxonomy, TaxonomyPath, Translation, Url
from taxonomy.services.taxonomy_service import TaxonomyService


async def count(session: AsyncSession, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


class TestStore:
    """Creating nodes."""

    @pytest.mark.asyncio
    async def test_store_returns_created_view(self, service: TaxonomyService):
        response = await service.store(
            {
                "type": "category",
                "ordering": 3,
                "translation": {"en": {"name": "Electronics", "description": "All things"}},
            }
        )

        assert response.ok
        assert response.status == 201
        assert response.data.name == "Electronics"
        assert response.data.name_multiple == "Electronics"
        assert response.data.ordering == 3
        assert response.data.status is True
        assert response.data.translations == {
            "en": {"description": "All things", "name": "Electronics"}
        }

    @pytest.mark.asyncio
    async def test_store_writes_capabilities(self, session: AsyncSession, service: TaxonomyService):
        response = await service.store(
            {
                "type": "category",
                "translation": {"en": {"name": "Phones"}, "fa": {"name": "گوشی"}},
                "slug": "phones",
                "metadata": {"color": "blue", "icon": {"name": "phone", "size": 2}},
                "media": {"base": 1, "gallery": [2, 3], "banner": 4},
            }
        )
        taxonomy_id = response.data.id

        assert await count(session, Translation, Translation.translatable_id == taxonomy_id) == 2
        url = await session.execute(select(Url.slug).where(Url.urlable_id == taxonomy_id))
        assert url.scalar_one() == "phones"

        entity = service.entities.bind(await service.entities.find(taxonomy_id))
        assert await entity.metas.all() == {"color": "blue", "icon": {"name": "phone", "size": 2}}
        assert await entity.media.all() == {"banner": [4], "base": [1], "gallery": [2, 3]}
        assert await entity.url.get("category") == "phones"

    @pytest.mark.asyncio
    async def test_store_publishes_event_after_commit(
        self, service: TaxonomyService, events: EventDispatcher
    ):
        received: list[TaxonomyEvent] = []
        events.subscribe(TaxonomyStoreEvent, received.append)

        taxonomy_id = await make_node(service, "Electronics")

        assert len(received) == 1
        assert received[0].taxonomy.id == taxonomy_id
        assert received[0].hierarchical is True
        assert received[0].data["translation"] == {"en": {"name": "Electronics"}}

    @pytest.mark.asyncio
    async def test_failing_listener_keeps_committed_store(
        self, session: AsyncSession, service: TaxonomyService, events: EventDispatcher
    ):
        received: list[TaxonomyEvent] = []

        async def broken(event: TaxonomyEvent) -> None:
            raise RuntimeError("listener broke")

        events.subscribe(TaxonomyStoreEvent, broken)
        events.subscribe(TaxonomyStoreEvent, received.append)

        response = await service.store({"type": "category", "translation": {"en": {"name": "Books"}}})

        assert response.ok is True
        assert response.status == 201
        assert await count(session, Taxonomy, Taxonomy.id == response.data.id) == 1
        assert [event.taxonomy.id for event in received] == [response.data.id]

    @pytest.mark.asyncio
    async def test_flat_node(self, service: TaxonomyService):
        response = await service.store(
            {"type": "tag", "translation": {"en": {"name": "Sale"}}, "metadata": {"color": "red"}}
        )

        assert response.ok
        assert response.data.hierarchical is False
        assert response.data.name == "Sale"
        assert response.data.name_multiple is None
        assert response.data.parent_id is None


class TestStoreValidation:
    """Validation failures come back as 422 responses."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"type": "brand", "translation": {"en": {"name": "X"}}}, "type:"),
            ({"type": "tag", "parent_id": 1, "translation": {"en": {"name": "X"}}}, "parent_id:"),
            ({"type": "category", "parent_id": 999, "translation": {"en": {"name": "X"}}}, "parent_id:"),
            ({"type": "category", "translation": {"fa": {"name": "X"}}}, "translation.en.name"),
            ({"type": "category", "translation": {"en": {"name": "  "}}}, "translation"),
            (
                {"type": "category", "translation": {"en": {"name": "X"}}, "metadata": {"size": 1}},
                "metadata.size",
            ),
            (
                {"type": "category", "translation": {"en": {"name": "X"}}, "media": {"avatar": 1}},
                "media.avatar",
            ),
            (
                {"type": "category", "translation": {"en": {"name": "X"}}, "media": {"gallery": 1}},
                "media.gallery",
            ),
            (
                {"type": "category", "translation": {"en": {"name": "X"}}, "media": {"banner": [1, 2]}},
                "media.banner",
            ),
            ({"type": "category", "translation": {"en": {"name": "X"}}, "slug": "Not A Slug"}, "slug"),
            ({"type": "tag", "translation": {"en": {"name": "X"}}, "slug": "x"}, "slug:"),
            ({"type": "category", "translation": {"en": {"name": "X"}}, "unknown": 1}, "unknown"),
        ],
    )
    async def test_invalid_payload(self, service: TaxonomyService, payload: dict, expected: str):
        response = await service.store(payload)

        assert response.ok is False
        assert response.status == 422
        assert response.data is None
        assert any(error.startswith(expected) for error in response.errors), response.errors

    @pytest.mark.asyncio
    async def test_sibling_names_must_be_unique(self, service: TaxonomyService):
        electronics = await make_node(service, "Electronics")
        await make_node(service, "Phones", electronics)

        duplicate = await service.store(
            {"type": "category", "parent_id": electronics, "translation": {"en": {"name": "Phones"}}}
        )
        root_level = await service.store({"type": "category", "translation": {"en": {"name": "Phones"}}})

        assert duplicate.status == 422
        assert duplicate.errors == ["translation.en.name: 'Phones' already exists at this level"]
        assert root_level.ok

    @pytest.mark.asyncio
    async def test_slug_must_be_unique_per_type(self, service: TaxonomyService):
        await make_node(service, "Phones", slug="phones")

        response = await service.store(
            {"type": "category", "translation": {"en": {"name": "Mobiles"}}, "slug": "phones"}
        )

        assert response.errors == ["slug: 'phones' is already taken"]

    @pytest.mark.asyncio
    async def test_invalid_store_writes_nothing(self, session: AsyncSession, service: TaxonomyService):
        await service.store({"type": "category", "translation": {"en": {"name": "X"}}, "metadata": {"size": 1}})

        assert await count(session, Taxonomy) == 0


class TestUpdate:
    """Updating nodes."""

    @pytest.mark.asyncio
    async def test_update_given_fields_only(self, service: TaxonomyService, electronics: dict[str, int]):
        response = await service.update(electronics["phones"], {"ordering": 5})

        assert response.ok
        assert response.status == 200
        assert response.data.ordering == 5
        assert response.data.status is True
        assert response.data.parent_id == electronics["electronics"]
        assert response.data.name == "Phones"

    @pytest.mark.asyncio
    async def test_update_translation_and_slug(self, service: TaxonomyService, electronics: dict[str, int]):
        phones = electronics["phones"]

        await service.update(phones, {"translation": {"en": {"name": "Mobiles"}}, "slug": "mobiles"})
        response = await service.update(phones, {"slug": "mobiles"})

        assert response.ok
        assert response.data.name == "Mobiles"
        assert await service.get_name(electronics["smartphones"]) == "Electronics›Mobiles›Smartphones"
        entity = service.entities.bind(await service.entities.find(phones))
        assert await entity.url.get("category") == "mobiles"

        await service.update(phones, {"slug": None})
        assert await entity.url.get("category") is None

    @pytest.mark.asyncio
    async def test_update_rejects_sibling_name(self, service: TaxonomyService, electronics: dict[str, int]):
        tablets = await make_node(service, "Tablets", electronics["electronics"])

        response = await service.update(tablets, {"translation": {"en": {"name": "Phones"}}})
        renamed_self = await service.update(tablets, {"translation": {"en": {"name": "Tablets"}}})

        assert response.status == 422
        assert renamed_self.ok

    @pytest.mark.asyncio
    async def test_update_missing_node(self, service: TaxonomyService):
        with pytest.raises(TaxonomyNotFoundError):
            await service.update(999, {"ordering": 1})

    @pytest.mark.asyncio
    async def test_update_rejects_null_status(self, service: TaxonomyService, electronics: dict[str, int]):
        response = await service.update(electronics["phones"], {"status": None})

        assert response.errors == ["status: must be a boolean"]

    @pytest.mark.asyncio
    async def test_update_event_flags_parent_change(
        self, service: TaxonomyService, events: EventDispatcher, electronics: dict[str, int]
    ):
        received: list[TaxonomyUpdateEvent] = []
        events.subscribe(TaxonomyUpdateEvent, received.append)

        await service.update(electronics["smartphones"], {"ordering": 1})
        await service.update(electronics["smartphones"], {"parent_id": electronics["electronics"]})

        assert [event.change_parent_id for event in received] == [False, True]
        assert received[0].data == {"ordering": 1}


class TestDelete:
    """Deleting nodes and subtrees."""

    @pytest.mark.asyncio
    async def test_delete_cascades_subtree(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        other = await make_node(service, "Books", slug="books", metadata={"color": "red"})

        response = await service.delete(electronics["electronics"])

        assert response.ok
        assert response.data.id == electronics["electronics"]
        assert response.data.name == "Electronics"
        assert await count(session, Taxonomy) == 1
        assert await count(session, TaxonomyPath) == 1
        assert await count(session, Translation, Translation.translatable_id != other) == 0
        assert await count(session, Url) == 1
        assert await count(session, Meta) == 1

    @pytest.mark.asyncio
    async def test_delete_forgets_owned_resources(self, session: AsyncSession, service: TaxonomyService):
        taxonomy_id = await make_node(
            service, "Phones", slug="phones", metadata={"color": "red"}, media={"gallery": [1, 2]}
        )

        await service.delete(taxonomy_id)

        for model, owner_type, owner_id in [
            (Translation, Translation.translatable_type, Translation.translatable_id),
            (Meta, Meta.metaable_type, Meta.metaable_id),
            (MediaRelation, MediaRelation.mediable_type, MediaRelation.mediable_id),
            (Url, Url.urlable_type, Url.urlable_id),
        ]:
            assert await count(session, model, owner_type == MORPH_TYPE, owner_id == taxonomy_id) == 0

    @pytest.mark.asyncio
    async def test_delete_blocked_by_used_descendant(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        await mark_used(session, electronics["smartphones"])

        with pytest.raises(TaxonomyUsedError) as exc_info:
            await service.delete(electronics["electronics"])

        assert exc_info.value.status_code == 409
        assert exc_info.value.taxonomy_id == electronics["smartphones"]
        assert exc_info.value.name == "Electronics›Phones›Smartphones"
        assert await count(session, Taxonomy) == 3
        assert await count(session, TaxonomyPath) == 6
        assert await count(session, Translation) == 3

    @pytest.mark.asyncio
    async def test_delete_names_first_used_node(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        await mark_used(session, electronics["smartphones"])
        await mark_used(session, electronics["phones"])

        with pytest.raises(TaxonomyUsedError) as exc_info:
            await service.delete(electronics["electronics"])

        assert exc_info.value.taxonomy_id == electronics["phones"]

    @pytest.mark.asyncio
    async def test_delete_unrelated_subtree_when_sibling_used(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        tablets = await make_node(service, "Tablets", electronics["electronics"])
        await mark_used(session, electronics["smartphones"])

        response = await service.delete(tablets)

        assert response.ok
        assert await count(session, Taxonomy) == 3

    @pytest.mark.asyncio
    async def test_delete_flat_node(self, session: AsyncSession, service: TaxonomyService):
        tag = await make_node(service, "Sale", type="tag")
        used = await make_node(service, "New", type="tag")
        await mark_used(session, used)

        await service.delete(tag)
        with pytest.raises(TaxonomyUsedError):
            await service.delete(used)

        assert await count(session, Taxonomy) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_node(self, service: TaxonomyService):
        with pytest.raises(TaxonomyNotFoundError):
            await service.delete(999)

    @pytest.mark.asyncio
    async def test_delete_event_lists_removed_ids(
        self, service: TaxonomyService, events: EventDispatcher, electronics: dict[str, int]
    ):
        received: list[TaxonomyDeleteEvent] = []
        events.subscribe(TaxonomyDeleteEvent, received.append)

        await service.delete(electronics["phones"])

        assert received[0].deleted_ids == (electronics["phones"], electronics["smartphones"])

    @pytest.mark.asyncio
    async def test_used_error_names_node_in_default_locale(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        await mark_used(session, electronics["smartphones"])

        with use_locale("fa"), pytest.raises(TaxonomyUsedError) as exc_info:
            await service.delete(electronics["electronics"])

        assert "Electronics›Phones›Smartphones" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_used_error_names_untranslated_node_by_id(
        self, session: AsyncSession, service: TaxonomyService
    ):
        tag = await make_node(service, "Sale", type="tag")
        entity = service.entities.bind(await service.entities.find(tag))
        await entity.translations.forget()
        await session.commit()
        await mark_used(session, tag)

        with pytest.raises(TaxonomyUsedError) as exc_info:
            await service.delete(tag)

        assert exc_info.value.message == f"Taxonomy '#{tag}' is in use and cannot be deleted"
        assert exc_info.value.taxonomy_id == tag


class TestBulkCommands:
    """deletes and change_status."""

    @pytest.mark.asyncio
    async def test_deletes_skips_already_removed_descendants(
        self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]
    ):
        books = await make_node(service, "Books")

        response = await service.deletes([electronics["electronics"], electronics["phones"], books])

        assert response.data == [electronics["electronics"], books]
        assert await count(session, Taxonomy) == 0

    @pytest.mark.asyncio
    async def test_deletes_stops_at_first_failure(self, session: AsyncSession, service: TaxonomyService):
        first = await make_node(service, "First")
        used = await make_node(service, "Used")
        last = await make_node(service, "Last")
        await mark_used(session, used)

        with pytest.raises(TaxonomyUsedError):
            await service.deletes([first, used, last])

        remaining = await session.execute(select(Taxonomy.id).order_by(Taxonomy.id))
        assert list(remaining.scalars()) == [used, last]

    @pytest.mark.asyncio
    async def test_change_status(self, service: TaxonomyService, electronics: dict[str, int]):
        response = await service.change_status([electronics["phones"], electronics["smartphones"]], False)

        assert response.ok
        assert [view.status for view in response.data] == [False, False]
        listing = await service.all("category", params=None, filters={"status": False})
        assert sorted(view.id for view in listing) == [electronics["phones"], electronics["smartphones"]]

    @pytest.mark.asyncio
    async def test_change_status_reports_rejected_update(
        self, service: TaxonomyService, electronics: dict[str, int]
    ):
        response = await service.change_status([electronics["phones"], electronics["smartphones"]], None)

        assert response.ok is False
        assert response.status == 422
        assert response.errors == [f"ids.{electronics['phones']}.status: must be a boolean"]
        assert response.data == []
        listing = await service.all("category", filters={"status": True})
        assert len(listing) == 3


class TestLookups:
    """get_name, set_translation, used_in and has_used."""

    @pytest.mark.asyncio
    async def test_get_name_scenario(self, service: TaxonomyService, electronics: dict[str, int]):
        assert await service.get_name(electronics["smartphones"]) == "Electronics›Phones›Smartphones"
        assert await service.get_name(electronics["smartphones"], concat=False) == "Smartphones"
        assert await service.get_name(electronics["electronics"]) == "Electronics"

    @pytest.mark.asyncio
    async def test_get_name_untranslated_locale(self, service: TaxonomyService, electronics: dict[str, int]):
        assert await service.get_name(electronics["smartphones"], locale="fa") == ""

    @pytest.mark.asyncio
    async def test_get_name_flat(self, service: TaxonomyService):
        tag = await make_node(service, "Sale", type="tag")

        assert await service.get_name(tag) == "Sale"

    @pytest.mark.asyncio
    async def test_get_name_missing_node(self, service: TaxonomyService):
        with pytest.raises(TaxonomyNotFoundError):
            await service.get_name(999)

    @pytest.mark.asyncio
    async def test_set_translation_rtl_chain(self, service: TaxonomyService, electronics: dict[str, int]):
        for key, name in [("electronics", "الکترونیک"), ("phones", "گوشی"), ("smartphones", "هوشمند")]:
            response = await service.set_translation(
                {"translatable_id": electronics[key], "translation": {"fa": {"name": name}}}
            )
            assert response.ok

        assert await service.get_name(electronics["smartphones"], locale="fa") == "الکترونیک‹گوشی‹هوشمند"
        with use_locale("fa"):
            assert await service.get_name(electronics["phones"]) == "الکترونیک‹گوشی"
        assert await service.get_name(electronics["phones"]) == "Electronics›Phones"

    @pytest.mark.asyncio
    async def test_set_translation_validation(self, service: TaxonomyService, electronics: dict[str, int]):
        empty = await service.set_translation({"translatable_id": electronics["phones"], "translation": {}})

        assert empty.status == 422
        with pytest.raises(TaxonomyNotFoundError):
            await service.set_translation({"translatable_id": 999, "translation": {"fa": {"name": "x"}}})

    @pytest.mark.asyncio
    async def test_used_in(self, session: AsyncSession, service: TaxonomyService, electronics: dict[str, int]):
        phones = electronics["phones"]
        assert await service.has_used(phones) is False

        await mark_used(session, phones)
        response = await service.used_in(phones)

        assert await service.has_used(phones) is True
        assert response.ok
        assert [(r.taxonomizable_type, r.taxonomizable_id) for r in response.data] == [
            ("product", 100 + phones)
        ]

    @pytest.mark.asyncio
    async def test_used_in_missing_node(self, service: TaxonomyService):
        with pytest.raises(TaxonomyNotFoundError):
            await service.used_in(999)
