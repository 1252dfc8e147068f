"""Taxonomy endpoints.

Thin adapter over ``TaxonomyService``: request bodies go to the service as
plain dicts so that validation failures come back as the service's 422
``ServiceResponse``; ``TaxonomyError`` subclasses are mapped to their status
code by the application exception handler.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Query, Response

from taxonomy.api.deps import Taxonomies
from taxonomy.infra.logging import get_logger
from taxonomy.schemas.common import Page, ServiceResponse
from taxonomy.schemas.taxonomy import (
    BulkDeleteRequest,
    ChangeStatusRequest,
    ListParams,
    RelationView,
    TaxonomyView,
)

router = APIRouter()
logger = get_logger(__name__)

JsonBody = Annotated[dict[str, Any], Body()]


def _split(value: str | None) -> list[str]:
    """Comma separated query value as a list."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _respond(response: Response, result: ServiceResponse) -> ServiceResponse:
    response.status_code = result.status
    return result


@router.post(
    "/translations",
    response_model=ServiceResponse[TaxonomyView],
    summary="Set translations of a taxonomy node",
)
async def set_translation(body: JsonBody, service: Taxonomies, response: Response):
    return _respond(response, await service.set_translation(body))


@router.post(
    "/deletes",
    response_model=ServiceResponse[list[int]],
    summary="Delete several taxonomy nodes",
)
async def delete_many(request: BulkDeleteRequest, service: Taxonomies):
    return await service.deletes(request.ids)


@router.post(
    "/change-status",
    response_model=ServiceResponse[list[TaxonomyView]],
    summary="Set the status of several taxonomy nodes",
)
async def change_status(request: ChangeStatusRequest, service: Taxonomies, response: Response):
    return _respond(response, await service.change_status(request.ids, request.status))


@router.get(
    "/{type}",
    response_model=Page[TaxonomyView],
    summary="List taxonomy nodes of a type",
)
async def list_taxonomies(
    type: str,
    service: Taxonomies,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=500)] = None,
    sort: Annotated[str | None, Query(description="e.g. '-ordering,name'")] = None,
    name: Annotated[str | None, Query(description="Partial name match")] = None,
    status: bool | None = None,
    parent_id: int | None = None,
    with_: Annotated[str | None, Query(alias="with", description="e.g. 'paths,metas'")] = None,
) -> Page[TaxonomyView]:
    """Paginated listing in the request locale."""
    search: dict[str, Any] = {}
    if name:
        search["name"] = name
    if status is not None:
        search["status"] = status
    if parent_id is not None:
        search["parent_id"] = parent_id

    params = ListParams(search=search, sort=_split(sort))
    return await service.paginate(
        type,
        page_size=page_size,
        with_=_split(with_),
        page=page,
        params=params,
    )


@router.post(
    "",
    response_model=ServiceResponse[TaxonomyView],
    status_code=201,
    summary="Create a taxonomy node",
)
async def store_taxonomy(body: JsonBody, service: Taxonomies, response: Response):
    return _respond(response, await service.store(body))


@router.patch(
    "/{taxonomy_id}",
    response_model=ServiceResponse[TaxonomyView],
    summary="Update a taxonomy node",
)
async def update_taxonomy(
    taxonomy_id: int, body: JsonBody, service: Taxonomies, response: Response
):
    return _respond(response, await service.update(taxonomy_id, body))


@router.delete(
    "/{taxonomy_id}",
    response_model=ServiceResponse[TaxonomyView],
    summary="Delete a taxonomy node and its subtree",
)
async def delete_taxonomy(taxonomy_id: int, service: Taxonomies):
    return await service.delete(taxonomy_id)


@router.get("/{taxonomy_id}/name", summary="Display name of a taxonomy node")
async def taxonomy_name(
    taxonomy_id: int,
    service: Taxonomies,
    concat: bool = True,
) -> dict[str, Any]:
    return {"id": taxonomy_id, "name": await service.get_name(taxonomy_id, concat=concat)}


@router.get(
    "/{taxonomy_id}/used-in",
    response_model=ServiceResponse[list[RelationView]],
    summary="Entities using a taxonomy node",
)
async def taxonomy_used_in(taxonomy_id: int, service: Taxonomies):
    return await service.used_in(taxonomy_id)
