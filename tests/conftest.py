"""Shared fixtures: in-memory database, type registry, service and API client."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taxonomy.core.events import EventDispatcher
from taxonomy.core.locale import set_locale
from taxonomy.core.type_registry import TaxonomyTypeRegistry, set_type_registry
from taxonomy.infra.database import create_tables
from taxonomy.models import TaxonomyRelation
from taxonomy.services.taxonomy_service import TaxonomyService

TYPES_YAML = """
types:
  category:
    label: Categories
    hierarchical: true
    url: true
    base_media: true
    media:
      - collection: gallery
        multiple: true
      - collection: banner
        multiple: false
    metadata:
      - key: color
      - key: icon
  tag:
    label: Tags
    hierarchical: false
    metadata:
      - key: color
"""


@pytest.fixture
def registry() -> TaxonomyTypeRegistry:
    """Type registry with a hierarchical ``category`` and a flat ``tag`` type."""
    registry = TaxonomyTypeRegistry.from_yaml(TYPES_YAML)
    set_type_registry(registry)
    yield registry
    set_type_registry(None)


@pytest.fixture(autouse=True)
def default_locale():
    set_locale("en")
    yield
    set_locale(None)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def events() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def service(
    session: AsyncSession, registry: TaxonomyTypeRegistry, events: EventDispatcher
) -> TaxonomyService:
    return TaxonomyService(session, registry=registry, events=events)


@pytest_asyncio.fixture
async def client(
    session: AsyncSession, registry: TaxonomyTypeRegistry
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, with the request session bound to the test database."""
    from taxonomy.api.deps import get_db
    from taxonomy.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def make_node(
    service: TaxonomyService,
    name: str,
    parent_id: int | None = None,
    type: str = "category",
    **extra,
) -> int:
    """Store a node with an English name and return its id."""
    response = await service.store(
        {"type": type, "parent_id": parent_id, "translation": {"en": {"name": name}}, **extra}
    )
    assert response.ok, response.errors
    return response.data.id


async def mark_used(session: AsyncSession, taxonomy_id: int) -> None:
    """Record that some entity uses ``taxonomy_id``."""
    session.add(
        TaxonomyRelation(
            taxonomy_id=taxonomy_id,
            taxonomizable_type="product",
            taxonomizable_id=100 + taxonomy_id,
        )
    )
    await session.commit()


@pytest_asyncio.fixture
async def electronics(service: TaxonomyService) -> dict[str, int]:
    """Electronics › Phones › Smartphones."""
    electronics = await make_node(service, "Electronics")
    phones = await make_node(service, "Phones", electronics)
    smartphones = await make_node(service, "Smartphones", phones)
    return {"electronics": electronics, "phones": phones, "smartphones": smartphones}
