"""Contracts for the capabilities a taxonomy node is composed with.

The service only talks to translations, metadata, media and URLs through
these protocols; the default SQL-backed implementations live in
``taxonomy.services``.
"""

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import ColumnElement, Select


@runtime_checkable
class TranslationContract(Protocol):
    """Per-locale key/value texts of one owner."""

    async def translate(self, locale: str, values: dict[str, str | None]) -> None:
        ...

    async def get(self, locale: str, key: str) -> str | None:
        ...

    async def all(self) -> dict[str, dict[str, str | None]]:
        ...

    async def forget(self) -> None:
        ...


@runtime_checkable
class MetaContract(Protocol):
    """Key/value metadata of one owner."""

    async def store(self, key: str, value: Any) -> None:
        ...

    async def get(self, key: str, default: Any = None) -> Any:
        ...

    async def all(self) -> dict[str, Any]:
        ...

    async def forget(self) -> None:
        ...


@runtime_checkable
class MediaContract(Protocol):
    """Media attachments of one owner, grouped by collection."""

    async def attach(self, media_id: int, collection: str, multiple: bool = False) -> None:
        ...

    async def all(self) -> dict[str, list[int]]:
        ...

    async def forget(self) -> None:
        ...


@runtime_checkable
class UrlContract(Protocol):
    """URL slug of one owner per collection."""

    async def dispatch(self, slug: str, collection: str) -> None:
        ...

    async def get(self, collection: str) -> str | None:
        ...

    async def forget(self) -> None:
        ...


@runtime_checkable
class MetadataFilterContract(Protocol):
    """Adds metadata predicates to a listing statement."""

    def apply(
        self,
        stmt: Select,
        owner_type: str,
        id_column: ColumnElement[int],
        filters: dict[str, Any],
    ) -> Select:
        ...
