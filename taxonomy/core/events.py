"""Domain events published by the taxonomy service after a commit.

Listeners are plain callables (sync or async) subscribed per event class.
They run after the transaction committed; a failing listener is logged and
the remaining listeners still run.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from taxonomy.infra.logging import get_logger
from taxonomy.models.taxonomy import Taxonomy

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaxonomyEvent:
    """Base class for taxonomy events."""

    taxonomy: Taxonomy


@dataclass(frozen=True)
class TaxonomyStoreEvent(TaxonomyEvent):
    """A node was created."""

    data: dict[str, Any] = field(default_factory=dict)
    hierarchical: bool = False


@dataclass(frozen=True)
class TaxonomyUpdateEvent(TaxonomyEvent):
    """A node was updated. ``change_parent_id`` is set when it moved."""

    data: dict[str, Any] = field(default_factory=dict)
    change_parent_id: bool = False


@dataclass(frozen=True)
class TaxonomyDeleteEvent(TaxonomyEvent):
    """A node (and its subtree) was deleted."""

    deleted_ids: tuple[int, ...] = ()


Listener = Callable[[TaxonomyEvent], Awaitable[None] | None]


class EventDispatcher:
    """Explicit observer list for taxonomy events."""

    def __init__(self) -> None:
        self._listeners: dict[type[TaxonomyEvent], list[Listener]] = {}

    def subscribe(self, event_type: type[TaxonomyEvent], listener: Listener) -> None:
        """Register ``listener`` for ``event_type`` and its subclasses."""
        self._listeners.setdefault(event_type, []).append(listener)
        logger.debug(
            "Event listener subscribed",
            event_type=event_type.__name__,
            listener=getattr(listener, "__name__", repr(listener)),
        )

    def unsubscribe(self, event_type: type[TaxonomyEvent], listener: Listener) -> None:
        """Remove a previously subscribed listener."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def listeners_for(self, event: TaxonomyEvent) -> list[Listener]:
        """Listeners registered for the event's class or any base class."""
        matched: list[Listener] = []
        for event_type in type(event).__mro__:
            matched.extend(self._listeners.get(event_type, []))
        return matched

    async def publish(self, event: TaxonomyEvent) -> None:
        """Deliver ``event`` to every matching listener."""
        for listener in self.listeners_for(event):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Event listener failed",
                    event_type=type(event).__name__,
                    taxonomy_id=event.taxonomy.id,
                    error=str(e),
                    exc_info=True,
                )


# Singleton dispatcher
_dispatcher: EventDispatcher | None = None


def get_event_dispatcher() -> EventDispatcher:
    """Get the singleton event dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher()
    return _dispatcher
