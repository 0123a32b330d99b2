"""
Typed publish/subscribe for server-pushed record events.

Transports hand raw ``(service, event, data)`` pushes to the client, which
parses the record into the collection's model and emits a ``RecordEvent``
through the ``EventBus``. Handlers run one after another in registration
order, so a view sees events in the order the server sent them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Tuple, TypeVar, Union
import asyncio
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceEvent(Enum):
    """Record events a collection can push."""
    CREATED = "created"
    UPDATED = "updated"
    PATCHED = "patched"
    REMOVED = "removed"

    @classmethod
    def parse(cls, name: Union["ServiceEvent", str]) -> "ServiceEvent":
        """Convert an event name into a ServiceEvent.

        Raises:
            ValueError: If the name is not a known record event
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            raise ValueError(f"Unknown event '{name}'. Valid events: {valid}") from None


@dataclass(frozen=True)
class RecordEvent(Generic[T]):
    """A record change pushed by the backend."""
    service: str
    event: ServiceEvent
    record: T


EventHandler = Callable[[RecordEvent[Any]], Union[None, Awaitable[None]]]


class EventBus:
    """Dispatches record events to subscribed handlers."""

    def __init__(self):
        self._handlers: Dict[Tuple[str, ServiceEvent], List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, service: str, event: Union[ServiceEvent, str], handler: EventHandler) -> None:
        key = (service, ServiceEvent.parse(event))
        self._handlers.setdefault(key, []).append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)!s} to {service} {key[1].value}")

    def unsubscribe(self, service: str, event: Union[ServiceEvent, str], handler: EventHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        handlers = self._handlers.get((service, ServiceEvent.parse(event)))
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        return True

    def add_global_handler(self, handler: EventHandler) -> None:
        """Add a handler that receives every event of every service."""
        self._global_handlers.append(handler)

    def remove_global_handler(self, handler: EventHandler) -> None:
        try:
            self._global_handlers.remove(handler)
        except ValueError:
            pass

    def handler_count(self, service: str, event: Union[ServiceEvent, str]) -> int:
        return len(self._handlers.get((service, ServiceEvent.parse(event)), []))

    async def emit(self, event: RecordEvent[Any]) -> None:
        """Deliver an event to global handlers, then to its subscribers."""
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._global_handlers)
        handlers.extend(self._handlers.get((event.service, event.event), []))

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in {event.service} {event.event.value} handler: {e}")

    def clear(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
