"""
Remote collections exposed by the chat client.

A ``Collection`` is bound to one registered service name and parses every
result into the service's record model.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Generic, Mapping, Optional, Type, TypeVar, Union
import asyncio
import logging

from pydantic import BaseModel, ValidationError

from ..models import Page, RecordId
from .errors import InvalidRequestError, ServerError
from .events import EventHandler, RecordEvent, ServiceEvent

if TYPE_CHECKING:
    from .facade import ChatClient

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

ALL_METHODS: FrozenSet[str] = frozenset({"find", "get", "create", "update", "patch", "remove"})


@dataclass(frozen=True)
class ServiceDefinition:
    """How a remote collection is exposed to the client.

    ``authenticated`` lists the methods that need a session; calling them
    signed out fails locally without reaching the backend.
    """
    name: str
    model: Type[BaseModel]
    create_model: Optional[Type[BaseModel]] = None
    authenticated: FrozenSet[str] = field(default_factory=lambda: ALL_METHODS)

    def requires_auth(self, method: str) -> bool:
        return method in self.authenticated


class Collection(Generic[T]):
    """Handle for one remote collection."""

    def __init__(self, client: "ChatClient", definition: ServiceDefinition):
        self._client = client
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def model(self) -> Type[T]:
        return self.definition.model  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Collection({self.name!r}, model={self.model.__name__})"

    async def find(self, query: Optional[Mapping[str, Any]] = None) -> Page[T]:
        """Retrieve records matching an optional filter.

        The result always reflects the backend at call time; nothing is cached.
        """
        result = await self._client.call(self.definition, "find", query=query)
        try:
            return Page.from_result(result, self.model)
        except (ValueError, ValidationError) as e:
            raise ServerError(f"Unexpected {self.name} find result: {e}", status=502, original_error=e) from e

    async def get(self, id: RecordId, query: Optional[Mapping[str, Any]] = None) -> T:
        result = await self._client.call(self.definition, "get", id=id, query=query)
        return self._parse(result)

    async def create(self, payload: Union[BaseModel, Mapping[str, Any]]) -> T:
        """Create one record.

        Raises:
            InvalidRequestError: If the payload does not match the create model
            NotAuthenticatedError: If the collection needs a session and there is none
        """
        data = self._prepare(payload, self.definition.create_model)
        result = await self._client.call(self.definition, "create", data=data)
        return self._parse(result)

    async def update(self, id: RecordId, payload: Union[BaseModel, Mapping[str, Any]]) -> T:
        data = self._prepare(payload, None)
        result = await self._client.call(self.definition, "update", id=id, data=data)
        return self._parse(result)

    async def patch(self, id: RecordId, payload: Union[BaseModel, Mapping[str, Any]]) -> T:
        data = self._prepare(payload, None)
        result = await self._client.call(self.definition, "patch", id=id, data=data)
        return self._parse(result)

    async def remove(self, id: RecordId) -> T:
        result = await self._client.call(self.definition, "remove", id=id)
        return self._parse(result)

    def on(self, event: Union[ServiceEvent, str], handler: EventHandler) -> None:
        """Register a handler for pushed record events of this collection."""
        if not self._client.transport.supports_events:
            logger.warning(f"{type(self._client.transport).__name__} does not receive pushed events; "
                           f"'{self.name}' handlers will not be called")
        self._client.events.subscribe(self.name, event, handler)

    def off(self, event: Union[ServiceEvent, str], handler: EventHandler) -> bool:
        return self._client.events.unsubscribe(self.name, event, handler)

    async def once(self, event: Union[ServiceEvent, str], timeout: Optional[float] = None) -> RecordEvent[T]:
        """Wait for the next event of the given kind."""
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _resolve(record_event: RecordEvent[T]) -> None:
            if not future.done():
                future.set_result(record_event)

        self.on(event, _resolve)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self.off(event, _resolve)

    def _prepare(self, payload: Union[BaseModel, Mapping[str, Any]], model: Optional[Type[BaseModel]]) -> Dict[str, Any]:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
        if model is None:
            return dict(payload)
        try:
            validated = model.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())) or None
            raise InvalidRequestError(first.get("msg", str(e)), field=field_name, original_error=e) from e
        return validated.model_dump(by_alias=True, exclude_none=True, mode="json")

    def _parse(self, result: Any) -> T:
        try:
            return self.model.model_validate(result)
        except ValidationError as e:
            raise ServerError(f"Unexpected {self.name} record: {e}", status=502, original_error=e) from e
