"""
API client facade for chatwire.

``ChatClient`` is the single entry point for remote operations. It owns the
transport, the ``Session`` and the event bus, so views receive one object
and never touch transports or tokens directly.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
import asyncio
import logging

from pydantic import BaseModel, ValidationError

from ...config.settings import ChatwireSettings, get_settings
from ..models import AuthResult, LocalCredentials, Message, MessageCreate, User, UserCreate
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ChatError,
    InvalidRequestError,
    NotAuthenticatedError,
    ServerError,
    ServiceNotFoundError,
)
from .events import EventBus, RecordEvent, ServiceEvent
from .service import ALL_METHODS, Collection, ServiceDefinition
from .session import FileStorage, MemoryStorage, Session, TokenStorage
from .socket import SocketTransport
from .transport import RestTransport, Transport

logger = logging.getLogger(__name__)

AuthHandler = Callable[[Session], Union[None, Awaitable[None]]]


class AuthEvent(Enum):
    """Session transitions views can listen to."""
    LOGIN = "login"
    LOGOUT = "logout"


DEFAULT_SERVICES = (
    # Registration is open; everything else about users needs a session
    ServiceDefinition("users", User, create_model=UserCreate, authenticated=ALL_METHODS - {"create"}),
    ServiceDefinition("messages", Message, create_model=MessageCreate),
)


class ChatClient:
    """Facade over a transport exposing named collections and a session."""

    def __init__(
        self,
        transport: Transport,
        *,
        storage: Optional[TokenStorage] = None,
        session: Optional[Session] = None,
        authentication_path: str = "authentication",
    ):
        self.transport = transport
        self.storage = storage or MemoryStorage()
        self.session = session or Session()
        self.events = EventBus()
        self.authentication_path = authentication_path
        self._services: Dict[str, ServiceDefinition] = {}
        self._collections: Dict[str, Collection] = {}
        self._auth_handlers: Dict[AuthEvent, List[AuthHandler]] = {event: [] for event in AuthEvent}
        self.transport.set_event_sink(self._on_push)

    async def __aenter__(self) -> "ChatClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        await self.transport.connect()

    async def close(self) -> None:
        await self.transport.close()

    # Services

    def register_service(self, definition: ServiceDefinition) -> Collection:
        """Register a remote collection and return its handle."""
        if definition.name in self._services:
            logger.warning(f"Service '{definition.name}' already registered; replacing it")
        self._services[definition.name] = definition
        collection: Collection = Collection(self, definition)
        self._collections[definition.name] = collection
        logger.debug(f"Registered service: {definition.name}")
        return collection

    def use(
        self,
        name: str,
        model: type,
        *,
        create_model: Optional[type] = None,
        authenticated: frozenset = ALL_METHODS,
    ) -> Collection:
        return self.register_service(
            ServiceDefinition(name, model, create_model=create_model, authenticated=frozenset(authenticated))
        )

    @property
    def service_names(self) -> List[str]:
        return sorted(self._services)

    def service(self, name: str) -> Collection:
        """Get the handle of a registered collection.

        Raises:
            ServiceNotFoundError: If no collection is registered under the name
        """
        try:
            return self._collections[name]
        except KeyError:
            raise ServiceNotFoundError(name, available=self.service_names) from None

    async def call(
        self,
        definition: ServiceDefinition,
        method: str,
        *,
        id: Optional[Any] = None,
        data: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Perform a service call with the current session attached."""
        if definition.requires_auth(method) and not self.session.is_authenticated:
            raise NotAuthenticatedError(
                f"{definition.name}.{method} requires a signed-in user",
                resource=definition.name,
            )

        try:
            return await self.transport.request(
                method,
                definition.name,
                id=id,
                data=data,
                query=query,
                headers=self.session.auth_headers(),
            )
        except NotAuthenticatedError:
            if self.session.is_authenticated:
                # Token expired or was revoked server-side
                logger.info("Access token rejected by the server; signing out")
                await self._invalidate()
            raise

    # Authentication

    async def authenticate(
        self,
        strategy: Optional[str] = None,
        credentials: Optional[Union[Mapping[str, Any], BaseModel]] = None,
    ) -> Session:
        """
        Establish a session with the given strategy.

        On failure the existing session and stored token are left untouched.

        Args:
            strategy: Authentication strategy, ``local`` by default
            credentials: Strategy payload, e.g. email and password

        Returns:
            The client's session, now authenticated

        Raises:
            AuthenticationError: If the backend rejects the credentials
            InvalidRequestError: If local credentials are incomplete
        """
        strategy = strategy or "local"
        if isinstance(credentials, BaseModel):
            credentials = credentials.model_dump(by_alias=True, exclude_none=True)
        payload: Dict[str, Any] = dict(credentials or {})

        if strategy == "local":
            try:
                payload.update(LocalCredentials.model_validate(payload).to_wire())
            except ValidationError as e:
                first = e.errors()[0]
                field_name = ".".join(str(part) for part in first.get("loc", ())) or None
                raise InvalidRequestError(f"Missing credentials: {first.get('msg')}", field=field_name) from e
        payload["strategy"] = strategy

        try:
            raw = await self.transport.request("create", self.authentication_path, data=payload)
        except AuthorizationError as e:
            # NotAuthenticated from the backend means the credentials were wrong
            raise AuthenticationError(e.message, strategy=strategy, original_error=e) from e

        try:
            result = AuthResult.model_validate(raw)
        except ValidationError as e:
            raise ServerError("Malformed authentication response", status=502, original_error=e) from e

        self.session.establish(result)
        self.storage.set(result.access_token)
        logger.info(f"Authenticated as {result.user.email if result.user else 'unknown user'} ({strategy})")
        await self._emit_auth(AuthEvent.LOGIN)
        return self.session

    async def reauthenticate(self, force: bool = False) -> Session:
        """Restore a session from the stored access token.

        Raises:
            NotAuthenticatedError: If no token is stored
            AuthenticationError: If the stored token is rejected (it is removed)
        """
        if self.session.is_authenticated and not force:
            return self.session

        token = self.storage.get()
        if not token:
            raise NotAuthenticatedError("No stored access token")

        try:
            return await self.authenticate("jwt", {"accessToken": token})
        except AuthenticationError:
            logger.info("Stored access token rejected; removing it")
            await self._invalidate()
            raise

    async def logout(self) -> Optional[AuthResult]:
        """Sign out, clearing the session and the stored token.

        The server-side logout is best-effort; the local session is cleared
        even if it fails.
        """
        result: Optional[AuthResult] = None
        if self.session.is_authenticated:
            try:
                raw = await self.transport.request(
                    "remove",
                    self.authentication_path,
                    headers=self.session.auth_headers(),
                )
                if raw:
                    result = AuthResult.model_validate(raw)
            except (ChatError, ValidationError) as e:
                logger.warning(f"Server-side logout failed: {e}")

        await self._invalidate()
        return result

    def on_auth(self, event: Union[AuthEvent, str], handler: AuthHandler) -> None:
        self._auth_handlers[AuthEvent(event)].append(handler)

    def off_auth(self, event: Union[AuthEvent, str], handler: AuthHandler) -> None:
        try:
            self._auth_handlers[AuthEvent(event)].remove(handler)
        except ValueError:
            pass

    async def _invalidate(self) -> None:
        was_authenticated = self.session.is_authenticated
        self.session.clear()
        self.storage.remove()
        if was_authenticated:
            await self._emit_auth(AuthEvent.LOGOUT)

    async def _emit_auth(self, event: AuthEvent) -> None:
        for handler in list(self._auth_handlers[event]):
            try:
                result = handler(self.session)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Error in {event.value} handler: {e}")

    # Pushed events

    async def _on_push(self, service: str, event: str, data: Any) -> None:
        definition = self._services.get(service)
        if definition is None:
            logger.debug(f"Ignoring '{event}' for unregistered service '{service}'")
            return
        try:
            kind = ServiceEvent.parse(event)
        except ValueError:
            logger.debug(f"Ignoring unknown event '{event}' for '{service}'")
            return
        try:
            record = definition.model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed {service} {event} record: {e}")
            return
        await self.events.emit(RecordEvent(service=service, event=kind, record=record))


def create_transport(settings: ChatwireSettings) -> Transport:
    if settings.transport == "socket":
        return SocketTransport(settings.socket_url, timeout=settings.timeout)
    return RestTransport(settings.api_url, timeout=settings.timeout)


def create_chat_client(
    settings: Optional[ChatwireSettings] = None,
    *,
    transport: Optional[Transport] = None,
    storage: Optional[TokenStorage] = None,
) -> ChatClient:
    """
    Create a chat client with the ``users`` and ``messages`` collections.

    Args:
        settings: Settings to build the transport and token storage from
        transport: Use this transport instead of one built from settings
        storage: Use this token storage instead of one built from settings

    Returns:
        Configured ChatClient (not yet connected)
    """
    settings = settings or get_settings()
    if transport is None:
        transport = create_transport(settings)
    if storage is None:
        storage = FileStorage(settings.token_file) if settings.persist_token else MemoryStorage()

    client = ChatClient(transport, storage=storage)
    for definition in DEFAULT_SERVICES:
        client.register_service(definition)
    return client
