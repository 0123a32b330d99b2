"""
Transport layer for the chatwire API client.

A transport carries one service call to the backend and returns the decoded
result. ``RestTransport`` maps calls onto plain HTTP requests; the
WebSocket transport in ``socket.py`` multiplexes them over one connection
and also receives pushed events.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote
import logging

import httpx

from chatwire import USER_AGENT
from .errors import (
    InvalidRequestError,
    TimeoutError,
    TransportError,
    error_from_payload,
)

logger = logging.getLogger(__name__)

# (service, event name, raw record) -> awaitable
EventSink = Callable[[str, str, Any], Awaitable[None]]

SERVICE_METHODS = ("find", "get", "create", "update", "patch", "remove")
METHODS_WITH_ID = frozenset({"get", "update", "patch", "remove"})
METHODS_WITH_DATA = frozenset({"create", "update", "patch"})


class Transport(ABC):
    """Carries service calls to the backend."""

    supports_events: bool = False

    def __init__(self):
        self._event_sink: Optional[EventSink] = None

    def set_event_sink(self, sink: Optional[EventSink]) -> None:
        """Set the callback receiving pushed events."""
        self._event_sink = sink

    async def connect(self) -> None:
        """Open the underlying connection, if any."""

    async def close(self) -> None:
        """Release the underlying connection, if any."""

    @property
    def connected(self) -> bool:
        return True

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        id: Optional[Any] = None,
        data: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Perform one service call and return the decoded result.

        Args:
            method: One of find, get, create, update, patch, remove
            path: Service path, e.g. ``messages`` or ``authentication``
            id: Record id for get/update/patch/remove
            data: JSON body for create/update/patch
            query: Filter and paging parameters
            headers: Extra headers (authorization)

        Raises:
            ChatError: Classified failure
        """


def validate_call(method: str, id: Optional[Any]) -> None:
    if method not in SERVICE_METHODS:
        raise InvalidRequestError(f"Unknown service method '{method}'", field="method")
    if method in METHODS_WITH_ID and id is None:
        raise InvalidRequestError(f"Method '{method}' requires an id", field="id")


def encode_query(query: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """
    Flatten a nested query into bracket-notation parameters.

    ``{"$sort": {"createdAt": -1}, "$limit": 25}`` becomes
    ``[("$sort[createdAt]", "-1"), ("$limit", "25")]``.
    """
    params: List[Tuple[str, str]] = []

    def _add(prefix: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, Mapping):
            for key, item in value.items():
                _add(f"{prefix}[{key}]", item)
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                _add(f"{prefix}[{index}]", item)
        elif isinstance(value, bool):
            params.append((prefix, "true" if value else "false"))
        else:
            params.append((prefix, str(value)))

    for key, value in (query or {}).items():
        _add(str(key), value)
    return params


class RestTransport(Transport):
    """Maps service calls onto REST requests with httpx."""

    HTTP_METHODS: Dict[str, str] = {
        "find": "GET",
        "get": "GET",
        "create": "POST",
        "update": "PUT",
        "patch": "PATCH",
        "remove": "DELETE",
    }

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            transport=self._http_transport,
        )
        logger.debug(f"REST transport ready for {self.base_url}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def request(
        self,
        method: str,
        path: str,
        id: Optional[Any] = None,
        data: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        if path == "authentication" and method == "remove" and id is None:
            # Logout is addressed to the collection itself
            url = "/authentication"
        else:
            validate_call(method, id)
            url = f"/{path.strip('/')}"
            if id is not None:
                url += f"/{quote(str(id), safe='')}"

        await self.connect()
        client = self._client
        if client is None:
            raise TransportError(f"REST transport for {self.base_url} is closed")

        logger.debug(f"{self.HTTP_METHODS[method]} {url}")
        try:
            response = await client.request(
                self.HTTP_METHODS[method],
                url,
                json=data if method in METHODS_WITH_DATA else None,
                params=encode_query(query),
                headers=dict(headers or {}),
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"Request to {url} timed out",
                timeout_seconds=self.timeout,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(f"Cannot reach {self.base_url}: {e}", original_error=e) from e

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            body: Any = None
        else:
            try:
                body = response.json()
            except ValueError:
                body = response.text

        if response.is_error:
            error = error_from_payload(body, response.status_code)
            logger.debug(f"{response.request.method} {response.request.url} failed: {error}")
            raise error
        return body
