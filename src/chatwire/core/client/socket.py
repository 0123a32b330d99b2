"""
WebSocket transport for the chatwire API client.

All service calls share one aiohttp WebSocket connection. Frames are JSON
envelopes:

    client -> server  {"type": "call", "id": 7, "method": "create",
                       "service": "messages", "data": {...}, ...}
    server -> client  {"type": "result", "id": 7, "data": {...}}
                      {"type": "error", "id": 7, "error": {...}}
                      {"type": "event", "service": "messages",
                       "event": "created", "data": {...}}

Replies are matched to calls by id. Events are queued and handed to the
event sink one at a time in arrival order, on a separate task so a handler
may itself make calls over the same connection.
"""

from typing import Any, Dict, Mapping, Optional
import asyncio
import itertools
import json
import logging

import aiohttp
from pydantic import BaseModel, Field, ValidationError

from chatwire import USER_AGENT
from .errors import ChatError, TimeoutError, TransportError, error_from_payload
from .transport import Transport, validate_call

logger = logging.getLogger(__name__)


class SocketCall(BaseModel):
    """Client to server call frame."""
    type: str = "call"
    id: int
    method: str
    service: str
    resource_id: Optional[Any] = None
    data: Optional[Any] = None
    query: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)


class SocketFrame(BaseModel):
    """Server to client frame: a reply or a pushed event."""
    type: str
    id: Optional[int] = None
    data: Optional[Any] = None
    error: Optional[Any] = None
    service: Optional[str] = None
    event: Optional[str] = None


class SocketTransport(Transport):
    """Multiplexes service calls and pushed events over one WebSocket."""

    supports_events = True

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        heartbeat: Optional[float] = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__()
        self.url = url
        self.timeout = timeout
        self.heartbeat = heartbeat
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._events: "asyncio.Queue[SocketFrame]" = asyncio.Queue()
        self._pending: Dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        async with self._connect_lock:
            if self.connected:
                return
            # A reader still draining a dropped socket must not fail calls on the new one
            await _cancel(self._reader)
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
                self._owns_session = True
            try:
                self._ws = await asyncio.wait_for(
                    self._session.ws_connect(self.url, heartbeat=self.heartbeat),
                    self.timeout,
                )
            except asyncio.TimeoutError as e:
                raise TimeoutError(
                    f"Connecting to {self.url} timed out",
                    timeout_seconds=self.timeout,
                    original_error=e,
                ) from e
            except (aiohttp.ClientError, OSError) as e:
                raise TransportError(f"Cannot connect to {self.url}: {e}", original_error=e) from e

            self._reader = asyncio.create_task(self._read_loop(self._ws))
            # One dispatcher serves every connection so events stay in order
            if self._dispatcher is None or self._dispatcher.done():
                self._dispatcher = asyncio.create_task(self._dispatch_events())
            logger.info(f"Connected to {self.url}")

    async def close(self) -> None:
        for task in (self._reader, self._dispatcher):
            await _cancel(task)
        self._reader = None
        self._dispatcher = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._fail_pending(TransportError("Connection closed"))

    async def request(
        self,
        method: str,
        path: str,
        id: Optional[Any] = None,
        data: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        if not (path == "authentication" and method == "remove"):
            validate_call(method, id)

        ws = await self._open()

        call_id = next(self._ids)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        frame = SocketCall(
            id=call_id,
            method=method,
            service=path,
            resource_id=id,
            data=data,
            query=dict(query or {}),
            headers=dict(headers or {}),
        )

        try:
            try:
                await ws.send_json(frame.model_dump(mode="json"))
            except (ConnectionResetError, RuntimeError, aiohttp.ClientError) as e:
                raise TransportError(f"Sending to {self.url} failed: {e}", original_error=e) from e

            try:
                return await asyncio.wait_for(future, self.timeout)
            except asyncio.TimeoutError as e:
                raise TimeoutError(
                    f"{path} {method} timed out",
                    timeout_seconds=self.timeout,
                    original_error=e,
                ) from e
        finally:
            self._pending.pop(call_id, None)

    async def _open(self) -> aiohttp.ClientWebSocketResponse:
        await self.connect()
        ws = self._ws
        if ws is None or ws.closed:
            raise TransportError(f"Connection to {self.url} closed")
        return ws

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"WebSocket error: {ws.exception()}")
                    break
        finally:
            logger.info(f"Disconnected from {self.url}")
            self._fail_pending(TransportError("Connection to the chat server was lost"))

    def _handle_frame(self, raw: str) -> None:
        try:
            frame = SocketFrame.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring malformed frame: {e}")
            return

        if frame.type == "event":
            if frame.service and frame.event:
                self._events.put_nowait(frame)
            else:
                logger.warning("Ignoring event frame without service or event name")
            return

        future = self._pending.get(frame.id) if frame.id is not None else None
        if future is None or future.done():
            logger.debug(f"No pending call for reply {frame.id}")
            return

        if frame.type == "result":
            future.set_result(frame.data)
        elif frame.type == "error":
            future.set_exception(error_from_payload(frame.error))
        else:
            future.set_exception(ChatError(f"Unexpected frame type '{frame.type}'"))

    async def _dispatch_events(self) -> None:
        while True:
            frame = await self._events.get()
            if self._event_sink is None:
                continue
            try:
                await self._event_sink(frame.service, frame.event, frame.data)
            except Exception as e:
                logger.error(f"Error delivering {frame.service} {frame.event}: {e}")

    def _fail_pending(self, error: ChatError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()


async def _cancel(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
