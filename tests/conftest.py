"""
Shared fixtures: an in-memory chat backend speaking the transport interface.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional
import itertools

import pytest

from chatwire.config.settings import ChatwireSettings
from chatwire.core.client import (
    ChatClient,
    ConflictError,
    InvalidRequestError,
    MemoryStorage,
    NotAuthenticatedError,
    NotFoundError,
    Transport,
    create_chat_client,
)
from chatwire.routing.routes import create_router
from chatwire.views import Notifier, ViewContext

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeTransport(Transport):
    """One client's connection to a ``FakeBackend``."""

    supports_events = True

    def __init__(self, backend: "FakeBackend"):
        super().__init__()
        self.backend = backend
        self.is_connected = False

    async def connect(self) -> None:
        self.is_connected = True

    async def close(self) -> None:
        self.is_connected = False

    @property
    def connected(self) -> bool:
        return self.is_connected

    async def deliver(self, service: str, event: str, data: Any) -> None:
        if self._event_sink is not None:
            await self._event_sink(service, event, data)

    async def request(self, method, path, id=None, data=None, query=None, headers=None) -> Any:
        return await self.backend.request(method, path, id=id, data=data, query=query, headers=headers)


class FakeBackend:
    """In-memory users/messages backend with token authentication.

    Every transport handed out by ``transport()`` receives pushed events.
    """

    def __init__(self):
        self.users: Dict[int, Dict[str, Any]] = {}
        self.messages: Dict[int, Dict[str, Any]] = {}
        self.tokens: Dict[str, int] = {}
        self.calls: List[Dict[str, Any]] = []
        self.transports: List[FakeTransport] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count()

    def transport(self) -> FakeTransport:
        transport = FakeTransport(self)
        self.transports.append(transport)
        return transport

    # Seeding helpers

    def _now(self) -> str:
        return (EPOCH + timedelta(minutes=next(self._clock))).isoformat()

    def add_user(self, email: str, password: str) -> Dict[str, Any]:
        user_id = next(self._ids)
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "password": password,
            "createdAt": self._now(),
        }
        return self._public_user(user_id)

    def add_message(self, user_id: int, text: str) -> Dict[str, Any]:
        message_id = next(self._ids)
        self.messages[message_id] = {
            "id": message_id,
            "text": text,
            "userId": user_id,
            "createdAt": self._now(),
        }
        return self._public_message(message_id)

    def revoke_tokens(self) -> None:
        self.tokens.clear()

    async def push(self, service: str, event: str, data: Any) -> None:
        for transport in list(self.transports):
            await transport.deliver(service, event, data)

    def calls_to(self, path: str, method: Optional[str] = None) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["path"] == path and (method is None or c["method"] == method)]

    # Service calls

    async def request(
        self,
        method: str,
        path: str,
        id: Optional[Any] = None,
        data: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        self.calls.append({
            "method": method,
            "path": path,
            "id": id,
            "data": data,
            "query": dict(query or {}),
            "headers": dict(headers or {}),
        })
        if path == "authentication":
            return self._authentication(method, data or {}, headers or {})

        user_id = self._current_user(headers or {})
        if user_id is None and not (path == "users" and method == "create"):
            raise NotAuthenticatedError("Not authenticated")

        if path == "users":
            return await self._users(method, id, data)
        if path == "messages":
            return await self._messages(method, id, data, query or {}, user_id)
        raise NotFoundError(f"Page not found: {path}")

    def _current_user(self, headers: Mapping[str, str]) -> Optional[int]:
        authorization = headers.get("Authorization", "")
        if not authorization.startswith("Bearer "):
            return None
        return self.tokens.get(authorization[len("Bearer "):])

    def _issue_token(self, user_id: int) -> Dict[str, Any]:
        token = f"token-{user_id}-{len(self.tokens) + 1}"
        self.tokens[token] = user_id
        return {
            "accessToken": token,
            "authentication": {"strategy": "jwt"},
            "user": self._public_user(user_id),
        }

    def _authentication(self, method: str, data: Mapping[str, Any], headers: Mapping[str, str]) -> Any:
        if method == "remove":
            user_id = self._current_user(headers)
            if user_id is None:
                raise NotAuthenticatedError("Not authenticated")
            token = headers["Authorization"][len("Bearer "):]
            del self.tokens[token]
            return {"accessToken": token, "authentication": {}, "user": self._public_user(user_id)}

        strategy = data.get("strategy")
        if strategy == "local":
            for user in self.users.values():
                if user["email"] == data.get("email") and user["password"] == data.get("password"):
                    return self._issue_token(user["id"])
            raise NotAuthenticatedError("Invalid login")
        if strategy == "jwt":
            user_id = self.tokens.get(data.get("accessToken", ""))
            if user_id is None:
                raise NotAuthenticatedError("Invalid token")
            return self._issue_token(user_id)
        raise InvalidRequestError(f"Unknown strategy '{strategy}'")

    async def _users(self, method: str, id: Optional[Any], data: Optional[Any]) -> Any:
        if method == "create":
            if any(u["email"] == data["email"] for u in self.users.values()):
                raise ConflictError(f"{data['email']} is already registered")
            user = self.add_user(data["email"], data["password"])
            await self.push("users", "created", user)
            return user
        if method == "get":
            if id not in self.users:
                raise NotFoundError(f"No record found for id '{id}'")
            return self._public_user(id)
        if method == "find":
            records = [self._public_user(uid) for uid in self.users]
            return {"total": len(records), "limit": 10, "skip": 0, "data": records[:10]}
        raise InvalidRequestError(f"Method '{method}' not allowed on users")

    async def _messages(
        self,
        method: str,
        id: Optional[Any],
        data: Optional[Any],
        query: Mapping[str, Any],
        user_id: Optional[int],
    ) -> Any:
        if method == "create":
            text = (data or {}).get("text", "").strip()
            if not text:
                raise InvalidRequestError("Message text is required")
            message = self.add_message(user_id, text)
            await self.push("messages", "created", message)
            return message
        if method == "find":
            records = sorted(self.messages.values(), key=lambda m: m["createdAt"])
            if query.get("$sort", {}).get("createdAt") == -1:
                records.reverse()
            limit = int(query.get("$limit", 10))
            return {
                "total": len(records),
                "limit": limit,
                "skip": 0,
                "data": [self._public_message(m["id"]) for m in records[:limit]],
            }
        if method == "remove":
            if id not in self.messages:
                raise NotFoundError(f"No record found for id '{id}'")
            removed = self._public_message(id)
            del self.messages[id]
            await self.push("messages", "removed", removed)
            return removed
        raise InvalidRequestError(f"Method '{method}' not allowed on messages")

    def _public_user(self, user_id: int) -> Dict[str, Any]:
        return {k: v for k, v in self.users[user_id].items() if k != "password"}

    def _public_message(self, message_id: int) -> Dict[str, Any]:
        message = dict(self.messages[message_id])
        if message["userId"] in self.users:
            message["user"] = self._public_user(message["userId"])
        return message


@pytest.fixture
def settings(tmp_path) -> ChatwireSettings:
    return ChatwireSettings(
        transport="rest",
        persist_token=False,
        config_dir=tmp_path / "config",
        cache_dir=tmp_path / "cache",
        message_page_size=5,
    )


@pytest.fixture
def backend() -> FakeBackend:
    backend = FakeBackend()
    backend.add_user("alice@example.com", "secret")
    return backend


@pytest.fixture
def client(settings, backend) -> ChatClient:
    return create_chat_client(settings, transport=backend.transport(), storage=MemoryStorage())


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def context(client, settings, notifier) -> ViewContext:
    router = create_router(lambda: client.session.is_authenticated)
    return ViewContext(client=client, router=router, notifier=notifier, settings=settings)
