"""
API client for chatwire.

This package provides the client facade, REST and WebSocket transports,
session handling, typed record events and the error taxonomy.
"""

from .errors import (
    ChatError,
    AuthenticationError,
    AuthorizationError,
    NotAuthenticatedError,
    InvalidRequestError,
    NotFoundError,
    ServiceNotFoundError,
    ConflictError,
    ServerError,
    TransportError,
    TimeoutError,
    ConfigurationError,
    classify_error,
    error_from_payload,
    create_user_friendly_message,
)
from .events import (
    ServiceEvent,
    RecordEvent,
    EventBus,
)
from .session import (
    Session,
    SessionState,
    TokenStorage,
    MemoryStorage,
    FileStorage,
)
from .transport import (
    Transport,
    RestTransport,
    encode_query,
)
from .socket import SocketTransport
from .service import (
    ServiceDefinition,
    Collection,
)
from .facade import (
    ChatClient,
    AuthEvent,
    DEFAULT_SERVICES,
    create_chat_client,
    create_transport,
)

__all__ = [
    # Errors
    "ChatError",
    "AuthenticationError",
    "AuthorizationError",
    "NotAuthenticatedError",
    "InvalidRequestError",
    "NotFoundError",
    "ServiceNotFoundError",
    "ConflictError",
    "ServerError",
    "TransportError",
    "TimeoutError",
    "ConfigurationError",
    "classify_error",
    "error_from_payload",
    "create_user_friendly_message",
    # Events
    "ServiceEvent",
    "RecordEvent",
    "EventBus",
    # Session
    "Session",
    "SessionState",
    "TokenStorage",
    "MemoryStorage",
    "FileStorage",
    # Transports
    "Transport",
    "RestTransport",
    "SocketTransport",
    "encode_query",
    # Services
    "ServiceDefinition",
    "Collection",
    # Facade
    "ChatClient",
    "AuthEvent",
    "DEFAULT_SERVICES",
    "create_chat_client",
    "create_transport",
]
