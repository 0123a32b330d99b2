"""
Structured error system for the chatwire API client.

Every failure surfaced by the facade is a ``ChatError`` subclass so views
can show a notification without knowing which transport was in use.
"""

from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Base exception for all chat client errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        name: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        # Backend error name such as "NotAuthenticated", else the class name
        self.name = name or self.__class__.__name__
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "name": self.name,
            "details": self.details,
            "type": self.__class__.__name__
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.status:
            parts.append(f"(Status: {self.status})")
        if self.code:
            parts.append(f"(Code: {self.code})")
        return " ".join(parts)


class AuthenticationError(ChatError):
    """Credentials or token were rejected."""

    def __init__(
        self,
        message: str = "Authentication failed",
        strategy: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("status", 401)
        super().__init__(message, code="AUTHENTICATION_ERROR", **kwargs)
        if strategy:
            self.details["strategy"] = strategy


class AuthorizationError(ChatError):
    """The session is not allowed to perform the call."""

    def __init__(
        self,
        message: str = "Authorization failed",
        resource: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("status", 403)
        kwargs.setdefault("code", "AUTHORIZATION_ERROR")
        super().__init__(message, **kwargs)
        if resource:
            self.details["resource"] = resource


class NotAuthenticatedError(AuthorizationError):
    """A guarded call was made without a valid session."""

    def __init__(
        self,
        message: str = "Not authenticated",
        **kwargs
    ):
        kwargs.setdefault("status", 401)
        super().__init__(message, code="NOT_AUTHENTICATED", **kwargs)


class InvalidRequestError(ChatError):
    """Malformed payload or query."""

    def __init__(
        self,
        message: str = "Invalid request",
        field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, status=400, code="INVALID_REQUEST", **kwargs)
        if field:
            self.details["field"] = field


class NotFoundError(ChatError):
    """A record, route or collection does not exist."""

    def __init__(
        self,
        message: str = "Not found",
        **kwargs
    ):
        kwargs.setdefault("code", "NOT_FOUND")
        super().__init__(message, status=404, **kwargs)


class ServiceNotFoundError(NotFoundError):
    """No collection is registered under the requested name."""

    def __init__(self, name: str, available: Optional[list] = None, **kwargs):
        super().__init__(f"Service '{name}' is not registered", code="SERVICE_NOT_FOUND", **kwargs)
        self.details["service"] = name
        if available:
            self.details["available_services"] = available


class ConflictError(ChatError):
    """The record conflicts with existing data (e.g. duplicate email)."""

    def __init__(
        self,
        message: str = "Conflict",
        **kwargs
    ):
        super().__init__(message, status=409, code="CONFLICT", **kwargs)


class ServerError(ChatError):
    """Error for server-side issues."""

    def __init__(
        self,
        message: str = "Server error",
        **kwargs
    ):
        super().__init__(message, code="SERVER_ERROR", **kwargs)
        if not kwargs.get("status"):
            self.status = 500


class TransportError(ChatError):
    """The connection to the backend failed or was lost."""

    def __init__(
        self,
        message: str = "Connection lost",
        **kwargs
    ):
        super().__init__(message, code="TRANSPORT_ERROR", **kwargs)


class TimeoutError(ChatError):
    """Error for request timeouts."""

    def __init__(
        self,
        message: str = "Request timeout",
        timeout_seconds: Optional[float] = None,
        **kwargs
    ):
        super().__init__(message, code="TIMEOUT_ERROR", **kwargs)
        if timeout_seconds:
            self.details["timeout_seconds"] = timeout_seconds


class ConfigurationError(ChatError):
    """Error related to client configuration."""

    def __init__(
        self,
        message: str = "Configuration error",
        config_field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="CONFIGURATION_ERROR", **kwargs)
        if config_field:
            self.details["config_field"] = config_field


# Backend error class names mapped onto the local taxonomy
_ERROR_NAMES = {
    "NotAuthenticated": NotAuthenticatedError,
    "Forbidden": AuthorizationError,
    "BadRequest": InvalidRequestError,
    "Unprocessable": InvalidRequestError,
    "NotFound": NotFoundError,
    "Conflict": ConflictError,
    "Timeout": TimeoutError,
    "GeneralError": ServerError,
    "Unavailable": ServerError,
}

_STATUS_CLASSES = {
    401: NotAuthenticatedError,
    403: AuthorizationError,
    400: InvalidRequestError,
    422: InvalidRequestError,
    404: NotFoundError,
    409: ConflictError,
    408: TimeoutError,
}


def error_from_payload(payload: Any, status: Optional[int] = None) -> ChatError:
    """
    Build a ChatError from a backend error body.

    The backend answers failures with ``{name, message, code, data, errors}``.
    Anything else is wrapped as-is.

    Args:
        payload: Decoded JSON error body (or raw text)
        status: HTTP status, when the body came over REST

    Returns:
        Classified ChatError instance
    """
    if not isinstance(payload, dict):
        message = str(payload) if payload else "Request failed"
        return _from_status(message, status, {})

    message = payload.get("message") or "Request failed"
    status = status or payload.get("code")
    details: Dict[str, Any] = {}
    if payload.get("data"):
        details["data"] = payload["data"]
    if payload.get("errors"):
        details["errors"] = payload["errors"]

    error_class = _ERROR_NAMES.get(payload.get("name", ""))
    if error_class is None:
        return _from_status(message, status, details)

    error = _build(error_class, message, status)
    error.name = payload["name"]
    error.details.update(details)
    return error


def _build(error_class: type, message: str, status: Optional[int]) -> ChatError:
    if error_class is ServerError:
        return ServerError(message, status=status if isinstance(status, int) and status >= 500 else 500)
    return error_class(message)


def _from_status(message: str, status: Optional[int], details: Dict[str, Any]) -> ChatError:
    if isinstance(status, int):
        error_class = _STATUS_CLASSES.get(status)
        if error_class is not None:
            error = _build(error_class, message, status)
        elif 500 <= status < 600:
            error = ServerError(message, status=status)
        else:
            error = ChatError(message, status=status)
    else:
        error = ChatError(message)
    error.details.update(details)
    return error


def classify_error(error: Exception) -> ChatError:
    """
    Classify a generic exception into a structured ChatError.

    Args:
        error: The original exception

    Returns:
        Classified ChatError instance
    """
    if isinstance(error, ChatError):
        return error

    error_message = str(error) or type(error).__name__
    error_lower = error_message.lower()

    status = getattr(error, 'status', None) or getattr(error, 'status_code', None)
    if isinstance(status, int):
        classified = _from_status(error_message, status, {})
        classified.original_error = error
        return classified

    if "timeout" in error_lower or "timed out" in error_lower:
        return TimeoutError(error_message, original_error=error)
    elif "connect" in error_lower or "network" in error_lower or "closed" in error_lower:
        return TransportError(error_message, original_error=error)
    elif "unauthorized" in error_lower or "not authenticated" in error_lower:
        return NotAuthenticatedError(error_message, original_error=error)

    return ChatError(error_message, original_error=error)


def create_user_friendly_message(error: ChatError) -> str:
    """
    Create a user-friendly error message.

    Args:
        error: The ChatError to convert

    Returns:
        User-friendly error message
    """
    if isinstance(error, NotAuthenticatedError):
        return "You need to sign in first."

    elif isinstance(error, AuthenticationError):
        return "Sign in failed. Please check your email and password."

    elif isinstance(error, AuthorizationError):
        return "You don't have permission to do that."

    elif isinstance(error, InvalidRequestError):
        field = error.details.get("field")
        if field:
            return f"Invalid value for '{field}': {error.message}"
        return f"Invalid request: {error.message}"

    elif isinstance(error, ServiceNotFoundError):
        return f"Unknown service '{error.details.get('service')}'."

    elif isinstance(error, NotFoundError):
        return "The requested item was not found."

    elif isinstance(error, ConflictError):
        return f"Already exists: {error.message}"

    elif isinstance(error, TransportError):
        return "Connection to the chat server failed. Please check that it is running."

    elif isinstance(error, TimeoutError):
        return "The request timed out. Please try again."

    elif isinstance(error, ServerError):
        return "A server error occurred. Please try again later."

    else:
        return f"An error occurred: {error.message}"
