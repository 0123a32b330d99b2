"""
Session state and access token storage.

A ``Session`` belongs to exactly one ``ChatClient``. Only the client's
authentication calls write to it; every outgoing call reads it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

from ..models import AuthResult, User

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Authentication states of a session."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class Session:
    """Authenticated identity attached to outgoing calls."""
    state: SessionState = SessionState.UNAUTHENTICATED
    access_token: Optional[str] = None
    user: Optional[User] = None
    authentication: Dict[str, Any] = field(default_factory=dict)
    established_at: Optional[datetime] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    def auth_headers(self) -> Dict[str, str]:
        """Headers carrying the access token, empty when signed out."""
        if not self.is_authenticated or not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def establish(self, result: AuthResult) -> None:
        self.state = SessionState.AUTHENTICATED
        self.access_token = result.access_token
        self.user = result.user
        self.authentication = dict(result.authentication)
        self.established_at = datetime.now(timezone.utc)
        logger.debug(f"Session established for {result.user.email if result.user else 'unknown user'}")

    def clear(self) -> None:
        if self.is_authenticated:
            logger.debug("Session cleared")
        self.state = SessionState.UNAUTHENTICATED
        self.access_token = None
        self.user = None
        self.authentication = {}
        self.established_at = None


class TokenStorage(ABC):
    """Where the access token is kept between calls and runs."""

    @abstractmethod
    def get(self) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, token: str) -> None:
        ...

    @abstractmethod
    def remove(self) -> None:
        ...


class MemoryStorage(TokenStorage):
    """Keeps the token for the lifetime of the process."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def remove(self) -> None:
        self._token = None


class FileStorage(TokenStorage):
    """Keeps the token in a file readable only by the current user."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(token)
        logger.debug(f"Stored access token in {self.path}")

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
