"""Tests for sessions and token storage."""

import os
import stat

from chatwire.core.client.session import FileStorage, MemoryStorage, Session, SessionState
from chatwire.core.models import AuthResult


def _auth_result(token: str = "tok") -> AuthResult:
    return AuthResult.model_validate({
        "accessToken": token,
        "authentication": {"strategy": "local"},
        "user": {"id": 1, "email": "alice@example.com"},
    })


class TestSession:

    def test_starts_unauthenticated(self) -> None:
        session = Session()
        assert session.state is SessionState.UNAUTHENTICATED
        assert not session.is_authenticated
        assert session.auth_headers() == {}

    def test_establish(self) -> None:
        session = Session()
        session.establish(_auth_result("abc"))

        assert session.is_authenticated
        assert session.user.email == "alice@example.com"
        assert session.auth_headers() == {"Authorization": "Bearer abc"}
        assert session.established_at is not None

    def test_clear(self) -> None:
        session = Session()
        session.establish(_auth_result())
        session.clear()

        assert not session.is_authenticated
        assert session.access_token is None
        assert session.user is None
        assert session.auth_headers() == {}


class TestMemoryStorage:

    def test_round_trip(self) -> None:
        storage = MemoryStorage()
        assert storage.get() is None
        storage.set("abc")
        assert storage.get() == "abc"
        storage.remove()
        assert storage.get() is None


class TestFileStorage:

    def test_missing_file(self, tmp_path) -> None:
        assert FileStorage(tmp_path / "jwt").get() is None

    def test_set_creates_private_file(self, tmp_path) -> None:
        path = tmp_path / "cache" / "jwt"
        storage = FileStorage(path)
        storage.set("abc")

        assert storage.get() == "abc"
        if os.name == "posix":
            assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_remove_is_idempotent(self, tmp_path) -> None:
        storage = FileStorage(tmp_path / "jwt")
        storage.set("abc")
        storage.remove()
        storage.remove()
        assert storage.get() is None
