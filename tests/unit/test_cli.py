"""
Tests for the Typer command line, with the client wired to the in-memory backend.
"""

import pytest
from typer.testing import CliRunner

from chatwire import VERSION
from chatwire.cli import app as cli_app
from chatwire.core.client import MemoryStorage, create_chat_client

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CHATWIRE_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("CHATWIRE_TRANSPORT", "rest")
    monkeypatch.setattr(cli_app, "configure_logging", lambda level: None)


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, backend):
    """Point the CLI at the fake backend; runs share one token storage."""
    storage = MemoryStorage()

    def factory(settings):
        return create_chat_client(settings, transport=backend.transport(), storage=storage)

    monkeypatch.setattr(cli_app, "create_chat_client", factory)
    return storage


class TestCli:

    def test_version(self) -> None:
        result = runner.invoke(cli_app.app, ["--version"])
        assert result.exit_code == 0
        assert VERSION in result.stdout

    def test_routes(self) -> None:
        result = runner.invoke(cli_app.app, ["routes"])
        assert result.exit_code == 0
        assert "/chat" in result.stdout
        assert "NotFoundView" in result.stdout

    def test_config(self) -> None:
        result = runner.invoke(cli_app.app, ["--transport", "socket", "config"])
        assert result.exit_code == 0
        assert "socket_url" in result.stdout
        assert "socket" in result.stdout

    def test_invalid_option(self) -> None:
        result = runner.invoke(cli_app.app, ["--transport", "smoke-signals", "config"])
        assert result.exit_code == 1
        assert "Configuration error" in result.stdout

    def test_send_requires_sign_in(self, wired) -> None:
        result = runner.invoke(cli_app.app, ["send", "hello"])
        assert result.exit_code == 1
        assert "You need to sign in first." in result.stdout

    def test_signin_then_send_and_list(self, wired, backend) -> None:
        result = runner.invoke(cli_app.app, ["signin", "--email", "alice@example.com", "--password", "secret"])
        assert result.exit_code == 0, result.stdout
        assert "Signed in as alice@example.com" in result.stdout
        assert wired.get() is not None

        result = runner.invoke(cli_app.app, ["send", "hello from the cli"])
        assert result.exit_code == 0, result.stdout
        assert [m["text"] for m in backend.messages.values()] == ["hello from the cli"]

        result = runner.invoke(cli_app.app, ["messages", "--limit", "5"])
        assert result.exit_code == 0
        assert "hello from the cli" in result.stdout
        assert "1 of 1 messages" in result.stdout

        result = runner.invoke(cli_app.app, ["whoami"])
        assert "alice@example.com" in result.stdout

    def test_bad_password(self, wired) -> None:
        result = runner.invoke(cli_app.app, ["signin", "--email", "alice@example.com", "--password", "nope"])
        assert result.exit_code == 1
        assert "Sign in failed" in result.stdout
        assert wired.get() is None

    def test_register_and_list_users(self, wired) -> None:
        result = runner.invoke(
            cli_app.app,
            ["register", "--email", "bob@example.com", "--password", "pw"],
        )
        assert result.exit_code == 0, result.stdout

        result = runner.invoke(cli_app.app, ["users"])
        assert result.exit_code == 0
        assert "bob@example.com" in result.stdout
        assert "alice@example.com" in result.stdout

    def test_signout(self, wired) -> None:
        runner.invoke(cli_app.app, ["signin", "--email", "alice@example.com", "--password", "secret"])
        result = runner.invoke(cli_app.app, ["signout"])
        assert result.exit_code == 0
        assert wired.get() is None

        result = runner.invoke(cli_app.app, ["whoami"])
        assert result.exit_code == 1
        assert "Not signed in" in result.stdout
