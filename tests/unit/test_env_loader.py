"""Tests for hierarchical .env loading."""

import os
from pathlib import Path

import pytest

from chatwire.config.env_loader import EnvFileLoader, load_env_with_hierarchy


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A git project with a nested working directory and an isolated home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))

    root = tmp_path / "project"
    (root / ".git").mkdir(parents=True)
    (root / "src" / "app").mkdir(parents=True)
    for name in ("CHATWIRE_API_URL", "CHATWIRE_TRANSPORT"):
        # setenv first so whatever load_dotenv writes is undone afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return root


class TestEnvFileLoader:

    def test_finds_env_in_parent_directory(self, project: Path) -> None:
        (project / ".env").write_text("CHATWIRE_API_URL=http://parent/api\n")
        loader = EnvFileLoader(project / "src" / "app")

        assert loader.find_env_file() == (project / ".env").resolve()

    def test_config_dir_file_wins_over_plain_env(self, project: Path) -> None:
        (project / ".env").write_text("CHATWIRE_API_URL=http://plain/api\n")
        (project / ".chatwire").mkdir()
        (project / ".chatwire" / ".env").write_text("CHATWIRE_API_URL=http://config/api\n")

        loader = EnvFileLoader(project)
        assert loader.find_env_file() == (project / ".chatwire" / ".env").resolve()

    def test_search_stops_at_git_root(self, project: Path) -> None:
        loader = EnvFileLoader(project / "src")
        paths = loader.get_search_paths()

        assert project.resolve() / ".env" in paths
        assert project.resolve().parent / ".env" not in paths
        # Home is always searched last
        assert paths[-1] == Path.home() / ".env"

    def test_load_sets_environment(self, project: Path) -> None:
        (project / ".env").write_text("CHATWIRE_API_URL=http://loaded/api\n")
        loaded = load_env_with_hierarchy(project / "src")

        assert loaded == (project / ".env").resolve()
        assert os.environ["CHATWIRE_API_URL"] == "http://loaded/api"

    def test_existing_environment_is_not_overridden(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHATWIRE_TRANSPORT", "rest")
        (project / ".env").write_text("CHATWIRE_TRANSPORT=socket\n")

        loader = EnvFileLoader(project)
        loader.load_env_file()

        assert os.environ["CHATWIRE_TRANSPORT"] == "rest"
        assert loader.get_loaded_vars() == {"CHATWIRE_TRANSPORT": "socket"}
        assert loader.get_loaded_file() == (project / ".env").resolve()

    def test_no_env_file(self, project: Path) -> None:
        loader = EnvFileLoader(project)
        assert loader.load_env_file() is None
        assert loader.get_loaded_file() is None
