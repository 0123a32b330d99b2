"""
Hierarchical .env file loading for chatwire.

The first .env file found walking up from the working directory is loaded
into the process environment before settings are built, so CHATWIRE_*
variables can live next to a project instead of in the shell profile.
"""

from pathlib import Path
from typing import Dict, List, Optional
import logging

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)


class EnvFileLoader:
    """
    .env file loader with hierarchical search.

    Search order (stops at first file found):
    1. Current directory: .chatwire/.env -> .env
    2. Parent directories (up to git root or home): .chatwire/.env -> .env
    3. Home directory: ~/.chatwire/.env -> ~/.env
    """

    CONFIG_DIR_NAME = ".chatwire"
    ENV_FILE_NAME = ".env"

    def __init__(self, working_directory: Optional[Path] = None):
        self.working_directory = Path(working_directory or Path.cwd()).resolve()
        self._loaded_file: Optional[Path] = None
        self._loaded_vars: Dict[str, str] = {}

    def load_env_file(self) -> Optional[Path]:
        """Load environment variables from the first .env file found.

        Variables already present in the environment are never overridden.

        Returns:
            Path to loaded .env file or None if none found
        """
        env_file_path = self.find_env_file()
        if env_file_path is None:
            logger.debug("No .env file found in search path")
            return None

        load_dotenv(env_file_path, override=False)
        self._loaded_file = env_file_path
        self._loaded_vars = {
            key: value
            for key, value in dotenv_values(env_file_path).items()
            if value is not None
        }
        logger.info(f"Loaded environment variables from: {env_file_path}")
        return env_file_path

    def get_loaded_file(self) -> Optional[Path]:
        return self._loaded_file

    def get_loaded_vars(self) -> Dict[str, str]:
        return self._loaded_vars.copy()

    def find_env_file(self) -> Optional[Path]:
        """Find the first .env file in the search hierarchy."""
        for candidate in self.get_search_paths():
            if candidate.is_file():
                return candidate
        return None

    def get_search_paths(self) -> List[Path]:
        """Get list of all paths that would be searched for .env files.

        Returns:
            List of search paths in order
        """
        search_paths = []
        current_dir = self.working_directory

        while current_dir != current_dir.parent:
            search_paths.append(current_dir / self.CONFIG_DIR_NAME / self.ENV_FILE_NAME)
            search_paths.append(current_dir / self.ENV_FILE_NAME)

            if self._should_stop_search(current_dir):
                break
            current_dir = current_dir.parent

        home_dir = Path.home()
        for path in (home_dir / self.CONFIG_DIR_NAME / self.ENV_FILE_NAME, home_dir / self.ENV_FILE_NAME):
            if path not in search_paths:
                search_paths.append(path)

        return search_paths

    def _should_stop_search(self, directory: Path) -> bool:
        # Stop at Git repository root or home directory
        return (directory / ".git").exists() or directory == Path.home()


def load_env_with_hierarchy(working_directory: Optional[Path] = None) -> Optional[Path]:
    """Convenience function to load .env file with hierarchical search.

    Args:
        working_directory: Starting directory for search

    Returns:
        Path to loaded .env file or None
    """
    loader = EnvFileLoader(working_directory)
    return loader.load_env_file()
