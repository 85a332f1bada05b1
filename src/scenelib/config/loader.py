"""Configuration file discovery."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

LOCAL_DIR_NAME = ".scenelib"
SETTINGS_FILENAME = "library.yaml"


@dataclass
class ConfigPaths:
    """Discovered configuration paths."""

    # Directories
    local_dir: Optional[Path] = None  # .scenelib/ in current directory
    user_dir: Optional[Path] = None  # ~/.config/scenelib/

    # Specific files (resolved from directories)
    env_file: Optional[Path] = None
    settings_file: Optional[Path] = None

    def __post_init__(self):
        """Resolve file paths from directories."""
        self.env_file = self._find_file(".env")
        self.settings_file = self._find_file(SETTINGS_FILENAME)

    def _find_file(self, filename: str) -> Optional[Path]:
        """Find a config file in priority order: local, then user."""
        for directory in (self.local_dir, self.user_dir):
            if directory:
                candidate = directory / filename
                if candidate.exists():
                    return candidate
        return None


def get_user_config_dir() -> Path:
    return Path.home() / ".config" / "scenelib"


def get_config_paths() -> ConfigPaths:
    """
    Discover configuration paths.

    Priority order (highest to lowest):
    1. .scenelib/ in current directory
    2. ~/.config/scenelib/

    Returns:
        ConfigPaths with discovered locations
    """
    local_dir = Path.cwd() / LOCAL_DIR_NAME
    local_dir = local_dir if local_dir.exists() else None

    user_dir = get_user_config_dir()
    user_dir = user_dir if user_dir.exists() else None

    return ConfigPaths(local_dir=local_dir, user_dir=user_dir)
