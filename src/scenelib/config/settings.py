"""Settings for the scene library."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from scenelib.content.favorites import (
    DEFAULT_FAVORITES_KEY,
    DEFAULT_RECENT_KEY,
    DEFAULT_RECENT_LIMIT,
)
from scenelib.content.compose import DEFAULT_PAGE_SIZE
from scenelib.content.models import DEFAULT_PLACEHOLDER_IMAGE
from scenelib.content.tags import DEFAULT_TAGS_KEY

from .loader import ConfigPaths, get_config_paths

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass
class LibrarySettings:
    """Library settings loaded from environment and config files."""

    page_size: int = DEFAULT_PAGE_SIZE
    recent_limit: int = DEFAULT_RECENT_LIMIT
    placeholder_image: str = DEFAULT_PLACEHOLDER_IMAGE
    use_full_image: bool = False

    # Flag store scope and keys
    flag_scope: str = "world"
    favorites_key: str = DEFAULT_FAVORITES_KEY
    recent_key: str = DEFAULT_RECENT_KEY
    tags_key: str = DEFAULT_TAGS_KEY
    show_tags_key: str = "sceneLibraryShowTags"
    paginate_key: str = "sceneLibraryPaginate"

    config_paths: Optional[ConfigPaths] = None

    def flag_key(self, name: str) -> str:
        """Full flag key, prefixed with the flag scope."""
        return f"{self.flag_scope}.{name}" if self.flag_scope else name


def _positive_int(raw: Any, default: int) -> int:
    """Parse a positive integer, falling back to ``default`` on bad input."""
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Ignoring invalid integer setting {raw!r}")
        return default
    return value if value >= 1 else default


def _bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return default
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return default


def load_settings_file(settings_file: Optional[Path]) -> dict[str, Any]:
    """Load the library.yaml mapping (empty on missing or unreadable file)."""
    if not settings_file or not settings_file.exists():
        return {}

    try:
        with open(settings_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read {settings_file}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring {settings_file}: expected a mapping")
        return {}
    return data


def load_settings() -> LibrarySettings:
    """
    Load settings from all configuration sources.

    Priority (highest to lowest):
    1. Environment variables (including from .env files)
    2. library.yaml (local .scenelib/, then ~/.config/scenelib/)
    3. Defaults
    """
    paths = get_config_paths()

    if paths.env_file:
        load_dotenv(paths.env_file, override=True)

    data = load_settings_file(paths.settings_file)
    keys = data.get("keys") or {}
    defaults = LibrarySettings()

    page_size = _positive_int(data.get("page_size"), defaults.page_size)
    page_size = _positive_int(os.getenv("SCENELIB_PAGE_SIZE"), page_size)

    recent_limit = _positive_int(data.get("recent_limit"), defaults.recent_limit)
    recent_limit = _positive_int(os.getenv("SCENELIB_RECENT_LIMIT"), recent_limit)

    use_full_image = _bool(data.get("use_full_image"), defaults.use_full_image)
    use_full_image = _bool(os.getenv("SCENELIB_USE_FULL_IMAGE"), use_full_image)

    flag_scope = os.getenv("SCENELIB_FLAG_SCOPE", str(data.get("flag_scope", defaults.flag_scope)))

    return LibrarySettings(
        page_size=page_size,
        recent_limit=recent_limit,
        placeholder_image=str(data.get("placeholder_image") or defaults.placeholder_image),
        use_full_image=use_full_image,
        flag_scope=flag_scope.strip(),
        favorites_key=str(keys.get("favorites", defaults.favorites_key)),
        recent_key=str(keys.get("recent", defaults.recent_key)),
        tags_key=str(keys.get("tags", defaults.tags_key)),
        show_tags_key=str(keys.get("show_tags", defaults.show_tags_key)),
        paginate_key=str(keys.get("paginate", defaults.paginate_key)),
        config_paths=paths,
    )


# Global settings instance
_settings: Optional[LibrarySettings] = None


def get_settings() -> LibrarySettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset global settings (useful for testing or directory change)."""
    global _settings
    _settings = None
