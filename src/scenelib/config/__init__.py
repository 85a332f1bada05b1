"""Configuration module for the scene library."""

from .loader import ConfigPaths, get_config_paths
from .settings import LibrarySettings, get_settings, load_settings, reset_settings

__all__ = [
    "ConfigPaths",
    "get_config_paths",
    "LibrarySettings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
