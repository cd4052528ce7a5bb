"""User-level directories.

The global config lives under the user's config directory; project config
and the state file live in the working directory and are located by
`release_ai.core.config`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

__all__ = [
    "APP_NAME",
    "clear_caches",
    "home",
    "user_config_dir",
]

APP_NAME = "release-ai"


def _is_windows() -> bool:
    return os.name == "nt"


@lru_cache(maxsize=1)
def home() -> Path:
    """Get user's home directory.

    Uses USERPROFILE on Windows, HOME on Unix, then Path.home().
    """
    if _is_windows():
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    else:
        home_env = os.environ.get("HOME")
        if home_env:
            return Path(home_env)

    return Path.home()


@lru_cache(maxsize=1)
def user_config_dir() -> Path:
    """Get the directory holding the global `config.json`.

    Location: ~/.config/release-ai/ (Linux/macOS, honours XDG_CONFIG_HOME)
    or %APPDATA%/release-ai/ (Windows).
    """
    if _is_windows():
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return home() / "AppData" / "Roaming" / APP_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return home() / ".config" / APP_NAME


def clear_caches() -> None:
    """Clear cached paths (tests change HOME between cases)."""
    home.cache_clear()
    user_config_dir.cache_clear()
