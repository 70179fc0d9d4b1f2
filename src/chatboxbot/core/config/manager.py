"""Locating, loading and caching the YAML configuration file."""

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_PATH_ENV = "CHATBOXBOT_CONFIG"
CONFIG_SEARCH_DIRS = (Path(), Path("/etc/chatboxbot"))
CONFIG_CACHE_TTL = 5  # seconds between mtime checks


class ConfigFileNotFoundError(FileNotFoundError):
    """Raised when no configuration file exists in any search location."""

    def __init__(self, filename: str) -> None:
        """Remember which file was looked for."""
        self.filename = filename
        super().__init__(filename)

    def __str__(self) -> str:
        """Name the file and where it was looked for."""
        places = ", ".join(str(directory) for directory in CONFIG_SEARCH_DIRS)
        return f"Config file '{self.filename}' not found (looked in {places}; set ${CONFIG_PATH_ENV} to override)"


class ConfigFileEmptyError(ValueError):
    """Raised when the configuration file does not hold a YAML mapping."""

    def __init__(self, path: Path) -> None:
        """Remember the offending path."""
        self.path = path
        super().__init__(path)

    def __str__(self) -> str:
        """Name the offending file."""
        return f"Config file is empty or not a mapping: {self.path}"


class ConfigValueError(ValueError):
    """Raised when a configuration value is missing or has the wrong shape."""


def find_config_file(filename: str) -> Path:
    """Return the config path from the environment or the first search hit."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        path = Path(override)
        if path.is_file():
            return path
        raise ConfigFileNotFoundError(override)
    for directory in CONFIG_SEARCH_DIRS:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    raise ConfigFileNotFoundError(filename)


@dataclass(slots=True)
class _ConfigCache:
    data: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None
    mtime: float = 0.0
    checked_at: float = 0.0

    def clear(self) -> None:
        self.data = {}
        self.path = None
        self.mtime = 0.0
        self.checked_at = 0.0

    def is_fresh(self, now: float) -> bool:
        return bool(self.data) and now - self.checked_at <= CONFIG_CACHE_TTL

    def reload_if_changed(self, path: Path, now: float) -> None:
        self.checked_at = now
        mtime = path.stat().st_mtime
        if self.data and path == self.path and mtime == self.mtime:
            return
        with path.open(encoding="utf-8") as file:
            loaded = yaml.safe_load(file)
        if not isinstance(loaded, dict):
            raise ConfigFileEmptyError(path)
        self.data = loaded
        self.path = path
        self.mtime = mtime


_CACHE = _ConfigCache()


def get_config(filename: str = "config.yaml") -> dict[str, Any]:
    """Return the parsed configuration.

    The file's modification time is checked at most every
    ``CONFIG_CACHE_TTL`` seconds; it is only re-parsed when it changed.
    """
    now = time.monotonic()
    if not _CACHE.is_fresh(now):
        _CACHE.reload_if_changed(find_config_file(filename), now)
    return _CACHE.data


def clear_config_cache() -> None:
    """Forget the cached configuration so the next call re-reads the file."""
    _CACHE.clear()


def get_section(config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a mapping-valued config section, or an empty mapping."""
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        message = f"Config section '{name}' must be a mapping of settings."
        raise ConfigValueError(message)
    return section
