"""Typed views over the raw configuration mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from chatboxbot.core.config.constants import (
    DEFAULT_MAX_COMBINING_MARKS,
    DEFAULT_MAX_PENALTY,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SERVER_ENCODING,
    DEFAULT_SMILEY_REFRESH_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)
from chatboxbot.core.config.manager import ConfigValueError, get_section


@dataclass(frozen=True, slots=True)
class ForumSettings:
    """Where the forum lives and how to log into it."""

    url: str
    username: str
    password: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    server_encoding: str = DEFAULT_SERVER_ENCODING


@dataclass(frozen=True, slots=True)
class ModuleSpec:
    """One subscriber module to load at startup."""

    module: str
    class_name: str
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ConnectorSettings:
    """Polling, filtering and smiley settings of the chatbox connector."""

    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_penalty: int = DEFAULT_MAX_PENALTY
    banned_nicknames: frozenset[str] = frozenset()
    custom_smileys: dict[str, str] = field(default_factory=dict)
    math_prefix: str | None = None
    smiley_refresh_seconds: float = DEFAULT_SMILEY_REFRESH_SECONDS
    max_combining_marks: int = DEFAULT_MAX_COMBINING_MARKS


def _as_list(value: object) -> list[str]:
    # a single nickname may be given without a list around it
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value]
    message = "Config 'connector.banned_nicknames' must be a name or a list of names."
    raise ConfigValueError(message)


def _require_str(section: dict[str, Any], key: str, section_name: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value:
        message = f"Config '{section_name}.{key}' must be a non-empty string."
        raise ConfigValueError(message)
    return value


def _positive_number(raw_value: object, default: float) -> float:
    """Return a positive float, falling back to ``default`` for junk values."""
    if raw_value is None or isinstance(raw_value, bool):
        return default
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return value


def load_forum_settings(config: dict[str, Any]) -> ForumSettings:
    """Build the forum settings from the ``forum`` config section."""
    section = get_section(config, "forum")
    return ForumSettings(
        url=_require_str(section, "url", "forum"),
        username=_require_str(section, "username", "forum"),
        password=_require_str(section, "password", "forum"),
        timeout_seconds=_positive_number(
            section.get("timeout_seconds"),
            DEFAULT_TIMEOUT_SECONDS,
        ),
        server_encoding=section.get("server_encoding") or DEFAULT_SERVER_ENCODING,
    )


def load_connector_settings(config: dict[str, Any]) -> ConnectorSettings:
    """Build the connector settings from the ``connector`` config section."""
    section = get_section(config, "connector")

    custom_smileys = section.get("custom_smileys") or {}
    if not isinstance(custom_smileys, dict):
        message = "Config 'connector.custom_smileys' must map symbols to URLs."
        raise ConfigValueError(message)

    return ConnectorSettings(
        poll_interval_seconds=_positive_number(
            section.get("poll_interval_seconds"),
            DEFAULT_POLL_INTERVAL_SECONDS,
        ),
        max_penalty=int(
            _positive_number(section.get("max_penalty"), DEFAULT_MAX_PENALTY),
        ),
        banned_nicknames=frozenset(
            nickname.lower()
            for nickname in _as_list(section.get("banned_nicknames"))
        ),
        custom_smileys={str(k): str(v) for k, v in custom_smileys.items()},
        math_prefix=section.get("math_prefix") or None,
        smiley_refresh_seconds=_positive_number(
            section.get("smiley_refresh_seconds"),
            DEFAULT_SMILEY_REFRESH_SECONDS,
        ),
        max_combining_marks=int(
            _positive_number(
                section.get("max_combining_marks"),
                DEFAULT_MAX_COMBINING_MARKS,
            ),
        ),
    )


def load_module_specs(config: dict[str, Any]) -> list[ModuleSpec]:
    """Return the subscriber modules listed under ``modules``."""
    raw_modules = config.get("modules") or []
    if not isinstance(raw_modules, list):
        message = "Config 'modules' must be a list."
        raise ConfigValueError(message)

    specs: list[ModuleSpec] = []
    for entry in raw_modules:
        if not isinstance(entry, dict):
            message = "Each entry of 'modules' must be a mapping."
            raise ConfigValueError(message)
        settings = entry.get("settings") or {}
        if not isinstance(settings, dict):
            message = f"Settings of module '{entry.get('module')}' must be a mapping."
            raise ConfigValueError(message)
        specs.append(
            ModuleSpec(
                module=_require_str(entry, "module", "modules[]"),
                class_name=_require_str(entry, "class", "modules[]"),
                settings=settings,
            ),
        )
    return specs
