"""Configuration file handling, typed settings and constants."""

from chatboxbot.core.config.http import (
    BROWSER_HEADERS,
    HttpxClientOptions,
    build_forum_client,
)
from chatboxbot.core.config.manager import (
    CONFIG_PATH_ENV,
    ConfigFileEmptyError,
    ConfigFileNotFoundError,
    ConfigValueError,
    clear_config_cache,
    find_config_file,
    get_config,
    get_section,
)
from chatboxbot.core.config.settings import (
    ConnectorSettings,
    ForumSettings,
    ModuleSpec,
    load_connector_settings,
    load_forum_settings,
    load_module_specs,
)

__all__ = [
    "BROWSER_HEADERS",
    "CONFIG_PATH_ENV",
    "ConfigFileEmptyError",
    "ConfigFileNotFoundError",
    "ConfigValueError",
    "ConnectorSettings",
    "ForumSettings",
    "HttpxClientOptions",
    "ModuleSpec",
    "build_forum_client",
    "clear_config_cache",
    "find_config_file",
    "get_config",
    "get_section",
    "load_connector_settings",
    "load_forum_settings",
    "load_module_specs",
]
