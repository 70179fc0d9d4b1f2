"""Entrypoint module for wiring the connector, modules and admin server."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from chatboxbot.connector import ChatboxConnector, ForumSession
from chatboxbot.core.config import (
    get_config,
    get_section,
    load_connector_settings,
    load_forum_settings,
    load_module_specs,
)
from chatboxbot.markup import SmileyTable
from chatboxbot.modules import Module, load_modules
from chatboxbot.server import start_server

if TYPE_CHECKING:
    from aiohttp.web import AppRunner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _EntrypointState:
    connector: ChatboxConnector | None = None
    modules: list[Module] = field(default_factory=list)
    server_runner: "AppRunner | None" = None


_STATE = _EntrypointState()


def configure_logging(level_name: str | None) -> None:
    """Configure root logging once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, (level_name or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s: %(message)s",
    )


def build_connector(config: dict[str, Any]) -> ChatboxConnector:
    """Create the session and connector described by the configuration."""
    forum_settings = load_forum_settings(config)
    connector_settings = load_connector_settings(config)
    smileys = SmileyTable(custom_smileys=connector_settings.custom_smileys)
    session = ForumSession(forum_settings, smileys)
    return ChatboxConnector(session, connector_settings)


async def shutdown() -> None:
    """Best-effort shutdown of long-lived resources.

    This is safe to call multiple times.
    """
    connector = _STATE.connector
    if connector is not None:
        with contextlib.suppress(Exception):
            await connector.stop()

    for module in reversed(_STATE.modules):
        with contextlib.suppress(Exception):
            await module.stop()
    _STATE.modules = []

    if _STATE.server_runner is not None:
        with contextlib.suppress(Exception):
            await _STATE.server_runner.cleanup()
        _STATE.server_runner = None

    if connector is not None:
        with contextlib.suppress(Exception):
            await connector.session.aclose()
        _STATE.connector = None


async def main() -> None:
    """Load configuration, log in, and poll until cancelled."""
    config = get_config()
    configure_logging(config.get("log_level"))

    connector = build_connector(config)
    _STATE.connector = connector
    _STATE.modules = load_modules(connector, load_module_specs(config))

    if get_section(config, "server").get("enabled", True):
        _STATE.server_runner = await start_server(connector, config)

    try:
        await connector.start()
        for module in _STATE.modules:
            await module.start()
        await connector.wait_until_stopped()
    finally:
        # Ctrl+C typically cancels the main task; shield shutdown so the poll
        # loop and module tasks are joined before the event loop is closed.
        with contextlib.suppress(Exception):
            await asyncio.shield(shutdown())
