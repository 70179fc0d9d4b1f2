"""Subscriber modules and their loader."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from chatboxbot.core.config import ConfigValueError

if TYPE_CHECKING:
    from chatboxbot.connector import ChatboxConnector, ChatMessage
    from chatboxbot.core.config import ModuleSpec

logger = logging.getLogger(__name__)

MODULE_PACKAGE = "chatboxbot.modules"


class Module:
    """A subscriber reacting to chatbox messages.

    Subclasses override the ``message_*`` hooks they care about. Modules that
    need their own timing start a task in ``start()`` and end it in ``stop()``;
    such tasks post through the connector like everyone else.
    """

    def __init__(self, connector: ChatboxConnector, settings: dict[str, Any] | None = None) -> None:
        """Store the connector and subscribe to its messages."""
        self.connector = connector
        self.settings = settings or {}
        connector.subscribe(self._on_message)

    async def _on_message(
        self,
        message: ChatMessage,
        edited: bool,  # noqa: FBT001
        initial_salvo: bool,  # noqa: FBT001
        sender_banned: bool,  # noqa: FBT001
    ) -> None:
        if edited:
            await self.message_modified(message, sender_banned=sender_banned)
        elif initial_salvo:
            await self.message_received_on_new_connection(
                message,
                sender_banned=sender_banned,
            )
        else:
            await self.message_received(message, sender_banned=sender_banned)

    async def message_received(self, message: ChatMessage, *, sender_banned: bool) -> None:
        """Act upon a new message."""

    async def message_modified(self, message: ChatMessage, *, sender_banned: bool) -> None:
        """Act upon an edit of a message that is still visible."""

    async def message_received_on_new_connection(
        self,
        message: ChatMessage,
        *,
        sender_banned: bool,
    ) -> None:
        """Act upon a message from the initial salvo; same as a new one by default."""
        await self.message_received(message, sender_banned=sender_banned)

    async def start(self) -> None:
        """Start background work, if any."""

    async def stop(self) -> None:
        """Stop background work started by ``start()`` and wait for it."""

    def setting(self, name: str, default: Any) -> Any:  # noqa: ANN401
        """Return a module setting or its default."""
        return self.settings.get(name, default)


def load_modules(connector: ChatboxConnector, specs: list[ModuleSpec]) -> list[Module]:
    """Import and instantiate the configured modules, in order."""
    modules: list[Module] = []
    for spec in specs:
        logger.info("Loading module %s.%s", spec.module, spec.class_name)
        python_module = importlib.import_module(f"{MODULE_PACKAGE}.{spec.module}")
        module_class = getattr(python_module, spec.class_name, None)
        if not isinstance(module_class, type) or not issubclass(module_class, Module):
            message = f"'{spec.module}.{spec.class_name}' is not a chatbox module."
            raise ConfigValueError(message)
        modules.append(module_class(connector, spec.settings))
    return modules
