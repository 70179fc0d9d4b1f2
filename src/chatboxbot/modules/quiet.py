"""Lets chatbox users tell the bot to be quiet for a while."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chatboxbot.modules import Module

if TYPE_CHECKING:
    from chatboxbot.connector import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "!quiet"
DEFAULT_DELAY_SECONDS = 30 * 60


class Quiet(Module):
    """Processes the quiet command by opening the connector's quiet window."""

    async def message_received_on_new_connection(
        self,
        message: ChatMessage,
        *,
        sender_banned: bool,
    ) -> None:
        # commands from before the bot connected are stale
        return

    async def message_received(self, message: ChatMessage, *, sender_banned: bool) -> None:
        if sender_banned or message.user_name == self.connector.username:
            return

        command = self.setting("command", DEFAULT_COMMAND)
        if message.plain_text().strip() != command:
            return

        delay_seconds = float(self.setting("delay_seconds", DEFAULT_DELAY_SECONDS))
        logger.info("%s asked for quiet", message.user_name)
        await self.connector.send_message(
            f"Keeping quiet for {int(delay_seconds // 60)} minutes.",
            bypass_quiet=True,
        )
        self.connector.stay_quiet(delay_seconds)
