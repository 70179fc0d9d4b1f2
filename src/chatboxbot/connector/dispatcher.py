"""Fan-out of message events to subscribers."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from chatboxbot.core.error_handling import SUBSCRIBER_EXCEPTIONS, log_subscriber_error

if TYPE_CHECKING:
    from chatboxbot.connector.messages import ChatMessage
    from chatboxbot.connector.store import MessageEvent

logger = logging.getLogger(__name__)

# (message, edited, initial_salvo, sender_banned)
Subscriber = Callable[["ChatMessage", bool, bool, bool], Awaitable[None] | None]


class Dispatcher:
    """Delivers every event to every subscriber, in registration order.

    Subscribers are registered while wiring the bot and never removed. Each
    one runs to completion before the next is called; a failing subscriber
    is logged and skipped.
    """

    def __init__(self) -> None:
        """Create a dispatcher without subscribers."""
        self._subscribers: list[Subscriber] = []

    @property
    def subscribers(self) -> tuple[Subscriber, ...]:
        """Registered subscribers, in registration order."""
        return tuple(self._subscribers)

    def add(self, subscriber: Subscriber) -> None:
        """Register a subscriber for all future events."""
        self._subscribers.append(subscriber)

    async def dispatch(self, event: MessageEvent) -> None:
        """Deliver one event to all subscribers."""
        # a subscriber may register another one while being called
        for subscriber in tuple(self._subscribers):
            try:
                result = subscriber(
                    event.message,
                    event.edited,
                    event.initial_salvo,
                    event.sender_banned,
                )
                if inspect.isawaitable(result):
                    await result
            except SUBSCRIBER_EXCEPTIONS as exc:
                log_subscriber_error(
                    logger=logger,
                    subscriber=subscriber,
                    error=exc,
                    message_id=event.message.id,
                    edited=event.edited,
                    initial_salvo=event.initial_salvo,
                )

    async def dispatch_all(self, events: list[MessageEvent]) -> None:
        """Deliver events in order."""
        for event in events:
            await self.dispatch(event)
