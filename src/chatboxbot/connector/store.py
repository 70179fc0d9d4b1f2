"""Message store and diff engine.

Per message id the store moves through ``unseen -> visible -> (edited ->
visible)* -> forgotten``. Forgetting is silent: a message that disappears
from the page has scrolled out of the chatbox's window, it was not deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from chatboxbot.connector.messages import ChatMessage

logger = logging.getLogger(__name__)

NO_WATERMARK = -1


@dataclass(frozen=True, slots=True)
class VisibleSet:
    """Raw bodies of the messages visible in the last poll, plus the watermark."""

    bodies: dict[int, str] = field(default_factory=dict)
    watermark: int = NO_WATERMARK


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """One observed change, ready for dispatch."""

    message: ChatMessage
    edited: bool
    initial_salvo: bool
    sender_banned: bool


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Outcome of comparing one scraped page with the previous visible set."""

    watermark: int
    events: list[MessageEvent]
    visible_set: VisibleSet


def diff(
    previous: VisibleSet,
    messages: Sequence[ChatMessage],
    *,
    initial_salvo: bool = False,
    banned_nicknames: Iterable[str] = (),
) -> DiffResult:
    """Classify freshly scraped messages against the previous visible set.

    New and edited messages become events, ordered by ascending message id
    whatever the page order was. Unchanged messages produce nothing. Ids
    missing from ``messages`` are dropped from the returned set without an
    event. The watermark never decreases.
    """
    banned = frozenset(nickname.lower() for nickname in banned_nicknames)
    bodies: dict[int, str] = {}
    changed: dict[int, tuple[ChatMessage, bool]] = {}
    watermark = previous.watermark

    for message in messages:
        if message.id in bodies:
            # the same row twice on one page; the first one wins
            continue
        bodies[message.id] = message.raw_body_html
        watermark = max(watermark, message.id)

        old_body = previous.bodies.get(message.id)
        if old_body is None:
            changed[message.id] = (message, False)
        elif old_body != message.raw_body_html:
            changed[message.id] = (message, True)

    events = [
        MessageEvent(
            message=message,
            edited=edited,
            initial_salvo=initial_salvo,
            sender_banned=message.user_name.lower() in banned,
        )
        for message, edited in (changed[message_id] for message_id in sorted(changed))
    ]

    forgotten = previous.bodies.keys() - bodies.keys()
    if forgotten:
        logger.debug("Forgetting %d messages that scrolled out of view", len(forgotten))

    return DiffResult(
        watermark=watermark,
        events=events,
        visible_set=VisibleSet(bodies=bodies, watermark=watermark),
    )


class MessageStore:
    """Holds the visible set between polls; owned by the poll loop."""

    def __init__(self, banned_nicknames: Iterable[str] = ()) -> None:
        """Create an empty store that treats the next poll as an initial salvo."""
        self.banned_nicknames = frozenset(nickname.lower() for nickname in banned_nicknames)
        self.visible_set = VisibleSet()
        self.initial_salvo = True

    @property
    def watermark(self) -> int:
        """Highest message id seen so far."""
        return self.visible_set.watermark

    def reset(self) -> None:
        """Report the next poll as an initial salvo; seen bodies and the watermark stay."""
        self.initial_salvo = True

    def apply(self, messages: Sequence[ChatMessage]) -> list[MessageEvent]:
        """Diff one poll's messages against the stored state and keep the result."""
        result = diff(
            self.visible_set,
            messages,
            initial_salvo=self.initial_salvo,
            banned_nicknames=self.banned_nicknames,
        )
        self.visible_set = result.visible_set
        self.initial_salvo = False
        return result.events
