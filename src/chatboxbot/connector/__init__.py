"""Forum session, message store and the polling connector."""

from chatboxbot.connector.dispatcher import Dispatcher, Subscriber
from chatboxbot.connector.messages import ChatMessage
from chatboxbot.connector.poller import ChatboxConnector
from chatboxbot.connector.session import ForumSession
from chatboxbot.connector.store import (
    DiffResult,
    MessageEvent,
    MessageStore,
    VisibleSet,
    diff,
)

__all__ = [
    "ChatMessage",
    "ChatboxConnector",
    "DiffResult",
    "Dispatcher",
    "ForumSession",
    "MessageEvent",
    "MessageStore",
    "Subscriber",
    "VisibleSet",
    "diff",
]
