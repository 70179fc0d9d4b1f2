"""The chatbox connector: polling, diffing, dispatching and posting.

One background task polls the messages page, diffs it against the message
store and hands the resulting events to the subscribers, one after the
other, before sleeping until the next poll. Outbound actions (posting,
editing, user lookups) may come from any task; they share the forum session
and thereby its request lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

from chatboxbot.connector.dispatcher import Dispatcher, Subscriber
from chatboxbot.connector.encoding import (
    encode_outgoing_message,
    escape_outgoing_text,
    filter_combining_mark_clusters,
)
from chatboxbot.connector.messages import ChatMessage
from chatboxbot.connector.retry import run_with_recovery
from chatboxbot.connector.scrape import ScrapedRow, parse_messages_page
from chatboxbot.connector.store import MessageEvent, MessageStore
from chatboxbot.core.error_handling import (
    SUBSCRIBER_EXCEPTIONS,
    TRANSFER_EXCEPTIONS,
    log_exception,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from chatboxbot.connector.session import ForumSession
    from chatboxbot.core.config import ConnectorSettings

logger = logging.getLogger(__name__)

MIN_SEARCHABLE_NAME_LENGTH = 3


class ChatboxConnector:
    """Facilitates communication with a forum chatbox."""

    def __init__(
        self,
        session: ForumSession,
        settings: ConnectorSettings,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Wire a connector to a (not yet logged-in) forum session."""
        self.session = session
        self.settings = settings
        self.smileys = session.smileys
        self.store = MessageStore(settings.banned_nicknames)
        self.dispatcher = Dispatcher()
        self.quiet_until: float | None = None
        self.users_by_lowercase_name: dict[str, tuple[int, str]] = {}
        self._clock = clock
        self._stop_event = asyncio.Event()
        self._poll_task: asyncio.Task[None] | None = None
        self._last_smiley_refresh = clock()

    @property
    def username(self) -> str:
        """The forum user the bot is logged in as."""
        return self.session.settings.username

    def subscribe(self, subscriber: Subscriber) -> None:
        """Register a callback for new and edited messages."""
        self.dispatcher.add(subscriber)

    # lifecycle

    async def connect(self) -> None:
        """Log in; the next poll is reported as the initial salvo."""
        self.store.reset()
        await run_with_recovery("login", self.session.login, self.session)
        self._last_smiley_refresh = self._clock()

    async def start(self) -> None:
        """Log in and start polling in the background."""
        await self.connect()
        self._stop_event.clear()
        self._poll_task = asyncio.create_task(
            self.run_poll_loop(),
            name="chatboxbot-poll",
        )

    async def stop(self) -> None:
        """Let the poll loop finish its current cycle, then wait for it."""
        self._stop_event.set()
        if self._poll_task is not None:
            await self._poll_task
            self._poll_task = None

    async def wait_until_stopped(self) -> None:
        """Block until ``stop()`` has been requested."""
        await self._stop_event.wait()

    async def run_poll_loop(self) -> None:
        """Poll until stopped; failing polls stretch the delay to the next one."""
        penalty = 1
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except SUBSCRIBER_EXCEPTIONS as exc:
                log_exception(
                    logger=logger,
                    message="Polling the chatbox failed",
                    error=exc,
                    context={"penalty": penalty},
                )
                penalty = min(penalty + 1, self.settings.max_penalty)
            else:
                penalty = 1
            await self._sleep(self.settings.poll_interval_seconds * penalty)

    async def _sleep(self, delay: float) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)

    # polling

    async def _fetch_rows(self) -> list[ScrapedRow]:
        page = await self.session.fetch_messages_page()
        return parse_messages_page(page)

    def _message_from_row(self, row: ScrapedRow) -> ChatMessage:
        return ChatMessage(
            id=row.message_id,
            author_id=row.user_id,
            author_name_html=row.author_html,
            raw_body_html=row.body_html,
            timestamp=row.timestamp,
            smileys=self.smileys,
            math_prefix=self.settings.math_prefix,
        )

    async def poll_once(self) -> list[MessageEvent]:
        """Fetch, diff and dispatch one page of messages.

        Raises:
            TransferError: The page could not be fetched even after
                refreshing the token and logging in anew.

        """
        rows = await run_with_recovery("fetch messages", self._fetch_rows, self.session)
        for row in rows:
            if row.user_id is not None:
                self.users_by_lowercase_name[row.author_name.lower()] = (
                    row.user_id,
                    row.author_name,
                )

        events = self.store.apply([self._message_from_row(row) for row in rows])
        await self.dispatcher.dispatch_all(events)
        await self._maybe_refresh_smileys()
        return events

    async def _maybe_refresh_smileys(self) -> None:
        now = self._clock()
        if now - self._last_smiley_refresh < self.settings.smiley_refresh_seconds:
            return
        self._last_smiley_refresh = now
        try:
            await self.session.refresh_smileys()
        except TRANSFER_EXCEPTIONS as exc:
            log_exception(logger=logger, message="Refreshing smileys failed", error=exc)

    # quiet window

    def stay_quiet(self, seconds: float) -> None:
        """Suppress outbound messages for the given number of seconds."""
        self.quiet_until = self._clock() + seconds
        logger.info("Staying quiet for %.0f seconds", seconds)

    def end_quiet(self) -> None:
        """Allow outbound messages again."""
        self.quiet_until = None

    def is_quiet(self) -> bool:
        """Whether outbound messages are currently suppressed."""
        return self.quiet_until is not None and self._clock() < self.quiet_until

    # outbound

    def escape_outgoing_text(self, text: str) -> str:
        """Escape markup and smileys so that ``text`` is shown literally."""
        return escape_outgoing_text(text, self.smileys)

    def _prepare(self, body: str, *, bypass_filters: bool, custom_smileys: bool) -> str:
        if custom_smileys:
            body = self.smileys.substitute_custom_smileys(body)
        if not bypass_filters:
            body = filter_combining_mark_clusters(body, self.settings.max_combining_marks)
        return encode_outgoing_message(body, self.session.settings.server_encoding)

    async def send_message(
        self,
        message: str,
        *,
        bypass_quiet: bool = False,
        bypass_filters: bool = False,
        custom_smileys: bool = False,
    ) -> bool:
        """Post a message to the chatbox.

        Returns:
            False if the message was suppressed by the quiet window.

        Raises:
            TransferError: Posting failed on every rung of the recovery ladder.

        """
        if not bypass_quiet and self.is_quiet():
            logger.debug("Quiet window active; not posting %r", message)
            return False

        encoded = self._prepare(
            message,
            bypass_filters=bypass_filters,
            custom_smileys=custom_smileys,
        )
        logger.debug("Posting message %r", message)
        await run_with_recovery(
            "post message",
            lambda: self.session.submit_post(encoded),
            self.session,
        )
        return True

    async def edit_message(
        self,
        message_id: int,
        new_body: str,
        *,
        bypass_quiet: bool = True,
        bypass_filters: bool = False,
        custom_smileys: bool = False,
    ) -> bool:
        """Replace the body of a previously posted message."""
        if not bypass_quiet and self.is_quiet():
            logger.debug("Quiet window active; not editing message %s", message_id)
            return False

        encoded = self._prepare(
            new_body,
            bypass_filters=bypass_filters,
            custom_smileys=custom_smileys,
        )
        logger.debug("Editing message %s to %r", message_id, new_body)
        await run_with_recovery(
            "edit message",
            lambda: self.session.submit_edit(message_id, encoded),
            self.session,
        )
        return True

    async def lookup_user(self, name: str) -> tuple[int, str] | None:
        """Return ``(user_id, nickname)`` for a case-insensitive user name."""
        lowercase_name = name.lower()
        cached = self.users_by_lowercase_name.get(lowercase_name)
        if cached is not None:
            return cached

        # the forum rejects shorter user names anyway
        if len(name) < MIN_SEARCHABLE_NAME_LENGTH:
            return None

        result = await run_with_recovery(
            "user search",
            lambda: self.session.ajax("usersearch", {"fragment": name}),
            self.session,
        )
        for user in result.find_all("user", attrs={"userid": True}):
            nickname = user.get_text()
            if nickname.lower() != lowercase_name:
                continue
            try:
                user_id = int(str(user["userid"]))
            except ValueError:
                continue
            self.users_by_lowercase_name[lowercase_name] = (user_id, nickname)
            return user_id, nickname
        return None
