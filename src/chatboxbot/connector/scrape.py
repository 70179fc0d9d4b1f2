"""Row extraction from the chatbox messages page."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from bs4 import BeautifulSoup, Tag

from chatboxbot.connector.encoding import filter_invalid_xml
from chatboxbot.core.config.constants import MESSAGE_ID_PIECE, USER_ID_PIECE
from chatboxbot.core.exceptions import PageScrapeAnomaly

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d-%m-%y, %H:%M"
_TIMESTAMP_RE = re.compile(r"\[([0-9]{2}-[0-9]{2}-[0-9]{2}, [0-9]{2}:[0-9]{2})\]")
_MIN_CELLS = 2


@dataclass(frozen=True, slots=True)
class ScrapedRow:
    """The raw pieces of one message row."""

    message_id: int
    user_id: int | None
    author_html: str
    author_name: str
    body_html: str
    timestamp: datetime


def _id_after(href: str, url_piece: str) -> int | None:
    match = re.search(re.escape(url_piece) + r"([0-9]+)", href)
    return int(match.group(1)) if match is not None else None


def fish_out_id(element: Tag, url_piece: str) -> int | None:
    """Return the id directly following ``url_piece`` in the first matching link."""
    for link in element.find_all("a", href=True):
        found = _id_after(str(link["href"]), url_piece)
        if found is not None:
            return found
    return None


def _author_link(meta_cell: Tag) -> Tag | None:
    # the last user link is the author; earlier ones may be mentions
    author: Tag | None = None
    for link in meta_cell.find_all("a", href=True):
        if USER_ID_PIECE in str(link["href"]):
            author = link
    return author


def parse_timestamp(meta_text: str, fallback: datetime) -> datetime:
    """Parse the ``[dd-mm-yy, HH:MM]`` stamp of a row as local time."""
    match = _TIMESTAMP_RE.search(meta_text)
    if match is None:
        return fallback
    try:
        parsed = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)  # noqa: DTZ007
    except ValueError:
        return fallback
    return parsed.astimezone()


def parse_messages_page(page_html: str, *, now: datetime | None = None) -> list[ScrapedRow]:
    """Extract the message rows of a messages page, in page order.

    Raises:
        PageScrapeAnomaly: The page contains no rows at all, which means the
            forum served something other than the chatbox (login page, error).

    """
    observed_at = now or datetime.now().astimezone()
    soup = BeautifulSoup(filter_invalid_xml(page_html), "html.parser")
    table_rows = [row for row in soup.find_all("tr") if row.find_parent("tr") is None]
    if not table_rows:
        message = "Messages page contains no rows"
        raise PageScrapeAnomaly(message)

    rows: list[ScrapedRow] = []
    for table_row in table_rows:
        cells = table_row.find_all("td", recursive=False)
        if len(cells) < _MIN_CELLS:
            continue
        meta_cell, body_cell = cells[0], cells[1]

        message_id = fish_out_id(meta_cell, MESSAGE_ID_PIECE)
        if message_id is None:
            logger.debug("Skipping chatbox row without a message id")
            continue

        author = _author_link(meta_cell)
        if author is None:
            logger.debug("Skipping chatbox message %s without an author", message_id)
            continue

        rows.append(
            ScrapedRow(
                message_id=message_id,
                user_id=_id_after(str(author["href"]), USER_ID_PIECE),
                author_html=author.decode_contents(),
                author_name=author.get_text(),
                body_html=body_cell.decode_contents().strip(),
                timestamp=parse_timestamp(meta_cell.get_text(), observed_at),
            ),
        )
    if not rows:
        message = "Messages page yielded no extractable messages"
        raise PageScrapeAnomaly(message)
    return rows
