"""Chat messages as scraped from the chatbox."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bs4 import BeautifulSoup

from chatboxbot.markup import (
    MarkupNode,
    SmileyTable,
    decompile,
    plain_text,
    serialize,
)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One chatbox message as observed in one poll cycle.

    Messages are never mutated; an edited message is observed as a new
    ``ChatMessage`` carrying the same ``id``. The markup tree is derived on
    demand from ``raw_body_html`` using the smiley table current at that time.
    """

    id: int
    author_id: int | None
    author_name_html: str
    raw_body_html: str
    timestamp: datetime
    smileys: SmileyTable = field(default_factory=SmileyTable, compare=False, repr=False)
    math_prefix: str | None = field(default=None, compare=False, repr=False)

    @property
    def user_name(self) -> str:
        """The author's name without any formatting."""
        return BeautifulSoup(self.author_name_html, "html.parser").get_text()

    def decompiled_user_name(self) -> list[MarkupNode]:
        """The author's name as a markup tree (names may carry formatting)."""
        return decompile(self.author_name_html, self.smileys, self.math_prefix)

    def decompiled_body(self) -> list[MarkupNode]:
        """The message body as a markup tree."""
        return decompile(self.raw_body_html, self.smileys, self.math_prefix)

    def body_markup(self) -> str:
        """The message body serialized as chat markup."""
        return serialize(self.decompiled_body())

    def plain_text(self) -> str:
        """All text of the body, without markup."""
        return plain_text(self.decompiled_body())
