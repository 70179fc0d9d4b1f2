"""Bidirectional smiley table and the trigger index derived from it."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from chatboxbot.markup.nodes import NOPARSE

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def _symbols_longest_first(symbols: list[str]) -> list[str]:
    # a shorter symbol must never win against a longer one containing it
    return sorted(symbols, key=lambda symbol: (-len(symbol), symbol))


class SmileyTable:
    """Maps smiley symbols (``:)``) to image URLs and back.

    Forum smileys are scraped from the forum and rendered by it; custom
    smileys are bot-side aliases the bot substitutes with ``[icon]`` tags.
    ``trigger_pattern`` matches every substring the forum would turn into
    markup on its own (an opening bracket or a forum smiley symbol). It is a
    derived index: whoever changes the table calls ``rebuild_index()``.
    """

    def __init__(
        self,
        forum_smileys: Mapping[str, str] | None = None,
        custom_smileys: Mapping[str, str] | None = None,
    ) -> None:
        """Create a table and build its trigger index."""
        self.forum_symbols_to_urls: dict[str, str] = dict(forum_smileys or {})
        self.custom_symbols_to_urls: dict[str, str] = dict(custom_smileys or {})
        self.trigger_pattern: re.Pattern[str] = re.compile(re.escape("["))
        self.rebuild_index()

    @property
    def symbols_to_urls(self) -> dict[str, str]:
        """All smileys, custom ones overriding forum ones."""
        return {**self.forum_symbols_to_urls, **self.custom_symbols_to_urls}

    @property
    def urls_to_symbols(self) -> dict[str, str]:
        """Reverse lookup used by the decompiler."""
        return {url: symbol for symbol, url in self.symbols_to_urls.items()}

    def replace_forum_smileys(self, symbols_to_urls: Mapping[str, str]) -> bool:
        """Swap in a freshly scraped forum smiley list.

        An empty scrape is treated as a failed one and leaves the table alone.
        Returns whether the table changed; the caller rebuilds the index.
        """
        if not symbols_to_urls:
            logger.warning("Smiley scrape returned no smileys; keeping old table")
            return False
        self.forum_symbols_to_urls = dict(symbols_to_urls)
        return True

    def rebuild_index(self) -> None:
        """Recompute ``trigger_pattern`` from the current forum smileys."""
        alternatives = [
            re.escape(symbol)
            for symbol in _symbols_longest_first(list(self.forum_symbols_to_urls))
            if symbol
        ]
        alternatives.append(re.escape("["))
        self.trigger_pattern = re.compile("|".join(alternatives))
        logger.debug("Rebuilt smiley trigger index with %d symbols", len(alternatives) - 1)

    def escape_text(self, text: str) -> str:
        """Wrap every trigger in ``text`` in ``[noparse]`` tags."""
        return self.trigger_pattern.sub(
            lambda match: f"[{NOPARSE}]{match.group(0)}[/{NOPARSE}]",
            text,
        )

    def substitute_custom_smileys(self, text: str) -> str:
        """Replace custom smiley symbols with ``[icon]`` tags for their images."""
        symbols = [
            symbol
            for symbol in _symbols_longest_first(list(self.custom_symbols_to_urls))
            if symbol
        ]
        if not symbols:
            return text
        pattern = re.compile("|".join(re.escape(symbol) for symbol in symbols))
        return pattern.sub(
            lambda match: f"[icon]{self.custom_symbols_to_urls[match.group(0)]}[/icon]",
            text,
        )
