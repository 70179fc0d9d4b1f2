"""Pure string transforms applied to text leaving for or arriving from the forum."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

from chatboxbot.core.config.constants import (
    DEFAULT_MAX_COMBINING_MARKS,
    DEFAULT_SERVER_ENCODING,
)

if TYPE_CHECKING:
    from chatboxbot.markup.smileys import SmileyTable

URL_SAFE_CHARACTERS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.",
)
_XML_CHAR_REFERENCE_RE = re.compile(r"&#([0-9]+|x[0-9a-fA-F]+);")
_SURROGATE_FIRST = 0xD800
_SURROGATE_LAST = 0xDFFF
_ASCII_LAST = 0x7F


def encode_outgoing_message(
    message: str,
    server_encoding: str = DEFAULT_SERVER_ENCODING,
) -> str:
    """Encode a message body the way the forum's post form expects it.

    URL-safe characters pass through, characters the forum's legacy encoding
    knows are percent-encoded byte by byte, and everything else is sent as a
    percent-encoded numeric character reference.
    """
    pieces: list[str] = []
    for character in message:
        if character in URL_SAFE_CHARACTERS:
            pieces.append(character)
            continue
        try:
            encoded = character.encode(server_encoding)
        except UnicodeEncodeError:
            pieces.append(f"%26%23{ord(character)}%3B")
            continue
        pieces.extend(f"%{byte:02X}" for byte in encoded)
    return "".join(pieces)


def ajax_url_encode_string(value: str) -> str:
    """Encode a value with the ``%xx``/``%uXXXX`` scheme of the forum's AJAX calls."""
    pieces: list[str] = []
    for character in value:
        if character in URL_SAFE_CHARACTERS:
            pieces.append(character)
        elif ord(character) <= _ASCII_LAST:
            pieces.append(f"%{ord(character):02x}")
        else:
            utf16 = character.encode("utf-16be", "surrogatepass")
            pieces.extend(
                f"%u{utf16[index]:02X}{utf16[index + 1]:02X}"
                for index in range(0, len(utf16), 2)
            )
    return "".join(pieces)


def filter_combining_mark_clusters(
    text: str,
    maximum_marks: int = DEFAULT_MAX_COMBINING_MARKS,
) -> str:
    """Cap the number of combining marks stacked on a single character."""
    kept: list[str] = []
    mark_count = 0
    for character in text:
        category = unicodedata.category(character)
        if category == "Mn":
            mark_count += 1
            if mark_count <= maximum_marks:
                kept.append(character)
        elif category == "Cf":
            # zero-width; keeps the current cluster going
            kept.append(character)
        else:
            mark_count = 0
            kept.append(character)
    return "".join(kept)


def _is_forbidden_code_point(code_point: int) -> bool:
    return code_point == 0 or _SURROGATE_FIRST <= code_point <= _SURROGATE_LAST


def _drop_forbidden_reference(match: re.Match[str]) -> str:
    number = match.group(1)
    if number.startswith("x"):
        code_point = int(number[1:], 16)
    else:
        code_point = int(number, 10)
    return "" if _is_forbidden_code_point(code_point) else match.group(0)


def filter_invalid_xml(text: str) -> str:
    """Remove NUL, surrogates and character references to them."""
    cleaned = "".join(
        character for character in text if not _is_forbidden_code_point(ord(character))
    )
    return _XML_CHAR_REFERENCE_RE.sub(_drop_forbidden_reference, cleaned)


def escape_outgoing_text(text: str, smileys: SmileyTable) -> str:
    """Escape markup and smiley symbols so ``text`` is posted literally."""
    return smileys.escape_text(text)
