from __future__ import annotations

import pytest

from chatboxbot.connector.encoding import (
    ajax_url_encode_string,
    encode_outgoing_message,
    escape_outgoing_text,
    filter_combining_mark_clusters,
    filter_invalid_xml,
)
from chatboxbot.markup import SmileyTable

COMBINING_ACUTE = "\u0301"
ZERO_WIDTH_JOINER = "\u200d"


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("abc-_.XYZ09", "abc-_.XYZ09"),
        ("a b", "a%20b"),
        ("[b]", "%5Bb%5D"),
        ("ä", "%E4"),
        ("€", "%80"),
        ("→", "%26%238594%3B"),
    ],
)
def test_encode_outgoing_message(message: str, expected: str) -> None:
    assert encode_outgoing_message(message, "windows-1252") == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("abc", "abc"),
        ("a/b c", "a%2fb%20c"),
        ("é", "%u00E9"),
        ("\U0001f600", "%uD83D%uDE00"),
    ],
)
def test_ajax_url_encode_string(value: str, expected: str) -> None:
    assert ajax_url_encode_string(value) == expected


def test_combining_marks_are_capped_per_cluster() -> None:
    text = "e" + COMBINING_ACUTE * 6 + "a" + COMBINING_ACUTE * 2

    assert filter_combining_mark_clusters(text, 4) == (
        "e" + COMBINING_ACUTE * 4 + "a" + COMBINING_ACUTE * 2
    )


def test_format_characters_do_not_reset_the_mark_count() -> None:
    text = "e" + COMBINING_ACUTE * 2 + ZERO_WIDTH_JOINER + COMBINING_ACUTE * 3

    assert filter_combining_mark_clusters(text, 4) == (
        "e" + COMBINING_ACUTE * 2 + ZERO_WIDTH_JOINER + COMBINING_ACUTE * 2
    )


def test_filter_invalid_xml() -> None:
    text = "a\x00b&#0;c&#xD800;d\ud800e&#65;"

    assert filter_invalid_xml(text) == "abcde&#65;"


def test_escape_outgoing_text() -> None:
    table = SmileyTable(forum_smileys={":)": "smile.gif"})

    assert escape_outgoing_text("[b]:)", table) == (
        "[noparse][[/noparse]b][noparse]:)[/noparse]"
    )
