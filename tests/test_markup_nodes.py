from __future__ import annotations

from chatboxbot.markup import (
    Element,
    ListItem,
    SmileyTable,
    SmileyText,
    Text,
    coalesce_text,
    iter_elements,
    plain_text,
    serialize,
    verbatim_serialize,
)
from chatboxbot.markup.nodes import ESCAPED_BRACKET


def test_serialize_renders_each_node_kind() -> None:
    tree = [
        Text("I said "),
        Element("b", (Text("hi"),)),
        Text(" to "),
        Element("url", (Text("her"),), "http://x/y"),
        SmileyText(":)", "images/smilies/smile.gif"),
        Element("list", (ListItem((Text("one"),)), ListItem((Text("two"),)))),
    ]

    assert serialize(tree) == (
        "I said [b]hi[/b] to [url=http://x/y]her[/url]:)[list][*]one[*]two[/list]"
    )


def test_coalesce_merges_adjacent_text_but_not_smileys() -> None:
    nodes = [
        Text("a"),
        Text(""),
        Text("b"),
        SmileyText(":)", "smile.gif"),
        Text("c"),
        Text("\n"),
    ]

    assert coalesce_text(nodes) == [
        Text("ab"),
        SmileyText(":)", "smile.gif"),
        Text("c\n"),
    ]


def test_verbatim_serialize_escapes_every_bracket_from_text() -> None:
    rendered = verbatim_serialize([Text("look: [b]bold[/b] and [url]x[/url]")])

    assert rendered.replace(ESCAPED_BRACKET, "") == "look: b]bold/b] and url]x/url]"
    assert "[b]" not in rendered.replace(ESCAPED_BRACKET, "")


def test_verbatim_serialize_keeps_structure_and_escapes_attributes() -> None:
    tree = [Element("url", (Text("[x"),), "http://a/[b]")]

    assert verbatim_serialize(tree) == f"[url=http://a/%5Bb%5D]{ESCAPED_BRACKET}x[/url]"


def test_verbatim_serialize_leaves_noparse_content_alone() -> None:
    tree = [Element("noparse", (Text("["),)), Text("b]")]

    assert verbatim_serialize(tree) == "[noparse][[/noparse]b]"


def test_verbatim_serialize_escapes_smiley_symbols_in_text() -> None:
    table = SmileyTable(forum_smileys={":)": "smile.gif"})

    assert verbatim_serialize([Text("hi :) [")], table) == (
        "hi [noparse]:)[/noparse] [noparse][[/noparse]"
    )


def test_plain_text_and_iter_elements() -> None:
    tree = [
        Text("a "),
        Element("quote", (Element("b", (Text("b"),)), SmileyText(":)", "s.gif")), "Bob"),
        Element("list", (ListItem((Element("b", (Text("c"),)),)),)),
    ]

    assert plain_text(tree) == "a b:)c"
    assert [element.name for element in iter_elements(tree)] == ["quote", "b", "list", "b"]
    assert len(iter_elements(tree, "b")) == 2
