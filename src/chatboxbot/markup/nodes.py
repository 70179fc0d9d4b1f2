"""Markup tree nodes and their serialization back into chat markup.

A markup tree is a list of nodes. Each node is exactly one of ``Element``,
``ListItem``, ``Text`` or ``SmileyText``; every traversal below checks the
four kinds explicitly and ends in ``assert_never`` so adding a kind breaks
loudly at type-check time instead of rendering nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

if TYPE_CHECKING:
    from collections.abc import Iterable

    from chatboxbot.markup.smileys import SmileyTable

NOPARSE = "noparse"
ESCAPED_BRACKET = "[noparse][[/noparse]"


@dataclass(frozen=True, slots=True)
class Element:
    """A tag-like container such as ``[b]...[/b]`` or ``[url=...]...[/url]``."""

    name: str
    children: tuple[MarkupNode, ...] = ()
    attribute: str | None = None


@dataclass(frozen=True, slots=True)
class ListItem:
    """A bullet item, serialized as ``[*]`` without a closing tag."""

    children: tuple[MarkupNode, ...] = ()


@dataclass(frozen=True, slots=True)
class Text:
    """Literal text."""

    value: str


@dataclass(frozen=True, slots=True)
class SmileyText:
    """Text that was rendered as a smiley image by the forum."""

    value: str
    source_url: str


MarkupNode = Element | ListItem | Text | SmileyText
MarkupTree = list[MarkupNode]


def coalesce_text(nodes: Iterable[MarkupNode]) -> list[MarkupNode]:
    """Merge runs of adjacent ``Text`` nodes into one; drop empty ones.

    ``SmileyText`` is never merged since it carries its own URL.
    """
    merged: list[MarkupNode] = []
    for node in nodes:
        if not isinstance(node, Text):
            merged.append(node)
            continue
        if not node.value:
            continue
        previous = merged[-1] if merged else None
        if isinstance(previous, Text):
            merged[-1] = Text(previous.value + node.value)
        else:
            merged.append(node)
    return merged


def serialize(tree: Iterable[MarkupNode]) -> str:
    """Render a markup tree as chat markup."""
    return "".join(_serialize_node(node) for node in tree)


def _serialize_node(node: MarkupNode) -> str:
    if isinstance(node, Element):
        inner = serialize(node.children)
        if node.attribute is not None:
            return f"[{node.name}={node.attribute}]{inner}[/{node.name}]"
        return f"[{node.name}]{inner}[/{node.name}]"
    if isinstance(node, ListItem):
        return "[*]" + serialize(node.children)
    if isinstance(node, Text | SmileyText):
        return node.value
    assert_never(node)


def escape_brackets(text: str) -> str:
    """Make every opening bracket in ``text`` inert."""
    return text.replace("[", ESCAPED_BRACKET)


def escape_attribute(value: str) -> str:
    """Make an attribute value safe to embed in an opening tag.

    A ``[noparse]`` inside an opening tag would break the tag itself, so
    brackets are percent-encoded instead; attributes are mostly URLs.
    """
    return value.replace("[", "%5B").replace("]", "%5D")


def verbatim_serialize(
    tree: Iterable[MarkupNode],
    smileys: SmileyTable | None = None,
) -> str:
    """Render a markup tree so that no user-supplied text can become markup.

    Every ``[`` coming from text or attribute values is escaped; with a smiley
    table, smiley symbols appearing in plain text are wrapped in
    ``[noparse]`` as well. Smiley nodes keep their symbol.
    """
    return "".join(_verbatim_node(node, smileys, inert=False) for node in tree)


def _verbatim_node(
    node: MarkupNode,
    smileys: SmileyTable | None,
    *,
    inert: bool,
) -> str:
    if isinstance(node, Element):
        inner_inert = inert or node.name == NOPARSE
        inner = "".join(
            _verbatim_node(child, smileys, inert=inner_inert)
            for child in node.children
        )
        if node.attribute is not None:
            attribute = escape_attribute(node.attribute)
            return f"[{node.name}={attribute}]{inner}[/{node.name}]"
        return f"[{node.name}]{inner}[/{node.name}]"
    if isinstance(node, ListItem):
        return "[*]" + "".join(
            _verbatim_node(child, smileys, inert=inert) for child in node.children
        )
    if isinstance(node, SmileyText):
        return node.value if inert else escape_brackets(node.value)
    if isinstance(node, Text):
        if inert:
            return node.value
        if smileys is not None:
            return smileys.escape_text(node.value)
        return escape_brackets(node.value)
    assert_never(node)


def plain_text(tree: Iterable[MarkupNode]) -> str:
    """Concatenate all text leaves of a markup tree."""
    parts: list[str] = []
    for node in tree:
        if isinstance(node, Element | ListItem):
            parts.append(plain_text(node.children))
        elif isinstance(node, Text | SmileyText):
            parts.append(node.value)
        else:
            assert_never(node)
    return "".join(parts)


def iter_elements(tree: Iterable[MarkupNode], name: str | None = None) -> list[Element]:
    """Return all elements in document order, optionally filtered by name."""
    found: list[Element] = []
    for node in tree:
        if isinstance(node, Element):
            if name is None or node.name == name:
                found.append(node)
            found.extend(iter_elements(node.children, name))
        elif isinstance(node, ListItem):
            found.extend(iter_elements(node.children, name))
        elif isinstance(node, Text | SmileyText):
            continue
        else:
            assert_never(node)
    return found
