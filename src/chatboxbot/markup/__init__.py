"""Markup tree, smiley table and the HTML decompiler."""

from chatboxbot.markup.decompiler import decompile
from chatboxbot.markup.nodes import (
    Element,
    ListItem,
    MarkupNode,
    MarkupTree,
    SmileyText,
    Text,
    coalesce_text,
    iter_elements,
    plain_text,
    serialize,
    verbatim_serialize,
)
from chatboxbot.markup.smileys import SmileyTable

__all__ = [
    "Element",
    "ListItem",
    "MarkupNode",
    "MarkupTree",
    "SmileyTable",
    "SmileyText",
    "Text",
    "coalesce_text",
    "decompile",
    "iter_elements",
    "plain_text",
    "serialize",
    "verbatim_serialize",
]
