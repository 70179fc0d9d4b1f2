"""Decompiles the forum's chatbox HTML back into a markup tree.

The forum only ever emits a small, fixed vocabulary of tags for chatbox
messages, so every recognized construct is listed explicitly below. Anything
else is logged as a decompile anomaly and dropped; one odd fragment never
fails the whole message.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from chatboxbot.core.config.constants import POST_ID_PIECE
from chatboxbot.markup.nodes import (
    NOPARSE,
    Element,
    ListItem,
    MarkupNode,
    SmileyText,
    Text,
    coalesce_text,
)
from chatboxbot.markup.smileys import SmileyTable

logger = logging.getLogger(__name__)

INLINE_TAG_NAMES = {
    "b": "b",
    "strong": "b",
    "i": "i",
    "em": "i",
    "u": "u",
    "s": "strike",
    "strike": "strike",
    "sub": "sub",
    "sup": "sup",
}
FLIP_STYLE = "direction: rtl; unicode-bidi: bidi-override;"
FONT_STYLE_PREFIX = "font-family: "
SPAN_CLASS_NAMES = {
    "highlight": "highlight",
    "irony": "irony",
}
DIV_STYLE_NAMES = {
    "margin-left:40px": "indent",
    "text-align: left;": "left",
    "text-align: center;": "center",
    "text-align: right;": "right",
}
SPOILER_STYLE = "margin: 5px 20px 20px;"
SPOILER_MARKER_CLASS = "smallfont"
BLOCK_CONTAINER_CLASS = "bbcode_container"
CODE_CLASS = "bbcode_code"
QUOTE_CLASS = "bbcode_quote"
QUOTE_POSTED_BY_CLASS = "bbcode_postedby"
QUOTE_MESSAGE_CLASS = "message"
DECIMAL_LIST_CLASS = "decimal"
VIDEO_PLACEHOLDER = "video"
MATH_ELEMENT_NAME = "tex"

_YOUTUBE_EMBED_RE = re.compile(
    r"^(?:https?:)?//(?:www\.)?youtube(?:-nocookie)?\.com/embed/([A-Za-z0-9_-]+)",
)
_POST_ID_RE = re.compile(re.escape(POST_ID_PIECE) + r"([0-9]+)")


@dataclass(frozen=True, slots=True)
class _Context:
    urls_to_symbols: dict[str, str]
    trigger_pattern: re.Pattern[str]
    math_prefix: str | None


_Handler = Callable[[Tag, _Context], list[MarkupNode] | None]


def decompile(
    html_fragment: str | Tag,
    smileys: SmileyTable,
    math_prefix: str | None = None,
) -> list[MarkupNode]:
    """Turn an HTML fragment into a markup tree.

    Args:
        html_fragment: The HTML source, or an already parsed tag whose
            children are decompiled.
        smileys: The current smiley table; its trigger index must be current.
        math_prefix: URL prefix of the forum's formula renderer, if any.

    Returns:
        The ordered markup nodes, with adjacent text coalesced.

    """
    if isinstance(html_fragment, str):
        root: Tag = BeautifulSoup(html_fragment, "html.parser")
    else:
        root = html_fragment
    context = _Context(
        urls_to_symbols=smileys.urls_to_symbols,
        trigger_pattern=smileys.trigger_pattern,
        math_prefix=math_prefix,
    )
    return _decompile_children(root, context)


def _decompile_children(
    parent: Tag,
    context: _Context,
    *,
    skip_blank_text: bool = False,
) -> list[MarkupNode]:
    nodes: list[MarkupNode] = []
    for child in parent.children:
        if isinstance(child, Tag):
            nodes.extend(_decompile_tag(child, context))
        elif isinstance(child, PreformattedString):
            # comments, doctypes, CDATA
            continue
        elif isinstance(child, NavigableString):
            text = str(child)
            if skip_blank_text and not text.strip():
                continue
            nodes.extend(_split_text(text, context))
    return coalesce_text(nodes)


def _split_text(text: str, context: _Context) -> list[MarkupNode]:
    """Wrap everything the forum would interpret as markup in ``noparse``."""
    nodes: list[MarkupNode] = []
    position = 0
    for match in context.trigger_pattern.finditer(text):
        if match.start() > position:
            nodes.append(Text(text[position : match.start()]))
        nodes.append(Element(NOPARSE, (Text(match.group(0)),)))
        position = match.end()
    if position < len(text):
        nodes.append(Text(text[position:]))
    return nodes


def _decompile_tag(tag: Tag, context: _Context) -> list[MarkupNode]:
    handler = _HANDLERS.get(tag.name)
    result = handler(tag, context) if handler is not None else None
    if result is None:
        logger.warning("Decompile anomaly: skipping unknown HTML element %s", _describe(tag))
        return []
    return result


def _describe(tag: Tag) -> str:
    attributes = " ".join(
        f'{key}="{" ".join(value) if isinstance(value, list) else value}"'
        for key, value in sorted(tag.attrs.items())
    )
    return f"<{tag.name} {attributes}>" if attributes else f"<{tag.name}>"


def _attr(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _child_tags(tag: Tag) -> list[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def _sole_child(tag: Tag) -> Tag | None:
    children = list(tag.children)
    if len(children) == 1 and isinstance(children[0], Tag):
        return children[0]
    return None


def _image(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    src = _attr(tag, "src")
    if not src:
        return None
    symbol = context.urls_to_symbols.get(src)
    if symbol is not None:
        return [SmileyText(symbol, src)]
    if context.math_prefix and src.startswith(context.math_prefix):
        formula = src[len(context.math_prefix) :]
        return [Element(MATH_ELEMENT_NAME, (Text(formula),))]
    return [Element("icon", (Text(src),))]


def _anchor(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    href = _attr(tag, "href")
    if href is None:
        return None
    if href.startswith("mailto:"):
        children = tuple(_decompile_children(tag, context))
        return [Element("email", children, href[len("mailto:") :])]

    only_child = _sole_child(tag)
    if (
        only_child is not None
        and only_child.name == "img"
        and _attr(only_child, "src") == href
    ):
        # a linked icon; the image alone says it all
        return _decompile_children(tag, context)

    return [Element("url", tuple(_decompile_children(tag, context)), href)]


def _inline(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    if tag.attrs:
        return None
    name = INLINE_TAG_NAMES[tag.name]
    return [Element(name, tuple(_decompile_children(tag, context)))]


def _font(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    color = _attr(tag, "color")
    if not color or set(tag.attrs) != {"color"}:
        return None
    return [Element("color", tuple(_decompile_children(tag, context)), color)]


def _span(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    style = _attr(tag, "style")
    class_name = _attr(tag, "class")
    if style is not None and class_name is None:
        if style == FLIP_STYLE:
            return [Element("flip", tuple(_decompile_children(tag, context)))]
        if style.startswith(FONT_STYLE_PREFIX):
            family = style[len(FONT_STYLE_PREFIX) :].rstrip(";").strip()
            if family:
                children = tuple(_decompile_children(tag, context))
                return [Element("font", children, family)]
        return None
    if class_name is not None and style is None and class_name in SPAN_CLASS_NAMES:
        name = SPAN_CLASS_NAMES[class_name]
        return [Element(name, tuple(_decompile_children(tag, context)))]
    return None


def _div(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    style = _attr(tag, "style")
    class_name = _attr(tag, "class")
    if style is not None and class_name is None:
        if style in DIV_STYLE_NAMES:
            name = DIV_STYLE_NAMES[style]
            return [Element(name, tuple(_decompile_children(tag, context)))]
        if style == SPOILER_STYLE:
            return _spoiler(tag)
        return None
    if class_name == BLOCK_CONTAINER_CLASS and style is None:
        code = tag.find("pre", class_=CODE_CLASS)
        if code is not None:
            return [Element("code", (Text(code.get_text()),))]
        quote = tag.find("div", class_=QUOTE_CLASS)
        if quote is not None:
            return _quote(quote, context)
    return None


def _spoiler(tag: Tag) -> list[MarkupNode] | None:
    marker = tag.find("div", class_=SPOILER_MARKER_CLASS)
    payload = tag.find("pre")
    if marker is None or payload is None:
        return None
    return [Element("spoiler", (Text(payload.get_text()),))]


def _quote(quote: Tag, context: _Context) -> list[MarkupNode] | None:
    message = quote.find("div", class_=QUOTE_MESSAGE_CLASS)
    if message is None:
        return None

    poster_name: str | None = None
    post_id: str | None = None
    posted_by = quote.find("div", class_=QUOTE_POSTED_BY_CLASS)
    if posted_by is not None:
        poster = posted_by.find("strong")
        if poster is not None:
            poster_name = poster.get_text().strip() or None
        for link in posted_by.find_all("a", href=True):
            match = _POST_ID_RE.search(_attr(link, "href") or "")
            if match is not None:
                post_id = match.group(1)
                break

    attribute: str | None = None
    if poster_name is not None and post_id is not None:
        attribute = f"{poster_name};{post_id}"
    elif poster_name is not None:
        attribute = poster_name

    return [Element("quote", tuple(_decompile_children(message, context)), attribute)]


def _unordered_list(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    if tag.attrs:
        return None
    children = _decompile_children(tag, context, skip_blank_text=True)
    return [Element("list", tuple(children))]


def _ordered_list(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    if _attr(tag, "class") != DECIMAL_LIST_CLASS:
        return None
    children = _decompile_children(tag, context, skip_blank_text=True)
    return [Element("list", tuple(children), "1")]


def _list_item(tag: Tag, context: _Context) -> list[MarkupNode] | None:
    if _attr(tag, "style") != "":
        return None
    return [ListItem(tuple(_decompile_children(tag, context)))]


def _iframe(tag: Tag, _context: _Context) -> list[MarkupNode] | None:
    src = _attr(tag, "src")
    if not src:
        return None
    match = _YOUTUBE_EMBED_RE.match(src)
    if match is None:
        return None
    return [Element("video", (Text(VIDEO_PLACEHOLDER),), f"youtube;{match.group(1)}")]


def _line_break(_tag: Tag, _context: _Context) -> list[MarkupNode] | None:
    return [Text("\n")]


_HANDLERS: dict[str, _Handler] = {
    "img": _image,
    "a": _anchor,
    "font": _font,
    "span": _span,
    "div": _div,
    "ul": _unordered_list,
    "ol": _ordered_list,
    "li": _list_item,
    "iframe": _iframe,
    "br": _line_break,
    **dict.fromkeys(INLINE_TAG_NAMES, _inline),
}
