"""Sanitizer for the rich-text fragments embedded in Wahapedia table cells.

Cells mix plain text with a small HTML vocabulary (divs, tables, anchors, italics,
keyword spans). The sanitizer parses a cell with lxml, rebuilds a clean tree from the
bottom up without touching the parsed source tree, renders it and then applies a few
text-level cleanups. Running it over its own output returns the output unchanged.
"""

import html
import re

from lxml import etree
from lxml.html import Element, HtmlElement, fragment_fromstring, tostring

from depot_ingest.common.constants import (
    ABILITY_NAME_CLASS,
    BLOCKED_TAGS,
    STRIPPED_ATTRIBUTES,
    UNWRAP_TAGS,
    WRAPPED_BLOCK_TAGS,
)

ROOT_TAG = "div"

_ANCHOR_PATTERN = re.compile(r"<a\b[^>]*>(.*?)</a\s*>", re.IGNORECASE | re.DOTALL)
_EMPTY_PARAGRAPH_PATTERN = re.compile(
    r"<p\b[^>]*>(?:\s|&nbsp;|&#160;|\xa0|<br\s*/?>)*</p\s*>",
    re.IGNORECASE,
)
# Control characters lxml refuses in text and tails (tab, LF and CR are allowed)
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# (leading text, children) of a rebuilt element
Content = tuple[str, list[HtmlElement]]


def sanitize_markup(value: str) -> str:
    """Sanitize a single table cell.

    Args:
        value: Raw cell text, possibly containing HTML

    Returns:
        HTML-safe fragment using the restricted vocabulary
    """
    value = _CONTROL_CHARACTERS.sub("", value)
    if "<" not in value and "&" not in value:
        return value.strip()

    root = fragment_fromstring(value, create_parent=ROOT_TAG)
    text, children = _rebuild_content(root)
    rendered = _render(text, children)

    rendered = _ANCHOR_PATTERN.sub(r"\1", rendered)
    rendered = _EMPTY_PARAGRAPH_PATTERN.sub("", rendered)

    return rendered.strip()


def _is_removed(element: etree._Element) -> bool:
    """Whether an element is dropped together with its descendants."""
    # Comments and processing instructions carry a non-string tag
    if not isinstance(element.tag, str):
        return True
    if element.tag.lower() in BLOCKED_TAGS:
        return True
    return ABILITY_NAME_CLASS in (element.get("class") or "").split()


def _rebuild_content(source: etree._Element) -> Content:
    """Build sanitized copies of the text and children of an element.

    Children are sanitized before their parent decides whether to keep or unwrap them.
    """
    text = source.text or ""
    children: list[HtmlElement] = []

    for child in source:
        if not _is_removed(child):
            inner_text, inner_children = _rebuild_content(child)
            if child.tag.lower() in UNWRAP_TAGS:
                text = _append_text(text, children, inner_text)
                children.extend(inner_children)
            else:
                element = _copy_element(child, inner_text, inner_children)
                children.append(_unwrap_single_block(element))
        text = _append_text(text, children, child.tail or "")

    return text, children


def _unwrap_single_block(element: HtmlElement) -> HtmlElement:
    """Replace a <p> by its only child when that child is a table or a div.

    Paragraphs with text or with more than one child are returned unchanged.
    """
    if element.tag.lower() != "p" or len(element) != 1 or (element.text or "").strip():
        return element

    block = element[0]
    if block.tag.lower() not in WRAPPED_BLOCK_TAGS or (block.tail or "").strip():
        return element

    element.remove(block)
    block.tail = None
    return block


def _copy_element(
    source: etree._Element, text: str, children: list[HtmlElement]
) -> HtmlElement:
    attributes = {
        name: value
        for name, value in source.attrib.items()
        if name.lower() not in STRIPPED_ATTRIBUTES
    }
    element = Element(source.tag, attributes)
    element.text = text or None
    element.extend(children)
    return element


def _append_text(text: str, children: list[HtmlElement], extra: str) -> str:
    """Append text after the last rebuilt child, or to the leading text when there is none.

    Returns:
        The (possibly updated) leading text
    """
    if not extra:
        return text
    if children:
        last = children[-1]
        last.tail = (last.tail or "") + extra
        return text
    return text + extra


def _render(text: str, children: list[HtmlElement]) -> str:
    parts = [html.escape(text, quote=False)]
    parts.extend(tostring(child, encoding="unicode", method="html") for child in children)
    return "".join(parts)
