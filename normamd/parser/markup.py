"""Markup normalization and helpers shared by the tree builders."""

from __future__ import annotations

import re
from typing import Any

from bs4 import NavigableString, Tag
from bs4.element import (
    Comment,
    Declaration,
    Doctype,
    ProcessingInstruction,
)

# ``<tag attr="v" />`` becomes ``<tag attr="v"></tag>``.
SELF_CLOSING_RE = re.compile(r"<([a-zA-Z0-9:]+)([^>]*?)\s*/>")
WHITESPACE_RE = re.compile(r"\s+")

# String nodes that never carry document text.
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def expand_self_closing_tags(text: str) -> str:
    """Run a single rewrite pass over self-closing element tags."""

    return SELF_CLOSING_RE.sub(r"<\1\2></\1>", text)


def normalize_markup(text: str) -> str:
    """Rewrite self-closing tags until the markup stops changing.

    Every pass removes at least one ``/>`` occurrence, so the loop always
    terminates and the result is a fixed point of the rewrite.

    Args:
        text: Raw XML text.

    Returns:
        Markup without self-closing element tags.
    """

    previous = None
    while previous != text:
        previous = text
        text = expand_self_closing_tags(text)
    return text


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs into single spaces and trim the result."""

    return WHITESPACE_RE.sub(" ", text).strip()


def local_name(node: Any) -> str:  # noqa: ANN401
    """Return the tag name of ``node`` without its namespace prefix.

    Text nodes and other non-element nodes yield an empty string.
    """

    if not isinstance(node, Tag) or not node.name:
        return ""
    return node.name.rsplit(":", 1)[-1]


def is_text(node: Any) -> bool:  # noqa: ANN401
    """Tell whether ``node`` is a text node carrying document text."""

    return isinstance(node, NavigableString) and not isinstance(
        node, _SKIPPED_STRINGS
    )


def child_elements(node: Tag, *names: str) -> list[Tag]:
    """Return the element children of ``node``, optionally filtered by name.

    Args:
        node: Parent element.
        names: Local tag names to keep; all elements when empty.

    Returns:
        Matching child elements in document order.
    """

    return [
        child
        for child in node.children
        if isinstance(child, Tag) and (not names or local_name(child) in names)
    ]


def first_child(node: Tag, name: str) -> Tag | None:
    """Return the first child element named ``name``."""

    for child in node.children:
        if isinstance(child, Tag) and local_name(child) == name:
            return child
    return None


def find_first(node: Tag, name: str) -> Tag | None:
    """Return the first descendant element named ``name``."""

    return node.find(lambda tag: local_name(tag) == name)


def find_all_named(node: Tag, *names: str) -> list[Tag]:
    """Return every descendant element whose local name is in ``names``."""

    return node.find_all(lambda tag: local_name(tag) in names)


def child_text(node: Tag, name: str) -> str:
    """Return the normalized text of the first child named ``name``."""

    child = first_child(node, name)
    return normalize_whitespace(child.get_text()) if child else ""


def strict_text(node: Tag) -> str:
    """Concatenate the direct text nodes of ``node``, skipping elements.

    Malformed sources sometimes leave a heading unclosed so that sibling
    content ends up nested inside it; only the direct text belongs to the
    heading.
    """

    return "".join(str(child) for child in node.children if is_text(child))


def attribute(node: Any, *names: str) -> str:  # noqa: ANN401
    """Return the first non-empty attribute among ``names``.

    Args:
        node: Element to inspect. Non-elements yield an empty string.
        names: Attribute names tried in order (e.g. ``"h:style"``,
            ``"style"``).

    Returns:
        Attribute value or an empty string.
    """

    if not isinstance(node, Tag):
        return ""

    for name in names:
        value = node.get(name)
        if value:
            # Multi-valued attributes come back as lists.
            return " ".join(value) if isinstance(value, list) else str(value)
    return ""
