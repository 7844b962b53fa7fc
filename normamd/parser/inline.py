"""Render inline markup shared by both dialects as Markdown."""

from __future__ import annotations

from enum import Enum
from typing import Any

from bs4 import Tag

from .context import BuildContext
from .markup import (
    attribute,
    find_all_named,
    is_text,
    local_name,
    normalize_whitespace,
)
from .typography import subs_accent

NORMATTIVA_URL = "https://www.normattiva.it"
URN_RESOLVER = f"{NORMATTIVA_URL}/uri-res/N2Ls?"


class InlineNode(Enum):
    """Inline elements with a dedicated Markdown rendering."""

    REF = "ref"
    RIF = "rif"
    INS = "ins"
    AUTHORIAL_NOTE = "authorialNote"
    BR = "br"
    EOL = "eol"
    OTHER = ""

    @classmethod
    def _missing_(cls, value: object) -> InlineNode:
        return cls.OTHER

    @classmethod
    def of(cls, node: Tag) -> InlineNode:
        """Classify ``node`` by its local tag name."""

        return cls(local_name(node))


# Elements the shared renderer handles for the NIR builder as well.
SHARED_INLINE = frozenset(
    member.value for member in InlineNode if member is not InlineNode.OTHER
)


def akn_to_urn(path: str) -> str:
    """Translate an Akoma Ntoso act path into a NIR URN.

    ``/akn/it/act/{type}/{authority}/{date}/{number}/...`` becomes
    ``urn:nir:{authority}:{type}:{date};{number}``. EU acts are not served
    by the resolver and yield an empty string; shorter paths are returned
    unchanged.

    Args:
        path: Akoma Ntoso path from a ``ref`` element.

    Returns:
        The URN, an empty string, or ``path`` itself.
    """

    parts = path.split("/")
    if len(parts) < 8:
        return path

    doc_type, authority, date, number = parts[4], parts[5], parts[6], parts[7]

    if (doc_type == "regolamento" and authority == "") or authority == "eu":
        return ""

    doc_type = doc_type.replace("-", ".")
    authority = authority.replace("-", ".")

    urn = f"urn:nir:{authority}:{doc_type}:{date};{number}"
    return urn.removesuffix(";0")


def resolve_href(href: str) -> str:
    """Return the public URL for a document reference, or ``""``."""

    if href.startswith("/akn/"):
        href = akn_to_urn(href)

    if href.startswith("urn:nir:"):
        return URN_RESOLVER + href
    if href.startswith("/act/"):
        return NORMATTIVA_URL + href
    return href


class InlineRenderer:
    """Convert inline content of AKN and NIR nodes to Markdown.

    Footnotes met along the way are recorded in the build context.
    """

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    def render(self, node: Tag) -> str:
        """Render the children of ``node`` as inline Markdown."""

        parts = [self.render_node(child) for child in node.children]
        return subs_accent("".join(parts))

    def render_node(self, node: Any) -> str:  # noqa: ANN401
        """Render a single node, text or element."""

        if is_text(node):
            return str(node)
        if not isinstance(node, Tag):
            return ""

        kind = InlineNode.of(node)

        if kind is InlineNode.REF or kind is InlineNode.RIF:
            return self._link(node)
        if kind is InlineNode.INS:
            return subs_accent(self.render(node))
        if kind is InlineNode.AUTHORIAL_NOTE:
            return self._footnote(node)
        if kind is InlineNode.BR or kind is InlineNode.EOL:
            return "\n"
        return self.render(node)

    def _link(self, node: Tag) -> str:
        text = self.render(node)
        href = resolve_href(attribute(node, "href", "xlink:href"))

        # EU regulations and directives stay plain text.
        if not href:
            return text
        return f"[{text}]({href})"

    def _footnote(self, node: Tag) -> str:
        marker = attribute(node, "eId", "eid", "marker")
        if not marker:
            return ""
        text = normalize_whitespace(node.get_text())
        return self.context.add_footnote(marker, text)


def render_table(node: Tag) -> str:
    """Render a ``table`` element as a Markdown table.

    Pipes inside cells are escaped and a separator row follows the first
    row, which Markdown treats as the header.
    """

    lines = []
    for index, row in enumerate(find_all_named(node, "tr")):
        cells = find_all_named(row, "td", "th")
        texts = [
            normalize_whitespace(cell.get_text()).replace("|", "\\|")
            for cell in cells
        ]
        lines.append("|" + "".join(f" {text} |" for text in texts))
        if index == 0:
            lines.append("|" + " --- |" * len(cells))

    return subs_accent("\n".join(lines))
