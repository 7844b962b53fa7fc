"""Render a document tree as Markdown."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .section import DocumentSection, SectionType
from .typography import subs_accent

if TYPE_CHECKING:
    from .document import Document

MIN_LEVEL = 1
MAX_LEVEL = 6
MIN_ARTICLE_LEVEL = 3

# Level 1 belongs to the document title.
TOP_LEVEL = 2

# Leading clause number such as ``1.``, ``2-bis\.`` or ``((3.``.
NEW_COMMA_RE = re.compile(r"^[\(\s]*\d+[a-z-]*\\?\.[\s\)]+")

# Amendment annotations wrapped in double parentheses.
INSERTION_RE = re.compile(r"\(\(([^)]+|[^)]*\)\s[^)]*)\)\)")

FOOTNOTE_REF_RE = re.compile(r"\[\^([^\]]+)\](?!:)")


def anchor(anchor_id: str) -> str:
    """Return the HTML anchor used for deep links."""

    return f'<span id="{anchor_id}"></span>'


def heading_level(section: DocumentSection, level: int) -> int:
    """Clamp the nominal nesting ``level`` to a valid Markdown header depth.

    Articles never render shallower than level 3.
    """

    if section.section_type is SectionType.ARTICLE:
        level = max(level, MIN_ARTICLE_LEVEL)
    return min(max(level, MIN_LEVEL), MAX_LEVEL)


def render_content(content: str) -> str:
    """Bold the leading clause number and any ``((...))`` annotation."""

    prefix = ""
    match = NEW_COMMA_RE.match(content)
    if match:
        prefix = f"**{match.group().strip()}** "
        content = content[match.end() :]

    content = INSERTION_RE.sub(r"**((\1))**", content)
    return subs_accent(prefix + content)


def render_section(
    section: DocumentSection, level: int, parts: list[str]
) -> None:
    """Append the Markdown of ``section`` and its subtree to ``parts``.

    Args:
        section: Section to render.
        level: Nominal nesting depth of the section.
        parts: Output buffer.
    """

    if section.section_id:
        parts.append(anchor(section.section_id) + "\n\n")

    if section.title:
        prefix = "#" * heading_level(section, level)
        parts.append(f"{prefix} {subs_accent(section.title)}\n\n")

    for content in section.content:
        parts.append(render_content(content) + "\n\n")

    # Body sections only group their children.
    child_level = level + 1
    if section.section_type is SectionType.BODY:
        child_level = level
    for child in section.children:
        render_section(child, child_level, parts)


def format_vigenza(vigenza: str) -> str:
    """Turn ``YYYY-MM-DD`` into ``DD-MM-YYYY``; other values pass through."""

    pieces = vigenza.split("-")
    if len(pieces) == 3:
        return "-".join(reversed(pieces))
    return vigenza


def referenced_footnotes(text: str) -> set[str]:
    """Return the footnote markers referenced in ``text``."""

    return set(FOOTNOTE_REF_RE.findall(text))


def render_document(document: Document) -> str:
    """Render ``document`` as a Markdown string.

    Args:
        document: Converted document.

    Returns:
        Markdown text, with a footnote appendix restricted to the markers
        that actually appear in the body.
    """

    parts: list[str] = []

    if document.vigenza:
        parts.append(
            f"*Testo in vigore al: {format_vigenza(document.vigenza)}*\n\n"
        )

    if document.title:
        parts.append(anchor("preamble") + "\n\n")
        parts.append(f"# {subs_accent(document.title)}\n\n")

    for section in document.sections:
        render_section(section, TOP_LEVEL, parts)

    body = "".join(parts)

    used = referenced_footnotes(body)
    notes = [
        f"[^{marker}]: {subs_accent(text)}\n\n"
        for marker, text in document.footnotes.items()
        if marker in used
    ]
    if notes:
        body += "\n---\n\n## Note\n\n" + "".join(notes)

    return body
