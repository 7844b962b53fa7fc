"""Build a document tree from Akoma Ntoso markup."""

from __future__ import annotations

import logging
import re
from enum import Enum

from bs4 import BeautifulSoup, Tag

from .context import BuildContext
from .inline import InlineRenderer, render_table
from .markup import (
    attribute,
    child_elements,
    child_text,
    find_all_named,
    find_first,
    first_child,
    local_name,
    normalize_whitespace,
    strict_text,
)
from .section import DocumentSection, SectionType
from .typography import subs_accent

logger = logging.getLogger(__name__)

ATTACHMENTS_TITLE = "Allegati"
ATTACHMENT_FALLBACK_TITLE = "Allegato"

# Structural keyword followed by a roman or arabic numeral.
HEADING_KEYWORD_RE = re.compile(
    r"\b(PARTE|TITOLO|CAPO|SEZIONE)\b\s+([IVXLCDM]+|\d+)\b"
)
UPPER_WORD_RE = re.compile(r"^[A-ZÀ-Ý][A-ZÀ-Ý'\-]*$")

# Leading clause number of an inserted ``((...))`` line.
INSERTED_COMMA_RE = re.compile(r"^[\(\s]*\d+[a-z-]*\.?")

UPDATE_MARKERS = ("---", "AGGIORNAMENTO")

# Elements of a quoted structure that start a new quote line.
QUOTED_BLOCKS = frozenset(
    {
        "article",
        "chapter",
        "content",
        "heading",
        "intro",
        "list",
        "num",
        "p",
        "paragraph",
        "point",
    }
)

KEYWORD_TYPES = {
    "PARTE": SectionType.PART,
    "TITOLO": SectionType.TITLE,
    "CAPO": SectionType.CHAPTER,
    "SEZIONE": SectionType.SECTION,
}


class AknNode(Enum):
    """Akoma Ntoso elements the builder dispatches on."""

    CHAPTER = "chapter"
    PART = "part"
    TITLE = "title"
    SECTION = "section"
    ARTICLE = "article"
    PARAGRAPH = "paragraph"
    CLAUSE = "clause"
    CONTENT = "content"
    NUM = "num"
    HEADING = "heading"
    P = "p"
    LIST = "list"
    TABLE = "table"
    QUOTED_STRUCTURE = "quotedStructure"
    OTHER = ""

    @classmethod
    def _missing_(cls, value: object) -> AknNode:
        return cls.OTHER

    @classmethod
    def of(cls, node: Tag) -> AknNode:
        """Classify ``node`` by its local tag name."""

        return cls(local_name(node))


CONTAINER_TYPES = {
    AknNode.CHAPTER: SectionType.CHAPTER,
    AknNode.PART: SectionType.PART,
    AknNode.TITLE: SectionType.TITLE,
    AknNode.SECTION: SectionType.SECTION,
}

PREAMBLE_TAGS = ("formula", "p", "citations")

# Article children routed to a content handler.
BODY_KINDS = frozenset(
    {
        AknNode.PARAGRAPH,
        AknNode.CLAUSE,
        AknNode.LIST,
        AknNode.TABLE,
        AknNode.QUOTED_STRUCTURE,
    }
)


def is_update_marker(text: str) -> bool:
    """Tell whether ``text`` opens an amendment ("aggiornamento") block."""

    return text.startswith(UPDATE_MARKERS)


def split_complex_heading(text: str) -> list[tuple[SectionType | None, str]]:
    """Split a heading that flattens several structural levels.

    ``"PARTE I - Principi TITOLO II - Norme"`` yields one segment per
    keyword. Without keywords, runs of upper-case words following
    lower-case text start new segments. Each segment comes with the section
    type implied by its keyword, or ``None`` when there is none.

    Args:
        text: Full heading of a container.

    Returns:
        Heading segments; a single segment means nothing was split.
    """

    matches = list(HEADING_KEYWORD_RE.finditer(text))
    if matches:
        if len(matches) < 2:
            return [(None, text)]

        segments = []
        for index, match in enumerate(matches):
            start = 0 if index == 0 else match.start()
            end = (
                matches[index + 1].start()
                if index + 1 < len(matches)
                else len(text)
            )
            part = _clean_segment(text[start:end])
            segments.append((KEYWORD_TYPES[match.group(1)], part))
        return segments

    return [(None, segment) for segment in _split_upper_runs(text)]


def _clean_segment(part: str) -> str:
    part = part.replace("- -", " ")
    return part.strip().rstrip("-").strip()


def _split_upper_runs(text: str) -> list[str]:
    """Group ``text`` into segments opened by upper-case word runs."""

    words = text.split()
    segments: list[list[str]] = [[]]

    index = 0
    while index < len(words):
        # Measure the upper-case run starting at ``index``.
        end = index
        while end < len(words) and UPPER_WORD_RE.match(words[end]):
            end += 1

        current = segments[-1]
        follows_lower = len(current) > 1 and any(
            char.islower() for char in current[-1]
        )
        if end - index >= 2 and follows_lower:
            segments.append(words[index:end])
            index = end
            continue

        if end > index:
            current.extend(words[index:end])
            index = end
        else:
            current.append(words[index])
            index += 1

    return [
        _clean_segment(" ".join(segment)) for segment in segments if segment
    ]


class AknBuilder:
    """Recursive walker turning Akoma Ntoso markup into sections."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.document = context.document
        self.inline = InlineRenderer(context)

    def build(self, soup: BeautifulSoup) -> None:
        """Populate the context document from the parsed markup."""

        preface = find_first(soup, "preface")
        doc_title = (
            find_first(preface, "docTitle") if preface is not None else None
        )
        if doc_title is not None:
            title = normalize_whitespace(doc_title.get_text())
            if title:
                self.document.title = subs_accent(title)

        self.document.add_section(self._preamble(soup))

        body_node = find_first(soup, "body")
        if body_node is not None:
            body = self.document.new_section(SectionType.BODY)
            for child in child_elements(body_node):
                self._body_node(body, child)
            self.document.add_section(body)

        attachments = [
            attachment
            for wrapper in find_all_named(soup, "attachments")
            for attachment in child_elements(wrapper, "attachment")
        ]
        if attachments:
            section = self.document.new_section(
                SectionType.ATTACHMENT, ATTACHMENTS_TITLE
            )
            for attachment in attachments:
                self._attachment(section, attachment)
            self.document.add_section(section)

    def _preamble(self, soup: BeautifulSoup) -> DocumentSection:
        section = self.document.new_section(SectionType.PREAMBLE)
        for preamble in find_all_named(soup, "preamble"):
            for element in child_elements(preamble, *PREAMBLE_TAGS):
                text = subs_accent(
                    normalize_whitespace(self.inline.render(element))
                )
                if text:
                    section.add_content(text)
        return section

    def _anchor(self, node: Tag) -> str | None:
        eid = attribute(node, "eId", "eid")
        return self.context.claim_anchor(eid) if eid else None

    def _body_node(self, parent: DocumentSection, node: Tag) -> None:
        kind = AknNode.of(node)

        if kind in CONTAINER_TYPES:
            self._container(parent.new_child(CONTAINER_TYPES[kind]), node)
        elif kind is AknNode.ARTICLE:
            self._article(parent.new_child(SectionType.ARTICLE), node)
        else:
            for child in child_elements(node):
                self._body_node(parent, child)

    def _container(self, section: DocumentSection, node: Tag) -> None:
        num = child_text(node, "num")
        heading_node = first_child(node, "heading")
        heading = (
            normalize_whitespace(strict_text(heading_node))
            if heading_node is not None
            else ""
        )

        full_heading = heading
        if num and num != "-":
            full_heading = f"{num} {heading}" if heading else num
        full_heading = subs_accent(normalize_whitespace(full_heading))

        section.section_id = self._anchor(node)

        # Headings such as "PARTE I ... TITOLO II ..." hide nested levels.
        segments = split_complex_heading(full_heading) if full_heading else []
        target = section
        if segments:
            section.title = segments[0][1]
            for section_type, title in segments[1:]:
                target = target.new_child(
                    section_type or section.section_type, title
                )
        if len(segments) > 1:
            logger.debug(
                f"Split heading {full_heading!r} into {len(segments)} levels"
            )

        for child in child_elements(node):
            if AknNode.of(child) not in (AknNode.NUM, AknNode.HEADING):
                self._body_node(target, child)

    def _article(self, section: DocumentSection, node: Tag) -> None:
        num = child_text(node, "num")
        heading_node = first_child(node, "heading")
        first_paragraph = first_child(node, "paragraph")

        heading = ""
        if heading_node is not None:
            # Body elements nested in a heading are rendered as content.
            heading = subs_accent(
                normalize_whitespace(
                    "".join(
                        self.inline.render_node(child)
                        for child in heading_node.children
                        if AknNode.of(child) not in BODY_KINDS
                    )
                )
            )

        # A short first paragraph without period is often the heading.
        heading_in_paragraph = False
        if (
            not heading
            and first_paragraph is not None
            and not attribute(first_paragraph, "eId", "eid")
            and first_child(first_paragraph, "num") is None
        ):
            candidate = subs_accent(
                normalize_whitespace(self.inline.render(first_paragraph))
            )
            if candidate and "." not in candidate:
                heading = candidate
                heading_in_paragraph = True

        section.section_id = self._anchor(node)
        section.title = (
            f"{num.removesuffix('.')} - {heading}" if heading else num
        )

        if heading_node is not None:
            for child in child_elements(heading_node):
                self._article_child(section, child)

        for child in child_elements(node):
            kind = AknNode.of(child)
            if kind in (AknNode.NUM, AknNode.HEADING):
                continue
            if kind is AknNode.PARAGRAPH and heading_in_paragraph:
                heading_in_paragraph = False
                continue
            self._article_child(section, child)

    def _article_child(self, section: DocumentSection, node: Tag) -> None:
        kind = AknNode.of(node)

        if kind in (AknNode.PARAGRAPH, AknNode.CLAUSE):
            self._paragraph(section, node)
        elif kind is AknNode.LIST:
            section.add_content(self.render_list(node).rstrip())
        elif kind is AknNode.TABLE:
            section.add_content(render_table(node))
        elif kind is AknNode.QUOTED_STRUCTURE:
            section.add_content(self.render_quoted(node))

    def _paragraph(self, section: DocumentSection, node: Tag) -> None:
        number = normalize_whitespace(
            " ".join(num.get_text() for num in child_elements(node, "num"))
        )

        for child in child_elements(node):
            kind = AknNode.of(child)
            if kind is AknNode.NUM:
                continue
            if kind is AknNode.CONTENT:
                for inner in child_elements(child):
                    number = self._paragraph_node(section, inner, number)
            else:
                number = self._paragraph_node(section, child, number)

    def _paragraph_node(
        self, section: DocumentSection, node: Tag, number: str
    ) -> str:
        """Render one child of a paragraph.

        Args:
            section: Section receiving the content blocks.
            node: Child element of the paragraph or of its ``content``.
            number: Paragraph number still waiting to be emitted.

        Returns:
            The number still pending after this node; it is attached to the
            first emitted block only.
        """

        kind = AknNode.of(node)

        if kind is AknNode.P:
            return self._p(section, node, number)

        text = ""
        if kind is AknNode.LIST:
            text = self.render_list(node).rstrip()
            if number:
                text = f"{number.removesuffix('.')}\\. {text}"
                number = ""
        elif kind is AknNode.TABLE:
            text = render_table(node)
        elif kind is AknNode.QUOTED_STRUCTURE:
            text = self.render_quoted(node)

        if text.strip():
            section.add_content(text)
        return number

    def _p(self, section: DocumentSection, node: Tag, number: str) -> str:
        text = self.inline.render(node)

        if number:
            clean = re.escape(number.removesuffix("."))
            text = re.sub(rf"^\s*{clean}(?!\d)\.?\s*", "", text, count=1)

        for line in text.strip().split("\n"):
            line = subs_accent(normalize_whitespace(line))

            # "((2-bis. testo))" inserts a new numbered clause.
            if line.startswith("((") and line.endswith("))"):
                match = INSERTED_COMMA_RE.match(line)
                if match and len(line) > match.end() + 2:
                    number = match.group().lstrip("( ")
                    line = "((" + line[match.end() :].strip()

            if not line or line in ("((", "))"):
                continue

            if is_update_marker(line):
                self._updates(section, node)
                break

            if number:
                section.add_content(f"{number.removesuffix('.')}\\. {line}")
                number = ""
            else:
                section.add_content(line)

        return number

    def _updates(self, section: DocumentSection, node: Tag) -> None:
        """Render an amendment block as a quote following its marker."""

        lines = []
        in_update = False
        for line in self.inline.render(node).split("\n"):
            line = line.strip()
            if not in_update and is_update_marker(line):
                in_update = True
            elif in_update and line:
                lines.append(f"> {line}\n> \n")

        text = subs_accent("".join(lines))
        if text:
            section.add_content(text.rstrip())

    def render_list(self, node: Tag, indent: int = 0) -> str:
        """Render a ``list`` element, recursing into nested lists.

        Args:
            node: ``list`` element.
            indent: Nesting depth; two spaces per level.

        Returns:
            Markdown text of the list.
        """

        pad = "  " * indent
        parts: list[str] = []

        intro = normalize_whitespace(
            "".join(i.get_text() for i in child_elements(node, "intro"))
        )
        if intro:
            parts.append(f"{pad}{intro}\n\n")

        for item in child_elements(node, "point", "item"):
            num = normalize_whitespace(
                "".join(n.get_text() for n in child_elements(item, "num"))
            )
            content = first_child(item, "content") or item

            text = " ".join(
                normalize_whitespace(self.inline.render(p))
                for p in _item_paragraphs(content)
            )
            if num:
                parts.append(f"{pad}**{num}** {text}\n\n")
            else:
                parts.append(f"{pad}- {text}\n")

            nested = child_elements(item, "list")
            if content is not item:
                nested += child_elements(content, "list")
            for sub_list in nested:
                parts.append(self.render_list(sub_list, indent + 1))

        return subs_accent("".join(parts))

    def render_quoted(self, node: Tag) -> str:
        """Render a quoted structure as a Markdown block quote."""

        lines = [
            f"> {line.strip()}"
            for line in self._quoted_text(node).split("\n")
            if line.strip()
        ]
        return subs_accent("\n".join(lines))

    def _quoted_text(self, node: Tag) -> str:
        parts = []
        for child in node.children:
            if local_name(child) in QUOTED_BLOCKS:
                parts.append(f"\n{self._quoted_text(child)}\n")
            else:
                parts.append(self.inline.render_node(child))
        return "".join(parts)

    def _attachment(self, parent: DocumentSection, node: Tag) -> None:
        documents = child_elements(node)
        doc = documents[0] if documents else node

        name = attribute(doc, "name")
        section = parent.new_child(
            SectionType.ATTACHMENT,
            subs_accent(name) if name else ATTACHMENT_FALLBACK_TITLE,
        )
        if name:
            section.section_id = self.context.claim_anchor(
                name.replace(" ", "-").lower()
            )

        main_body = find_first(doc, "mainBody")
        if main_body is None:
            return

        for child in child_elements(main_body):
            kind = AknNode.of(child)
            if kind is AknNode.ARTICLE:
                self._article(section.new_child(SectionType.ARTICLE), child)
            elif kind is AknNode.PARAGRAPH:
                self._paragraph(section, child)
            else:
                text = subs_accent(self.inline.render(child)).strip()
                if is_update_marker(text):
                    self._updates(section, child)
                elif text:
                    section.add_content(text.replace("\n", "\n\n"))


def _item_paragraphs(node: Tag) -> list[Tag]:
    """Return the ``p`` descendants of a list item outside nested lists."""

    found: list[Tag] = []
    for child in child_elements(node):
        name = local_name(child)
        if name == "p":
            found.append(child)
        elif name != "list":
            found.extend(_item_paragraphs(child))
    return found
