"""Build a document tree from NormeInRete markup.

NIR sources are far less regular than Akoma Ntoso ones. Article headings
("rubrica") are frequently missing and embedded in the first clause, the
first article of a law can swallow the whole enactment formula, and
clause boundaries have to be recovered from the text itself.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

from attrs import define, field
from bs4 import BeautifulSoup, Tag

from .context import BuildContext
from .inline import SHARED_INLINE, InlineRenderer, render_table
from .markdown import NEW_COMMA_RE
from .markup import (
    attribute,
    child_elements,
    child_text,
    find_all_named,
    find_first,
    first_child,
    is_text,
    local_name,
    normalize_whitespace,
)
from .section import DocumentSection, SectionType
from .typography import subs_accent

logger = logging.getLogger(__name__)

ATTACHMENTS_TITLE = "Allegati"
ATTACHMENT_FALLBACK_TITLE = "Allegato"
ATTACHMENT_LINK_TEXT = "Vedi Allegato"

PREAMBLE_TAGS = ("formula", "p", "citations")

# Heading candidates are only searched among the first nodes of a clause.
MAX_RUBRICA_NODES = 15
MAX_RUBRICA_CANDIDATES = 6
MAX_RUBRICA_LENGTH = 200

FIRST_CLAUSE_RE = re.compile(r"^[\(]*\s*1\.?")

# "Art. 1 bis" becomes "Art. 1-bis".
ARTICLE_SUFFIX_RE = re.compile(r"^(Art\.\s*\d+)[\s\-]([a-z]+)")

# Clause number opening a rendered block, escaped to stay literal.
BLOCK_NUMBER_RE = re.compile(r"^([\(]*\d+[\.\d]*[a-z\-]*)\.\s*")

# Indentation expressed in CSS becomes block quotes.
INDENT_PREFIXES = {
    "4": "> ",
    "6": "> >  ",
    "8": "> > >  ",
}


class NirNode(Enum):
    """NormeInRete elements the builder dispatches on."""

    LIBRO = "libro"
    PARTE = "parte"
    TITOLO = "titolo"
    CAPO = "capo"
    SEZIONE = "sezione"
    ARTICOLO = "articolo"
    COMMA = "comma"
    CORPO = "corpo"
    NUM = "num"
    RUBRICA = "rubrica"
    P = "p"
    DIV = "div"
    BR = "br"
    TABLE = "table"
    A = "a"
    NDR = "ndr"
    TESTATA = "testata"
    RIFESTERNO = "rifesterno"
    META = "meta"
    OTHER = ""

    @classmethod
    def _missing_(cls, value: object) -> NirNode:
        return cls.OTHER

    @classmethod
    def of(cls, node: Any) -> NirNode:  # noqa: ANN401
        """Classify ``node`` by its local tag name."""

        return cls(local_name(node))


CONTAINER_TYPES = {
    NirNode.LIBRO: SectionType.PART,
    NirNode.PARTE: SectionType.PART,
    NirNode.TITOLO: SectionType.TITLE,
    NirNode.CAPO: SectionType.CHAPTER,
    NirNode.SEZIONE: SectionType.SECTION,
}

STRUCTURAL_NAMES = frozenset(
    member.value for member in (*CONTAINER_TYPES, NirNode.ARTICOLO)
)


@define(slots=True)
class PreambleSplit:
    """Nodes of a first clause on either side of the article marker."""

    preamble: list[Any] = field(factory=list)
    article: list[Any] = field(factory=list)


def node_text(node: Any) -> str:  # noqa: ANN401
    """Return the normalized text of a text node or element."""

    if is_text(node):
        return normalize_whitespace(str(node))
    if isinstance(node, Tag):
        return normalize_whitespace(node.get_text())
    return ""


def node_style(node: Any) -> str:  # noqa: ANN401
    """Return the style and class attributes of ``node`` joined together."""

    return " ".join(
        filter(
            None,
            (
                attribute(node, "h:style", "style"),
                attribute(node, "h:class", "class"),
            ),
        )
    )


def is_centered(node: Any) -> bool:  # noqa: ANN401
    style = node_style(node)
    return "center" in style or "zh2" in style


def indent_prefix(style: str) -> str:
    """Map a ``padding-left`` declaration to a block quote prefix."""

    for declaration in style.split(";"):
        name, _, value = declaration.partition(":")
        if name.strip() != "padding-left":
            continue
        value = value.replace("px", "").strip()
        return INDENT_PREFIXES.get(value, "")
    return ""


def same_number(text: str, num: str) -> bool:
    """Tell whether ``text`` only repeats the article number ``num``."""

    return text.rstrip(".").casefold() == num.rstrip(".").casefold()


def strip_token(text: str, prefix: str, heading: bool = False) -> str:
    """Remove a leading copy of ``prefix`` when it ends on a word boundary.

    With ``heading`` set, a prefix followed by lower-case text is kept
    since it opens a sentence instead of repeating the heading.
    """

    pattern = rf"{re.escape(prefix)}(?![\w-])"
    if heading:
        pattern += r"(?!\s*[a-zà-ù])"
    if prefix and re.match(pattern, text):
        return text[len(prefix) :]
    return text


def comma_number(token: str) -> int:
    """Return the integer value of a leading clause number token."""

    match = re.match(r"\d+", token.lstrip("( "))
    return int(match.group()) if match else 0


def clause_container(comma: Tag) -> Tag:
    """Return the element holding the text of a ``comma``."""

    corpo = first_child(comma, "corpo")
    return corpo if corpo is not None else comma


def split_preamble(article: Tag, num: str) -> PreambleSplit | None:
    """Separate an enactment formula swallowed by the first article.

    Some sources nest the whole preamble inside the first clause of
    article 1, followed by a centered paragraph repeating the article
    number. Everything before that marker is preamble text.

    Args:
        article: ``articolo`` element.
        num: Article number, e.g. ``"Art. 1"``.

    Returns:
        The split nodes, or ``None`` when no marker was found.
    """

    if "1" not in num:
        return None

    comma = first_child(article, "comma")
    if comma is None:
        return None

    split = PreambleSplit()
    found = False
    for child in list(clause_container(comma).children):
        if found:
            split.article.append(child)
            continue
        if (
            local_name(child) == "p"
            and same_number(node_text(child), num)
            and is_centered(child)
        ):
            found = True
            continue
        split.preamble.append(child)

    return split if found else None


class NirBuilder:
    """Recursive walker turning NormeInRete markup into sections."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.document = context.document
        self.inline = InlineRenderer(context)

    def build(self, soup: BeautifulSoup) -> None:
        """Populate the context document from the parsed markup."""

        heading = find_first(soup, "intestazione")
        doc_title = (
            find_first(heading, "titoloDoc") if heading is not None else None
        )
        if doc_title is not None:
            title = normalize_whitespace(doc_title.get_text())
            if title:
                self.document.title = subs_accent(title)

        preamble = self._preamble(soup)
        if preamble.content:
            self.document.add_section(preamble)

        articolato = find_first(soup, "articolato")
        if articolato is not None:
            body = self.document.new_section(SectionType.BODY)
            for child in child_elements(articolato):
                self._body_node(body, child)
            self.document.add_section(body)

        annexes = [
            annex
            for wrapper in find_all_named(soup, "annessi")
            for annex in child_elements(wrapper, "annesso")
        ]
        if annexes:
            section = self.document.new_section(
                SectionType.ATTACHMENT, ATTACHMENTS_TITLE
            )
            for annex in annexes:
                self._attachment(section, annex)
            self.document.add_section(section)

    def _preamble(self, soup: BeautifulSoup) -> DocumentSection:
        section = self.document.new_section(SectionType.PREAMBLE)
        for formula in find_all_named(soup, "formulainiziale"):
            for element in child_elements(formula, *PREAMBLE_TAGS):
                text = self.render_node(element).strip()
                if text:
                    section.add_content(text)
        return section

    def _body_node(self, parent: DocumentSection, node: Tag) -> None:
        kind = NirNode.of(node)

        if kind in CONTAINER_TYPES:
            self._container(parent.new_child(CONTAINER_TYPES[kind]), node)
        elif kind is NirNode.ARTICOLO:
            self._article(parent.new_child(SectionType.ARTICLE), node)
        else:
            for child in child_elements(node):
                self._body_node(parent, child)

    def _container(self, section: DocumentSection, node: Tag) -> None:
        num = child_text(node, "num")
        rubrica = child_text(node, "rubrica")

        title = num
        if rubrica:
            title = f"{num} - {rubrica}" if num else rubrica
        section.title = subs_accent(normalize_whitespace(title))

        node_id = attribute(node, "id")
        if node_id:
            section.section_id = self.context.claim_anchor(
                f"{local_name(node)}_{node_id}"
            )

        for child in child_elements(node):
            if NirNode.of(child) not in (NirNode.NUM, NirNode.RUBRICA):
                self._body_node(section, child)

    def _article(self, section: DocumentSection, node: Tag) -> None:
        num = child_text(node, "num").removesuffix(".")
        rubrica = subs_accent(child_text(node, "rubrica"))
        first_comma = first_child(node, "comma")

        split = split_preamble(node, num)
        skip = 0
        if split is not None:
            self._promote_preamble(section, split.preamble)
            if not rubrica:
                rubrica = self._take_rubrica(split.article)
        elif not rubrica and first_comma is not None:
            rubrica, skip = self._fallback_rubrica(first_comma, num)
            if rubrica:
                logger.debug(f"Recovered heading {rubrica!r} for {num!r}")

        rubrica = subs_accent(normalize_whitespace(rubrica))
        section.title = num
        if rubrica:
            num = ARTICLE_SUFFIX_RE.sub(r"\1-\2", num)
            rubrica = normalize_whitespace(strip_token(rubrica, num))
            if rubrica:
                section.title = f"{num} - {rubrica}"
            else:
                section.title = num

        if num:
            section.section_id = self.context.claim_anchor(
                num.replace(".", "_").replace(" ", "").lower()
            )

        for child in child_elements(node):
            kind = NirNode.of(child)
            if kind in (NirNode.NUM, NirNode.RUBRICA):
                continue
            if split is not None and child is first_comma:
                for inner in split.article:
                    text = self.render_node(inner)
                    if text.strip():
                        section.add_content(text.strip())
            elif kind is NirNode.COMMA:
                self._comma(
                    section,
                    child,
                    skip if child is first_comma else 0,
                    num,
                    rubrica,
                )
            else:
                text = self.render_node(child).strip()
                if text:
                    section.add_content(text)

    def _promote_preamble(
        self, section: DocumentSection, nodes: list[Any]
    ) -> None:
        preamble = self.document.new_section(SectionType.PREAMBLE)
        for node in nodes:
            text = self.render_node(node).strip()
            if text:
                preamble.add_content(text)

        if preamble.content and section.root is not None:
            logger.debug("Moving enactment formula out of the first article")
            section.root.promote_preamble(preamble)

    def _take_rubrica(self, nodes: list[Any]) -> str:
        """Pop the article heading from the nodes following the marker."""

        checked = 0
        for index, node in enumerate(nodes):
            if checked >= MAX_RUBRICA_CANDIDATES:
                break
            text = node_text(node)
            if not text:
                continue
            checked += 1

            if FIRST_CLAUSE_RE.match(text):
                break
            if is_centered(node) or len(text) < MAX_RUBRICA_LENGTH:
                del nodes[index]
                return text
        return ""

    def _fallback_rubrica(self, comma: Tag, num: str) -> tuple[str, int]:
        """Look for an article heading among the first nodes of a clause.

        Args:
            comma: First ``comma`` of the article.
            num: Article number.

        Returns:
            The heading text, possibly empty, and the number of leading
            children of the clause that it consumed.
        """

        found: list[str] = []
        skip = 0
        for index, child in enumerate(clause_container(comma).children):
            if index > MAX_RUBRICA_NODES:
                break
            if not isinstance(child, Tag):
                continue

            kind = NirNode.of(child)
            if kind in (NirNode.BR, NirNode.NUM):
                continue
            if kind is not NirNode.P:
                break

            text = node_text(child)
            if same_number(text, num):
                skip = index + 1
                continue

            first_clause = FIRST_CLAUSE_RE.match(text)
            if is_centered(child) or (
                skip > 0
                and len(text) < MAX_RUBRICA_LENGTH
                and not first_clause
            ):
                found.append(text)
                skip = index + 1
                continue
            break

        return " ".join(found), skip

    def _comma(
        self,
        section: DocumentSection,
        comma: Tag,
        skip: int,
        num: str,
        rubrica: str,
    ) -> None:
        """Render a clause, recovering numbered clauses merged into it.

        Args:
            section: Article section receiving the blocks.
            comma: ``comma`` element.
            skip: Leading children already consumed as heading.
            num: Article number, stripped from the start of each chunk.
            rubrica: Article heading, stripped as well.
        """

        number = child_text(comma, "num")
        chunks = []
        for index, child in enumerate(clause_container(comma).children):
            if index < skip or NirNode.of(child) is NirNode.NUM:
                continue
            text = self.render_node(child)
            if not text.strip():
                continue
            text = strip_token(text, num)
            if rubrica:
                text = strip_token(text, rubrica, heading=True)
            chunks.append(text)

        if number and chunks:
            value = number.removesuffix(".")
            pattern = rf"^\(*\s*{re.escape(value)}(?!\d)"
            if not re.match(pattern, chunks[0].lstrip()):
                chunks[0] = f"{value}\\. {chunks[0].lstrip()}"

        buffer: list[str] = []
        current = ""
        last_number = 0
        for line in "\n\n".join(chunks).split("\n\n"):
            # Tables keep their row breaks.
            if line.lstrip().startswith("|"):
                line = line.strip()
            else:
                line = normalize_whitespace(line)
            if not line:
                continue

            match = NEW_COMMA_RE.match(line)
            if match:
                value = comma_number(match.group())
                # Cross references may look like clause numbers too.
                if value >= last_number:
                    last_number = value
                    if current and match.group() != current:
                        section.add_content(
                            subs_accent("\n\n".join(buffer).strip())
                        )
                        buffer = []
                    current = match.group()
            buffer.append(line)

        if buffer:
            section.add_content(subs_accent("\n\n".join(buffer).strip()))

    def _attachment(self, parent: DocumentSection, node: Tag) -> None:
        testata = first_child(node, "testata")
        names = []
        if testata is not None:
            for name in ("denAnnesso", "titAnnesso"):
                element = find_first(testata, name)
                if element is not None:
                    text = normalize_whitespace(element.get_text())
                    if text:
                        names.append(text)

        section = parent.new_child(
            SectionType.ATTACHMENT,
            subs_accent(" - ".join(names)) or ATTACHMENT_FALLBACK_TITLE,
        )
        node_id = attribute(node, "id")
        if node_id:
            section.section_id = self.context.claim_anchor(node_id)

        for child in child_elements(node):
            kind = NirNode.of(child)
            if kind in (NirNode.TESTATA, NirNode.META):
                continue
            if kind is NirNode.RIFESTERNO:
                link = attribute(child, "xlink:href", "href")
                if link:
                    section.add_content(f"[{ATTACHMENT_LINK_TEXT}]({link})")
            elif local_name(child) in STRUCTURAL_NAMES or find_all_named(
                child, *STRUCTURAL_NAMES
            ):
                self._body_node(section, child)
            else:
                text = self.render_node(child).strip()
                if text:
                    section.add_content(text)

    def render_node(self, node: Any) -> str:  # noqa: ANN401
        """Render a NIR node, text or element, as Markdown."""

        if is_text(node):
            return str(node).strip()
        if not isinstance(node, Tag):
            return ""

        kind = NirNode.of(node)

        if kind is NirNode.P or kind is NirNode.DIV:
            prefix = indent_prefix(attribute(node, "h:style", "style"))
            return prefix + self.render_inner(node)
        if kind is NirNode.BR:
            return "\n"
        if kind is NirNode.TABLE:
            return render_table(node)
        if kind is NirNode.A:
            text = self.render_inner(node)
            href = attribute(node, "href", "xlink:href")
            return f"[{text}]({href})" if href else text
        if kind is NirNode.NDR:
            return attribute(node, "value") or self.render_inner(node)
        if local_name(node) in SHARED_INLINE:
            return self.inline.render_node(node)
        return self.render_inner(node)

    def render_inner(self, node: Tag) -> str:
        """Render the children of ``node`` as one normalized block."""

        parts = [self.render_node(child) + "\n\n" for child in node.children]
        text = subs_accent(normalize_whitespace("".join(parts)))
        return BLOCK_NUMBER_RE.sub(r"\1\\. ", text, count=1)
