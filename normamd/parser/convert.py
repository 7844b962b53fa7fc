"""Convert legislative XML into a document tree or Markdown."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag, UnicodeDammit
from bs4.builder import ParserRejectedMarkup
from lxml import etree

from .akn import AknBuilder
from .context import BuildContext
from .detect import Dialect, detect_format
from .document import Document
from .markup import normalize_markup
from .nir import NirBuilder

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised when the source markup cannot be parsed at all."""


def _decode(xml: bytes | str) -> str:
    if isinstance(xml, str):
        return xml

    # The XML declaration wins over sniffing.
    dammit = UnicodeDammit(xml, is_html=False)
    if dammit.unicode_markup is None:
        raise ParseError("Unable to decode the document")
    return dammit.unicode_markup


def parse_markup(text: str) -> BeautifulSoup:
    """Parse normalized markup with the lxml XML parser.

    Args:
        text: Markup without self-closing element tags.

    Returns:
        The parsed tree.

    Raises:
        ParseError: The parser rejected the markup or found no element.
    """

    if not text.strip():
        raise ParseError("The document is empty")

    # The text is already decoded; its XML declaration no longer applies.
    try:
        soup = BeautifulSoup(
            text.encode("utf-8"), "xml", from_encoding="utf-8"
        )
    except (ParserRejectedMarkup, etree.LxmlError) as exc:
        raise ParseError(f"Markup rejected by the parser: {exc}") from exc

    if not any(isinstance(child, Tag) for child in soup.children):
        raise ParseError("The document contains no element")
    return soup


def from_xml(
    xml: bytes | str,
    code: str = "",
    name: str = "",
    publication_date: str = "",
    vigenza: str = "",
) -> Document:
    """Build a ``Document`` from AKN or NIR markup.

    Args:
        xml: Raw document, bytes or already decoded text.
        code: Editorial code of the act.
        name: Display name of the act.
        publication_date: Publication date of the act.
        vigenza: As-of date of the text version, ``YYYY-MM-DD``.

    Returns:
        The converted document.

    Raises:
        ParseError: The markup could not be parsed.
    """

    dialect = detect_format(xml)
    logger.debug(f"Detected {dialect.name} markup")

    soup = parse_markup(normalize_markup(_decode(xml)))

    document = Document(
        code=code,
        name=name,
        publication_date=publication_date,
        vigenza=vigenza,
    )
    context = BuildContext(document)

    # Pick the walker matching the dialect.
    if dialect is Dialect.NIR:
        NirBuilder(context).build(soup)
    else:
        AknBuilder(context).build(soup)

    document.footnotes = context.footnotes
    return document


def xml_to_markdown(
    xml: bytes | str,
    code: str = "",
    name: str = "",
    publication_date: str = "",
    vigenza: str = "",
) -> str:
    """Convert AKN or NIR markup straight to Markdown."""

    return from_xml(
        xml,
        code=code,
        name=name,
        publication_date=publication_date,
        vigenza=vigenza,
    ).to_markdown()
