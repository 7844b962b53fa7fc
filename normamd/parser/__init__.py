"""Parser package for Italian legislative XML documents."""

from .convert import ParseError, from_xml, xml_to_markdown
from .detect import Dialect, detect_format
from .document import Document
from .markup import normalize_markup
from .section import DocumentSection, SectionType

__all__ = [
    "Dialect",
    "Document",
    "DocumentSection",
    "ParseError",
    "SectionType",
    "detect_format",
    "from_xml",
    "normalize_markup",
    "xml_to_markdown",
]
