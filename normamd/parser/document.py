"""Root entity of a converted legislative document."""

from __future__ import annotations

from attrs import define, field

from .markdown import render_document
from .section import DocumentSection, SectionType
from .types import FootnoteMap, JSONDict, SectionList


@define(slots=True)
class Document:
    """A legislative document rebuilt from AKN or NIR markup.

    Attributes:
        code: Editorial code of the act ("codice redazionale").
        name: Display name of the act.
        publication_date: Publication date in the Official Gazette.
        vigenza: As-of date of the text version, ``YYYY-MM-DD``.
        title: Document title.
        sections: Top-level sections in rendering order.
        footnotes: Footnote texts keyed by marker, in insertion order.
    """

    code: str = ""
    name: str = ""
    publication_date: str = ""
    vigenza: str = ""
    title: str = ""
    sections: SectionList = field(factory=list, repr=False)
    footnotes: FootnoteMap = field(factory=dict, repr=False)

    def new_section(
        self, section_type: SectionType, title: str = ""
    ) -> DocumentSection:
        """Create a detached section owned by this document."""

        return DocumentSection(section_type, title, root=self)

    def add_section(self, section: DocumentSection) -> None:
        """Append a top-level section."""

        self.sections.append(section)

    def promote_preamble(self, preamble: DocumentSection) -> None:
        """Place a preamble recovered from inside an article first.

        NIR sources often bury the enacting formula inside the first comma
        of article 1; once recovered it always lands before every other
        top-level section.
        """

        self.sections.insert(0, preamble)

    def to_markdown(self) -> str:
        """Render the document as Markdown."""

        return render_document(self)

    def to_dict(self) -> JSONDict:
        """Return the snapshot representation of the document."""

        return {
            "name": self.name,
            "title": self.title,
            "code": self.code,
            "publication_date": self.publication_date,
            "vigenza": self.vigenza,
            "sections": [section.to_dict() for section in self.sections],
            "footnotes": dict(self.footnotes),
        }

    @classmethod
    def from_dict(cls, data: JSONDict) -> Document:
        """Rebuild a document from its snapshot representation.

        Args:
            data: Mapping produced by ``to_dict``.

        Returns:
            The rebuilt document, with section back-references restored.
        """

        document = cls(
            code=data.get("code") or "",
            name=data.get("name") or "",
            publication_date=data.get("publication_date") or "",
            vigenza=data.get("vigenza") or "",
            title=data.get("title") or "",
            footnotes=dict(data.get("footnotes") or {}),
        )
        for section in data.get("sections") or []:
            document.add_section(DocumentSection.from_dict(section, document))
        return document
