"""Structural node of a converted document."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from attrs import define, field

from .types import ContentList, JSONDict, SectionList

if TYPE_CHECKING:
    from .document import Document


class SectionType(str, Enum):
    """Kinds of structural nodes found in legislative documents."""

    PREAMBLE = "preamble"
    CHAPTER = "chapter"
    PART = "part"
    TITLE = "title"
    SECTION = "section"
    ARTICLE = "article"
    ATTACHMENT = "attachment"
    BODY = "body"


@define(slots=True)
class DocumentSection:
    """Represents a preamble, container, article or attachment.

    Attributes:
        section_type: Kind of node; ``body`` sections are transparent
            groupings that do not add a heading level.
        title: Heading text, empty when the node has none.
        section_id: Anchor identifier, unique within the document.
        content: Markdown-ready content blocks, rendered before children.
        children: Nested sections in document order.
        root: Owning document. Not part of equality or snapshots.
    """

    section_type: SectionType
    title: str = ""
    section_id: str | None = None
    content: ContentList = field(factory=list)
    children: SectionList = field(factory=list, repr=False)
    root: Document | None = field(default=None, eq=False, repr=False)

    def add_content(self, content: str) -> None:
        """Append a content block."""

        self.content.append(content)

    def add_section(self, section: DocumentSection) -> None:
        """Append a child section."""

        self.children.append(section)

    def new_child(
        self, section_type: SectionType, title: str = ""
    ) -> DocumentSection:
        """Create a child section attached to the same document."""

        child = DocumentSection(section_type, title, root=self.root)
        self.add_section(child)
        return child

    def to_dict(self) -> JSONDict:
        """Return the snapshot representation of the section tree."""

        data: JSONDict = {}
        if self.section_id:
            data["id"] = self.section_id
        data["type"] = self.section_type.value
        data["title"] = self.title
        data["children"] = [child.to_dict() for child in self.children]
        data["content"] = list(self.content)
        return data

    @classmethod
    def from_dict(
        cls, data: JSONDict, root: Document | None = None
    ) -> DocumentSection:
        """Rebuild a section tree from its snapshot representation.

        Args:
            data: Mapping produced by ``to_dict``.
            root: Document the rebuilt sections belong to.

        Returns:
            The rebuilt section.
        """

        section = cls(
            SectionType(data["type"]),
            data.get("title") or "",
            section_id=data.get("id") or None,
            content=list(data.get("content") or []),
            root=root,
        )
        for child in data.get("children") or []:
            section.add_section(cls.from_dict(child, root))
        return section
