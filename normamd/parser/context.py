"""Per-conversion state shared by the tree builders."""

from __future__ import annotations

from attrs import define, field

from .document import Document
from .types import FootnoteMap

# Anchor emitted in front of the document title.
RESERVED_ANCHORS = frozenset({"preamble"})


@define(slots=True)
class BuildContext:
    """Accumulator threaded through one conversion.

    Attributes:
        document: Document being built.
        footnotes: Footnote texts keyed by marker, in insertion order.
        anchors: Anchors already assigned in the document.
    """

    document: Document
    footnotes: FootnoteMap = field(factory=dict)
    anchors: set[str] = field(factory=lambda: set(RESERVED_ANCHORS))

    def add_footnote(self, marker: str, text: str) -> str:
        """Record a footnote and return its inline reference.

        Args:
            marker: Footnote identifier.
            text: Footnote text.

        Returns:
            Markdown footnote reference for ``marker``.
        """

        self.footnotes[marker] = text
        return f"[^{marker}]"

    def claim_anchor(self, anchor: str) -> str:
        """Reserve ``anchor``, suffixing ``-2``, ``-3``... on collisions."""

        candidate = anchor
        counter = 2
        while candidate in self.anchors:
            candidate = f"{anchor}-{counter}"
            counter += 1
        self.anchors.add(candidate)
        return candidate
