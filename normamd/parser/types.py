"""Common type aliases for document structures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .section import DocumentSection  # noqa: F401


ContentList = list[str]
SectionList = list["DocumentSection"]
FootnoteMap = dict[str, str]
JSONDict = dict[str, Any]
