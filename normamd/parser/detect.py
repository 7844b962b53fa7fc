"""Detect the XML dialect of a legislative document."""

from __future__ import annotations

from enum import Enum

AKN_MARKER = "<akomaNtoso"
NIR_MARKERS = ("<NIR", "NormeInRete")


class Dialect(str, Enum):
    """XML dialects understood by the converter."""

    AKN = "AKN"
    NIR = "NIR"


def detect_format(data: bytes | str) -> Dialect:
    """Classify raw markup as Akoma Ntoso or NormeInRete.

    Ambiguous input is not an error: it falls back to ``Dialect.AKN``.

    Args:
        data: Raw document bytes or decoded text.

    Returns:
        The detected dialect.
    """

    if isinstance(data, (bytes, bytearray)):
        text = bytes(data).decode("utf-8", errors="ignore")
    else:
        text = data

    if AKN_MARKER in text:
        return Dialect.AKN
    if any(marker in text for marker in NIR_MARKERS):
        return Dialect.NIR
    return Dialect.AKN
