"""Serialize converted documents to JSON or YAML and back."""

from __future__ import annotations

try:
    import orjson  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - optional dependency
    orjson = None  # type: ignore[assignment]

import json

import yaml  # type: ignore[import-untyped]

from normamd.parser.document import Document

SNAPSHOT_FORMATS = ("json", "yaml")


def json_dumps(data: object, indent: bool = False) -> str:
    """Serialize data to a JSON string.

    Args:
        data: Data structure to serialize.
        indent: Pretty-print with two spaces per level.

    Returns:
        JSON representation of ``data``.
    """

    if orjson is not None:
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(data, option=option).decode()
    return json.dumps(data, ensure_ascii=False, indent=2 if indent else None)


def json_loads(data: str | bytes) -> object:
    """Deserialize JSON data from a string or bytes.

    Args:
        data: JSON content as ``str`` or ``bytes``.

    Returns:
        Parsed JSON object.
    """

    if orjson is not None:
        return orjson.loads(data)
    if isinstance(data, (bytes, bytearray)):
        return json.loads(data.decode())
    return json.loads(data)


def _check_format(fmt: str) -> None:
    if fmt not in SNAPSHOT_FORMATS:
        raise ValueError(f"Unsupported snapshot format: {fmt!r}")


def dump_document(document: Document, fmt: str = "json") -> str:
    """Serialize ``document`` as a JSON or YAML snapshot.

    Args:
        document: Converted document.
        fmt: ``"json"`` or ``"yaml"``.

    Returns:
        Snapshot text.
    """

    _check_format(fmt)
    data = document.to_dict()
    if fmt == "json":
        return json_dumps(data, indent=True)
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)


def load_document(text: str | bytes, fmt: str = "json") -> Document:
    """Rebuild a document from a JSON or YAML snapshot."""

    _check_format(fmt)
    if fmt == "json":
        data = json_loads(text)
    else:
        data = yaml.safe_load(text)

    if not isinstance(data, dict):
        raise ValueError("Snapshot does not contain a document mapping")

    try:
        return Document.from_dict(data)
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed snapshot: {exc!r}") from exc
