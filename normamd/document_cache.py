"""File cache for converted documents."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from normamd.parser.document import Document
from normamd.snapshot import dump_document, load_document

logger = logging.getLogger(__name__)

CACHE_DIR = Path.home() / ".normamd" / "cache"
CACHE_DIR_ENV = "NORMAMD_CACHE_DIR"

# Cached documents are considered fresh for one day.
_TTL_SECONDS = 24 * 60 * 60


def resolve_cache_dir(cache_dir: Path | None = None) -> Path:
    """Return the cache directory to use.

    Args:
        cache_dir: Explicit directory; takes precedence over the
            ``NORMAMD_CACHE_DIR`` environment variable.

    Returns:
        The selected directory, not necessarily existing yet.
    """

    if cache_dir is not None:
        return Path(cache_dir)
    env_dir = os.environ.get(CACHE_DIR_ENV)
    return Path(env_dir) if env_dir else CACHE_DIR


def cache_path(
    code: str, vigenza: str, cache_dir: Path | None = None
) -> Path:
    """Return the cache file of the (``code``, ``vigenza``) version."""

    name = f"{code}_{vigenza.replace('-', '')}.json"
    return resolve_cache_dir(cache_dir) / name


def save_document(document: Document, cache_dir: Path | None = None) -> Path:
    """Store ``document`` in the cache.

    Args:
        document: Converted document; its code and vigenza form the key.
        cache_dir: Optional cache directory.

    Returns:
        Path of the written file.
    """

    path = cache_path(document.code, document.vigenza, cache_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_document(document, "json"), encoding="utf-8")
    logger.debug(f"Cached {document.code!r} in {path}")
    return path


def load_cached_document(
    code: str, vigenza: str, cache_dir: Path | None = None
) -> Document | None:
    """Return the cached document when present and still fresh.

    Args:
        code: Editorial code of the act.
        vigenza: As-of date of the text version.
        cache_dir: Optional cache directory.

    Returns:
        The cached document, or ``None`` when missing or expired.
    """

    path = cache_path(code, vigenza, cache_dir)
    if not path.exists():
        return None

    # Expired entries are ignored and overwritten on the next save.
    age = time.time() - path.stat().st_mtime
    if age >= _TTL_SECONDS:
        logger.debug(f"Cache entry {path} expired")
        return None

    return load_document(path.read_text(encoding="utf-8"), "json")
