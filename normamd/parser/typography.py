"""Fix apostrophe-encoded Italian accented letters."""

from __future__ import annotations

import re

# Ordered substitutions; ``pò`` is restored to the truncated form ``po'``
# after the generic ``o'`` rule has run.
ACCENT_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("a'", "à"),
    ("e'", "é"),
    ("i'", "ì"),
    ("o'", "ò"),
    ("u'", "ù"),
    ("E'", "È"),
    ("pò", "po'"),
)

# ``é`` standing alone between spaces or at either end of the text.
LONE_E_RE = re.compile(r"(?<![^ ])é(?![^ ])")


def subs_accent(text: str) -> str:
    """Replace apostrophe-encoded accents with the accented letters.

    The verb form ``è`` is restored when ``é`` stands alone, which is how
    ``e'`` is commonly typed in the sources. The function is idempotent.

    Args:
        text: Text to correct.

    Returns:
        Corrected text.
    """

    for old, new in ACCENT_REPLACEMENTS:
        text = text.replace(old, new)

    return LONE_E_RE.sub("è", text)
