"""Show name normalization.

Two show names refer to the same show iff their normalized forms are equal.
"""

import re

# Apostrophes (straight and curly), double quotes, commas, colons,
# semicolons and hyphens
_STRIP_PATTERN = re.compile(r"['‘’\",:;\-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_show_name(name: str) -> str:
    """Normalize a show name for identity comparison.

    Lowercases, trims, strips punctuation and collapses whitespace runs.

    Args:
        name: Show name as displayed or as parsed from a torrent title.

    Returns:
        Normalized name.

    Example:
        >>> normalize_show_name("Demon Slayer: Kimetsu no Yaiba")
        'demon slayer kimetsu no yaiba'
    """
    name = name.lower().strip()
    name = _STRIP_PATTERN.sub("", name)
    return _WHITESPACE_PATTERN.sub(" ", name)


def same_show(first: str, second: str) -> bool:
    """Check if two names normalize to the same show identity."""
    return normalize_show_name(first) == normalize_show_name(second)
