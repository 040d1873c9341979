"""
Text Utilities for Artist/Album/Title Matching

Provides the normalization used to match iTunes library metadata against
Subsonic catalog metadata. Both sides are normalized with the same function,
so near-identical strings from the two systems land on the same key.

These functions handle common variations like:
- Case differences ("The Beatles" vs "the beatles")
- Escaped text in the library export ("Simon &amp; Garfunkel")
- Punctuation differences ("Guns N' Roses" vs "Guns N Roses")
- A leading definite article ("The Cure" vs "Cure")
"""

import html
import re
from typing import Dict, Iterable, Mapping, Optional

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_")
_LEADING_ARTICLE_RE = re.compile(r"^the\b")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")

MATCH_FIELDS = ('Artist', 'Album', 'Name')


def normalize(raw: Optional[str]) -> str:
    """
    Normalize a metadata string into a matching key.

    Examples:
        "The Beatles!" -> "beatles"
        "Simon &amp; Garfunkel" -> "simon garfunkel"
        "Theatre of Tragedy" -> "theatre of tragedy"

    Args:
        raw: Artist, album or track title as found in either source

    Returns:
        Normalized key; may be an empty string
    """
    result = (raw or "").lower()
    result = html.unescape(result)
    result = _PUNCTUATION_RE.sub("", result)
    result = _LEADING_ARTICLE_RE.sub("", result)
    result = result.strip()
    result = _MULTI_SPACE_RE.sub(" ", result)
    return result


def normalize_fields(record: Mapping[str, str], fields: Iterable[str] = MATCH_FIELDS) -> Dict[str, str]:
    """Normalize the given fields of a library record, skipping absent ones."""
    return {key: normalize(record[key]) for key in fields if key in record}
