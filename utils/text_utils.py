"""
Text utilities for catalog cells, search matching and file names.
"""

import math
import re
import unicodedata
from typing import Any, Iterable, Optional


def clean_cell(value: Any) -> Optional[str]:
    """
    Clean one cell from an external tabular source.

    - Converts numbers to text ("12" stays "12", 12.0 becomes "12")
    - Strips whitespace, keeps the full text
    - Returns None for missing, NaN and whitespace-only cells

    Args:
        value: Raw cell value (str, number, None, NaN from pandas)

    Returns:
        Cleaned text or None
    """
    if value is None:
        return None

    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            value = int(value)

    text = str(value).strip()

    return text or None


def normalize_search_text(text: Optional[str]) -> str:
    """
    Normalize text for case- and accent-insensitive matching.

    - "Süt Ürünleri" → "sut urunleri"
    - "  Çiğ  Et " → "cig et"

    Args:
        text: Original text (may have accents, mixed case)

    Returns:
        Lowercase ASCII-folded string ("" for empty input)
    """
    if not text:
        return ""

    # Dotless/dotted i do not decompose, fold them by hand
    text = text.replace("ı", "i").replace("İ", "I")

    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize('NFD', text)

    # Remove accent marks (combining characters in Unicode category 'Mn')
    ascii_text = ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )

    return re.sub(r'\s+', ' ', ascii_text).strip().casefold()


def matches_search(parts: Iterable[Optional[str]], search: str) -> bool:
    """True if the search text occurs in any of the given parts."""
    needle = normalize_search_text(search)
    if not needle:
        return True
    haystack = " ".join(normalize_search_text(p) for p in parts if p)
    return needle in haystack


def sanitize_file_name(name: str) -> str:
    """Replace anything outside [a-zA-Z0-9._-] with '-'."""
    return re.sub(r'[^a-zA-Z0-9._-]', '-', name)
