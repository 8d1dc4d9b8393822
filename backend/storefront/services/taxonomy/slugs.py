from __future__ import annotations

import re
import time
import unicodedata
from collections.abc import Awaitable, Callable

SLUG_MAX_LENGTH = 120
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

_SPECIAL_CHARS = {
    # subscript digits
    "₀": "0", "₁": "1", "₂": "2", "₃": "3", "₄": "4",
    "₅": "5", "₆": "6", "₇": "7", "₈": "8", "₉": "9",
    # superscript digits
    "⁰": "0", "¹": "1", "²": "2", "³": "3", "⁴": "4",
    "⁵": "5", "⁶": "6", "⁷": "7", "⁸": "8", "⁹": "9",
    # marks, dashes and curly quotes
    "™": "", "®": "", "©": "",
    "–": "-", "—": "-",
    "‘": "", "’": "", "“": "", "”": "",
}
_SPECIAL_CHARS_TABLE = str.maketrans(_SPECIAL_CHARS)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_special_chars(text: str) -> str:
    return text.translate(_SPECIAL_CHARS_TABLE)


def generate_slug(text: str) -> str:
    """Turn free text into a URL-safe slug.

    ``"CO₂ fraktionerad laser"`` becomes ``"co2-fraktionerad-laser"`` and
    ``"Hårborttagning"`` becomes ``"harborttagning"``.
    """
    if not text or not isinstance(text, str):
        return ""

    normalized = unicodedata.normalize("NFKD", normalize_special_chars(text))
    ascii_text = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    slug = _NON_ALNUM.sub("-", ascii_text.lower().strip()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def is_valid_slug(slug: str) -> bool:
    if not slug or not isinstance(slug, str):
        return False
    return bool(SLUG_PATTERN.match(normalize_special_chars(slug).lower()))


def normalize_slug(slug: str) -> str:
    return normalize_special_chars(slug).strip().lower()


async def generate_unique_slug(
    base_slug: str,
    exists: Callable[[str], Awaitable[bool]],
    *,
    max_attempts: int = 100,
) -> str:
    """Append ``-1``, ``-2``, ... to ``base_slug`` until ``exists`` says no.

    After ``max_attempts`` numeric suffixes a millisecond timestamp is used.
    """
    slug = base_slug
    counter = 1
    while await exists(slug):
        if counter > max_attempts:
            return _with_suffix(base_slug, str(int(time.time() * 1000)))
        slug = _with_suffix(base_slug, str(counter))
        counter += 1
    return slug


def _with_suffix(base_slug: str, suffix: str) -> str:
    head = base_slug[: SLUG_MAX_LENGTH - len(suffix) - 1].rstrip("-")
    return f"{head}-{suffix}"
