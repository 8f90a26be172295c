"""
URL slug helpers for property pages.

Property URLs combine the id with a readable slug, e.g.
``/properties/slug/3f2a9c1e-...-casa-moderna-en-el-ejido``.
"""

import re
import unicodedata
from typing import Tuple

_SPECIAL_CHARS = {
    "ø": "o",
    "æ": "ae",
    "đ": "d",
    "ð": "d",
    "þ": "th",
}

_HEX8_PATTERN = re.compile(r"^[a-f0-9]{8}$")


def generate_slug(title: str, max_length: int = 50) -> str:
    """
    Build a URL-safe slug from a listing title.

    Accents are stripped, a few Nordic letters are transliterated, anything that
    is not a word character, whitespace or hyphen is dropped, and whitespace runs
    become single hyphens.

    Args:
        title: Text to slugify
        max_length: Maximum slug length

    Returns:
        Slug string, possibly empty
    """
    if not title:
        return ""

    text = unicodedata.normalize("NFD", title.lower())
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    for char, replacement in _SPECIAL_CHARS.items():
        text = text.replace(char, replacement)

    text = re.sub(r"[^\w\s-]", "", text.strip(), flags=re.ASCII)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text).strip("-")

    # Slicing can cut mid-word and leave a dangling hyphen
    return text[:max_length].rstrip("-")


def generate_property_slug(title: str, property_id: str) -> str:
    """Combine id and title slug into a single URL parameter."""
    slug = generate_slug(title)
    return f"{property_id}-{slug}" if slug else property_id


def is_slug_valid(title: str, slug: str) -> bool:
    """Check that a slug from a URL matches the current title."""
    return generate_slug(title) == slug


def parse_id_slug(param: str) -> Tuple[str, str]:
    """
    Split an ``<id>-<slug>`` URL parameter into id and slug.

    UUIDs contain hyphens themselves, so when the first segment looks like the
    start of a UUID the first five segments form the id.
    """
    parts = (param or "").split("-")

    if _HEX8_PATTERN.match(parts[0]) and len(parts) >= 5:
        return "-".join(parts[:5]), "-".join(parts[5:])

    return parts[0], "-".join(parts[1:])
