"""
Location and vocabulary matching for natural-language search.

The language model answers with Spanish vocabulary ("casa", "arriendo",
"centro"); these helpers map it onto the values stored in the database.
"""

import unicodedata
from typing import Optional

from propertyhub.models.property import PropertyCategory, TransactionType

# Known cities and Cuenca neighborhoods, including common typos
LOCATION_MAP = {
    # Cities
    "cuenca": "Cuenca",
    "cueca": "Cuenca",
    "gualaceo": "Gualaceo",
    "gualacéo": "Gualaceo",
    "paute": "Paute",
    "azogues": "Azogues",
    # Neighborhoods
    "el ejido": "El Ejido",
    "el ejdo": "El Ejido",
    "ejido": "El Ejido",
    "zona centro": "Zona Centro",
    "el centro": "Zona Centro",
    "centro": "Zona Centro",
    "centro histórico": "Zona Centro",
    "estadio": "Estadio",
    "belén": "Belén",
    "belen": "Belén",
    "totoracocha": "Totoracocha",
    "monay": "Monay",
    "hermano miguel": "Hermano Miguel",
    "machangara": "Machangara",
    # Directions
    "norte": "Zona Norte",
    "sur": "Zona Sur",
    "este": "Zona Este",
    "oeste": "Zona Oeste",
    "zona norte": "Zona Norte",
    "zona sur": "Zona Sur",
    "zona este": "Zona Este",
    "zona oeste": "Zona Oeste",
    # Landmarks
    "san blas": "Zona Centro",
    "calle larga": "Zona Centro",
}

CATEGORY_MAP = {
    "casa": PropertyCategory.HOUSE,
    "house": PropertyCategory.HOUSE,
    "apartamento": PropertyCategory.APARTMENT,
    "apartment": PropertyCategory.APARTMENT,
    "apto": PropertyCategory.APARTMENT,
    "departamento": PropertyCategory.APARTMENT,
    "suite": PropertyCategory.SUITE,
    "villa": PropertyCategory.VILLA,
    "penthouse": PropertyCategory.PENTHOUSE,
    "duplex": PropertyCategory.DUPLEX,
    "loft": PropertyCategory.LOFT,
    "terreno": PropertyCategory.LAND,
    "land": PropertyCategory.LAND,
    "lote": PropertyCategory.LAND,
    "local": PropertyCategory.COMMERCIAL,
    "commercial": PropertyCategory.COMMERCIAL,
    "local comercial": PropertyCategory.COMMERCIAL,
    "oficina": PropertyCategory.OFFICE,
    "office": PropertyCategory.OFFICE,
    "bodega": PropertyCategory.WAREHOUSE,
    "warehouse": PropertyCategory.WAREHOUSE,
    "finca": PropertyCategory.FARM,
    "farm": PropertyCategory.FARM,
    "hacienda": PropertyCategory.FARM,
}

TRANSACTION_MAP = {
    "venta": TransactionType.SALE,
    "sale": TransactionType.SALE,
    "vendo": TransactionType.SALE,
    "compra": TransactionType.SALE,
    "arriendo": TransactionType.RENT,
    "rent": TransactionType.RENT,
    "arrendamiento": TransactionType.RENT,
    "renta": TransactionType.RENT,
    "alquiler": TransactionType.RENT,
}


def normalize_location(value: str) -> str:
    """Lowercase, strip accents and surrounding whitespace."""
    decomposed = unicodedata.normalize("NFD", value.lower())
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").strip()


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def string_similarity(first: str, second: str) -> float:
    """
    Score how alike two place names are, from 0.0 to 1.0.

    Equal names score 1.0, containment scores 0.8, anything else is scored
    by normalized Levenshtein distance.
    """
    s1 = normalize_location(first)
    s2 = normalize_location(second)

    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8

    max_len = max(len(s1), len(s2))
    return 1 - levenshtein_distance(s1, s2) / max_len


def fuzzy_match_location(value: Optional[str]) -> Optional[str]:
    """
    Resolve a city or neighborhood name to its canonical spelling.

    Unknown single words are matched against the first word of the known
    names ("zona" -> "Zona Centro"). Anything else is returned unchanged.
    """
    if not value:
        return None

    normalized = value.lower().strip()
    if normalized in LOCATION_MAP:
        return LOCATION_MAP[normalized]

    words = normalized.split(" ")
    if len(words) == 1:
        for key, canonical in LOCATION_MAP.items():
            if key.split(" ")[0] == words[0]:
                return canonical

    return value


def map_category(value: Optional[str]) -> Optional[PropertyCategory]:
    if not value:
        return None
    return CATEGORY_MAP.get(value.lower().strip())


def map_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    if not value:
        return None
    return TRANSACTION_MAP.get(value.lower().strip())
