"""
Tests for location and vocabulary matching.
"""

import pytest

from propertyhub.models.property import PropertyCategory, TransactionType
from propertyhub.utils.locations import (
    fuzzy_match_location,
    levenshtein_distance,
    map_category,
    map_transaction_type,
    normalize_location,
    string_similarity,
)


class TestStringSimilarity:
    """Test place name similarity scoring."""

    def test_normalize_location(self):
        assert normalize_location("  Belén ") == "belen"

    def test_levenshtein_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("cuenca", "cuenca") == 0

    def test_identical_names(self):
        assert string_similarity("Cuenca", "cuenca") == 1.0
        assert string_similarity("Belén", "Belen") == 1.0

    def test_containment(self):
        assert string_similarity("Cuenca", "Cuenca Centro") == 0.8

    def test_typo(self):
        assert string_similarity("Cuenka", "Cuenca") == pytest.approx(1 - 1 / 6)

    def test_unrelated(self):
        assert string_similarity("Quito", "Cuenca") < 0.5


class TestFuzzyMatchLocation:
    """Test canonical location names."""

    def test_known_city(self):
        assert fuzzy_match_location("cuenca") == "Cuenca"

    def test_common_typo(self):
        assert fuzzy_match_location("cueca") == "Cuenca"

    def test_case_insensitive(self):
        assert fuzzy_match_location("EL EJIDO") == "El Ejido"

    def test_direction(self):
        assert fuzzy_match_location("norte") == "Zona Norte"

    def test_first_word_match(self):
        assert fuzzy_match_location("zona") == "Zona Centro"

    def test_unknown_is_returned_unchanged(self):
        assert fuzzy_match_location("Quito") == "Quito"
        assert fuzzy_match_location("Ciudad Nueva") == "Ciudad Nueva"

    def test_empty(self):
        assert fuzzy_match_location(None) is None
        assert fuzzy_match_location("") is None


class TestVocabulary:
    """Test Spanish vocabulary mapping."""

    def test_map_category(self):
        assert map_category("Casa") == PropertyCategory.HOUSE
        assert map_category("departamento") == PropertyCategory.APARTMENT
        assert map_category("terreno") == PropertyCategory.LAND
        assert map_category("local") == PropertyCategory.COMMERCIAL
        assert map_category("castillo") is None
        assert map_category(None) is None

    def test_map_transaction_type(self):
        assert map_transaction_type("Arriendo") == TransactionType.RENT
        assert map_transaction_type("alquiler") == TransactionType.RENT
        assert map_transaction_type("venta") == TransactionType.SALE
        assert map_transaction_type("permuta") is None
        assert map_transaction_type(None) is None
