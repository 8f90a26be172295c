"""
Tests for property URL slugs.
"""

from propertyhub.utils.slugs import generate_property_slug, generate_slug, is_slug_valid, parse_id_slug

PROPERTY_ID = "3f2a9c1e-1234-5678-9abc-def012345678"


class TestGenerateSlug:
    """Test slug generation from listing titles."""

    def test_basic_title(self):
        assert generate_slug("Casa Moderna en El Ejido!") == "casa-moderna-en-el-ejido"

    def test_accents_are_stripped(self):
        assert generate_slug("Café & Té  Ñandú") == "cafe-te-nandu"

    def test_nordic_letters_are_transliterated(self):
        assert generate_slug("Søren's house") == "sorens-house"

    def test_repeated_separators_collapse(self):
        assert generate_slug("  Suite -- con   vista  ") == "suite-con-vista"

    def test_empty_title(self):
        assert generate_slug("") == ""
        assert generate_slug("!!!") == ""

    def test_truncation_drops_trailing_hyphen(self):
        slug = generate_slug("x" * 49 + " yy")
        assert slug == "x" * 49

    def test_custom_max_length(self):
        assert generate_slug("departamento en el centro", max_length=12) == "departamento"


class TestIdSlug:
    """Test combined id and slug URL parameters."""

    def test_generate_property_slug(self):
        assert generate_property_slug("Casa en Cuenca", PROPERTY_ID) == f"{PROPERTY_ID}-casa-en-cuenca"

    def test_generate_property_slug_without_slug(self):
        assert generate_property_slug("!!!", PROPERTY_ID) == PROPERTY_ID

    def test_parse_uuid_id_slug(self):
        assert parse_id_slug(f"{PROPERTY_ID}-casa-moderna") == (PROPERTY_ID, "casa-moderna")

    def test_parse_uuid_without_slug(self):
        assert parse_id_slug(PROPERTY_ID) == (PROPERTY_ID, "")

    def test_parse_short_id(self):
        assert parse_id_slug("42-casa-moderna") == ("42", "casa-moderna")

    def test_parse_hex_id_with_short_slug(self):
        assert parse_id_slug("deadbeef-casa-moderna") == ("deadbeef", "casa-moderna")

    def test_parse_empty(self):
        assert parse_id_slug("") == ("", "")

    def test_slug_validity_follows_title(self):
        assert is_slug_valid("Casa Moderna", "casa-moderna")
        assert not is_slug_valid("Casa Renovada", "casa-moderna")
