"""
Tests for the natural-language search service.
The language model is replaced by a fake client with canned answers.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

from propertyhub.models.property import PropertyStatus
from propertyhub.schemas.search import AISearchResponse
from propertyhub.config import settings
from propertyhub.services import ai_search
from propertyhub.services.ai_search import AISearchService, normalize_query
from propertyhub.services.location import LocationValidator
from tests.conftest import PropertyFactory


def fake_client(**answer) -> Mock:
    content = json.dumps(answer)
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client = Mock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


class TestAISearchService:
    """Test query handling from parse to results."""

    async def test_search_returns_matching_listings(self, db_session, test_property, rental_property):
        client = fake_client(city="Cuenca", category="casa", bedrooms=3, transactionType="VENTA", confidence=90)

        result = await AISearchService(db_session, client=client).search("casa de 3 dormitorios en Cuenca")

        assert result["success"] is True
        assert result["total"] == 1
        assert result["results"][0]["id"] == str(test_property.id)
        assert result["filter_summary"]["city"] == "Cuenca"
        assert result["cached"] is False
        assert "warning" not in result
        AISearchResponse.model_validate(result)

    async def test_only_available_listings(self, db_session, property_repository, test_agent, rental_property):
        await PropertyFactory.create_property(
            property_repository,
            agent_id=test_agent.id,
            title="Departamento ya arrendado",
            transaction_type=rental_property.transaction_type,
            category=rental_property.category,
            status=PropertyStatus.RENTED
        )
        client = fake_client(city="Cuenca", category="departamento", transactionType="arriendo", confidence=85)

        result = await AISearchService(db_session, client=client).search("departamento en arriendo en Cuenca")

        assert [item["id"] for item in result["results"]] == [str(rental_property.id)]

    async def test_vague_query(self, db_session, test_property):
        client = fake_client(confidence=20, reasoning="No concrete criteria")

        result = await AISearchService(db_session, client=client).search("algo bonito")

        assert result["success"] is False
        assert "too vague" in result["error"]
        assert result["confidence"] == 20

    async def test_low_confidence_warning(self, db_session, test_property):
        client = fake_client(city="Cuenca", confidence=40)

        result = await AISearchService(db_session, client=client).search("algo en cuenca")

        assert result["success"] is True
        assert "40%" in result["warning"]

    async def test_missing_confidence_defaults_high_enough(self, db_session, test_property):
        client = fake_client(city="Cuenca")

        result = await AISearchService(db_session, client=client).search("propiedades en Cuenca")

        assert result["success"] is True
        assert result["confidence"] == 75

    async def test_unknown_city_suggests_known_ones(self, db_session, test_property):
        client = fake_client(city="Quito", category="casa", confidence=90)

        result = await AISearchService(db_session, client=client).search("casa en Quito")

        assert result["success"] is False
        assert result["suggestions"] == ["Cuenca"]
        assert "Quito" in result["error"]

    async def test_misspelled_city_is_corrected(self, db_session, test_property):
        client = fake_client(city="cueca", confidence=80)

        result = await AISearchService(db_session, client=client).search("casas en cueca")

        assert result["success"] is True
        assert result["total"] == 1

    async def test_results_are_cached(self, db_session, test_property):
        client = fake_client(city="Cuenca", category="casa", confidence=90)
        service = AISearchService(db_session, client=client)

        first = await service.search("Casa en Cuenca")
        second = await service.search("  casa   en cuenca ")

        assert first["cached"] is False
        assert second["cached"] is True
        assert second["query"] == "  casa   en cuenca "
        assert second["results"] == first["results"]
        client.chat.completions.create.assert_awaited_once()

    async def test_expired_entries_are_purged(self, db_session, test_property, monkeypatch):
        clock = SimpleNamespace(now=1000.0)
        monkeypatch.setattr(ai_search, "time", SimpleNamespace(monotonic=lambda: clock.now))
        service = AISearchService(db_session, client=fake_client(city="Cuenca", confidence=90))

        await service.search("casa en Cuenca")
        await service.search("terreno en Cuenca")
        assert len(ai_search._result_cache) == 2

        clock.now += settings.ai_search_cache_ttl + 1
        await service.search("local en Cuenca")

        assert list(ai_search._result_cache) == ["local en cuenca"]

    async def test_cache_size_is_capped(self, db_session, test_property, monkeypatch):
        monkeypatch.setattr(settings, "ai_search_cache_max_entries", 2)
        service = AISearchService(db_session, client=fake_client(city="Cuenca", confidence=90))

        for query in ("casa uno", "casa dos", "casa tres"):
            await service.search(query)

        assert list(ai_search._result_cache) == ["casa dos", "casa tres"]

    async def test_failures_are_not_cached(self, db_session, test_property):
        client = fake_client(confidence=10)
        service = AISearchService(db_session, client=client)

        await service.search("cualquier cosa")
        await service.search("cualquier cosa")

        assert client.chat.completions.create.await_count == 2

    async def test_without_api_key(self, db_session):
        result = await AISearchService(db_session).search("casa en Cuenca")

        assert result["success"] is False
        assert result["error"] == "AI service unavailable"

    async def test_empty_query(self, db_session):
        client = fake_client(confidence=90)

        result = await AISearchService(db_session, client=client).search("   ")

        assert result["success"] is False
        client.chat.completions.create.assert_not_awaited()

    def test_normalize_query(self):
        assert normalize_query("  Casa\ten   CUENCA ") == "casa en cuenca"


class TestLocationValidator:
    """Test matching against cities with listings."""

    async def test_exact_match_ignores_accents_and_case(self, db_session, property_repository, test_agent):
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, city="Gualaceo")

        result = await LocationValidator(db_session).validate("GUALACÉO")

        assert result["is_valid"] is True
        assert result["confidence"] == 100
        assert result["matched"] == "Gualaceo"

    async def test_close_match(self, db_session, test_property):
        result = await LocationValidator(db_session).validate("Cuencaa")

        assert result["is_valid"] is True
        assert result["matched"] == "Cuenca"
        assert result["confidence"] == 80

    async def test_no_match(self, db_session, test_property):
        result = await LocationValidator(db_session).validate("Guayaquil")

        assert result["is_valid"] is False
        assert result["suggestions"] == ["Cuenca"]
        assert "Did you mean: Cuenca?" in result["message"]

    async def test_known_city_without_listings_is_invalid(self, db_session, test_property):
        # Paute is in the parser vocabulary but has no inventory
        result = await LocationValidator(db_session).validate("Paute")

        assert result["is_valid"] is False
        assert result["matched"] is None

    async def test_cities_are_cached(self, db_session, property_repository, test_agent, test_property):
        validator = LocationValidator(db_session)
        assert await validator.get_available_cities() == ["Cuenca"]

        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, city="Paute")
        assert await validator.get_available_cities() == ["Cuenca"]

        LocationValidator.clear_cache()
        assert await validator.get_available_cities() == ["Cuenca", "Paute"]
