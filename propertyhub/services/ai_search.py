"""
AI search service: natural-language query -> parsed filters -> listings.
"""

import logging
import re
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.config import settings
from propertyhub.models.property import PropertyStatus
from propertyhub.models.user import User
from propertyhub.repositories.property import PropertyRepository, PropertySearchFilters
from propertyhub.services.location import LocationValidator
from propertyhub.services.search_parser import (
    ParseResult,
    build_filter_summary,
    is_confident_parse,
    parse_search_query,
)
from propertyhub.utils.locations import fuzzy_match_location, map_category, map_transaction_type

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# normalized query -> (expiry timestamp, response), oldest first
_result_cache: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()


def normalize_query(query: str) -> str:
    return _WHITESPACE.sub(" ", query.strip().lower())


def clear_search_cache() -> None:
    _result_cache.clear()


def _failure(query: str, error: str, **extra) -> Dict[str, Any]:
    return {"success": False, "query": query, "error": error, **extra}


class AISearchService:
    """Runs natural-language searches against the available listings."""

    def __init__(self, db_session: AsyncSession, client: Optional[AsyncOpenAI] = None):
        self.db = db_session
        self.client = client
        self.property_repo = PropertyRepository(db_session)
        self.location_validator = LocationValidator(db_session)

    def _get_cached(self, key: str) -> Optional[Dict[str, Any]]:
        entry = _result_cache.get(key)
        if entry is None:
            return None
        expires_at, response = entry
        if time.monotonic() >= expires_at:
            del _result_cache[key]
            return None
        return response

    def _store(self, key: str, response: Dict[str, Any]) -> None:
        """Cache a response, dropping expired entries and the oldest ones over the size limit."""
        now = time.monotonic()
        _result_cache.pop(key, None)
        _result_cache[key] = (now + settings.ai_search_cache_ttl, response)

        # Entries share one TTL, so insertion order is expiry order
        while _result_cache:
            oldest_key, (expires_at, _) = next(iter(_result_cache.items()))
            if expires_at > now and len(_result_cache) <= settings.ai_search_cache_max_entries:
                break
            del _result_cache[oldest_key]

    def build_search_filters(self, parsed: Dict[str, Any], city: Optional[str] = None) -> PropertySearchFilters:
        """
        Convert parsed filters into repository criteria.

        Only available listings are searched; bedrooms and bathrooms must match
        exactly.
        """
        return PropertySearchFilters(
            city=city or fuzzy_match_location(parsed.get("city")),
            address=fuzzy_match_location(parsed.get("address")),
            category=map_category(parsed.get("category")),
            transaction_type=map_transaction_type(parsed.get("transaction_type")),
            min_price=parsed.get("min_price"),
            max_price=parsed.get("max_price"),
            bedrooms=parsed.get("bedrooms"),
            bathrooms=parsed.get("bathrooms"),
            status=PropertyStatus.AVAILABLE,
        )

    async def search(self, query: str, user: Optional[User] = None) -> Dict[str, Any]:
        """
        Run a natural-language search.

        Args:
            query: Free-text query
            user: Caller, used for logging only

        Returns:
            Dict matching ``AISearchResponse``; failures carry ``success=False``
            and an ``error`` message instead of raising
        """
        key = normalize_query(query or "")
        cached = self._get_cached(key) if key else None
        if cached is not None:
            logger.debug(f"AI search cache hit for {key!r}")
            return {**cached, "query": query, "cached": True}

        parsed: ParseResult = await parse_search_query(query, client=self.client)
        if not parsed.success:
            return _failure(query, parsed.error or "Failed to parse search query", confidence=parsed.confidence)

        if not is_confident_parse(parsed, settings.ai_search_min_confidence):
            logger.info(f"AI search query too vague ({parsed.confidence}%): {query!r}")
            return _failure(
                query,
                f"Your search is too vague (confidence: {parsed.confidence}%). Please be more specific "
                f"(e.g., \"3 bedroom apartment under $200k in Cuenca\")",
                confidence=parsed.confidence,
            )

        city = None
        requested_city = fuzzy_match_location(parsed.filters.get("city"))
        if requested_city:
            validation = await self.location_validator.validate(requested_city)
            if validation["is_valid"]:
                city = validation["matched"]
            elif validation["suggestions"]:
                return _failure(
                    query,
                    validation["message"],
                    suggestions=validation["suggestions"],
                    confidence=parsed.confidence,
                )

        filters = self.build_search_filters(parsed.filters, city=city)
        properties = await self.property_repo.find_matching(filters, take=settings.ai_search_result_limit)

        response: Dict[str, Any] = {
            "success": True,
            "query": query,
            "confidence": parsed.confidence,
            "reasoning": parsed.reasoning,
            "filters": parsed.filters,
            "filter_summary": build_filter_summary(parsed.filters),
            "results": [property_obj.to_summary() for property_obj in properties],
            "total": len(properties),
            "cached": False,
        }
        if parsed.confidence < settings.ai_search_warning_confidence:
            response["warning"] = f"Results may be imprecise (confidence: {parsed.confidence}%)"

        logger.info(
            f"AI search by {user.email if user else 'anonymous'}: {query!r} -> {len(properties)} results "
            f"(confidence {parsed.confidence}%)"
        )
        self._store(key, response)
        return response
