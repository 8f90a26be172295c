"""
Location validation against the cities that currently have listings.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.config import settings
from propertyhub.repositories.property import PropertyRepository
from propertyhub.utils.locations import normalize_location, string_similarity

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


class LocationValidator:
    """
    Checks a requested city against the available inventory.

    The city list is shared by all instances and reloaded after
    ``location_cache_ttl`` seconds.
    """

    _cities: Optional[List[str]] = None
    _loaded_at: float = 0.0

    def __init__(self, db_session: AsyncSession):
        self.property_repo = PropertyRepository(db_session)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cities = None
        cls._loaded_at = 0.0

    async def get_available_cities(self) -> List[str]:
        cls = type(self)
        now = time.monotonic()
        if cls._cities is None or now - cls._loaded_at >= settings.location_cache_ttl:
            cls._cities = await self.property_repo.get_available_cities()
            cls._loaded_at = now
            logger.debug(f"Loaded {len(cls._cities)} available cities")
        return cls._cities

    async def validate(self, location: str) -> Dict[str, Any]:
        """
        Match a location to a known city.

        Returns:
            Dict with ``is_valid``, ``confidence`` (0-100), ``matched``,
            ``suggestions`` and ``message``
        """
        cities = await self.get_available_cities()
        requested = normalize_location(location)

        for city in cities:
            if normalize_location(city) == requested:
                return {
                    "is_valid": True,
                    "confidence": 100,
                    "matched": city,
                    "suggestions": [],
                    "message": None,
                }

        ranked = sorted(
            ((string_similarity(location, city), city) for city in cities),
            key=lambda pair: pair[0],
            reverse=True
        )

        if ranked and ranked[0][0] > settings.location_similarity_threshold:
            similarity, city = ranked[0]
            return {
                "is_valid": True,
                "confidence": round(similarity * 100),
                "matched": city,
                "suggestions": [],
                "message": f"Location matched to {city}",
            }

        suggestions = [city for _, city in ranked[:MAX_SUGGESTIONS]]
        message = f"Location '{location}' not found"
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"

        return {
            "is_valid": False,
            "confidence": 0,
            "matched": None,
            "suggestions": suggestions,
            "message": message,
        }
