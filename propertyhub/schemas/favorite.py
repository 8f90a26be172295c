"""
Pydantic schemas for saved properties.
"""

from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime
from propertyhub.schemas.property import PropertySummary


class FavoriteResponse(BaseModel):
    id: str
    user_id: str
    property_id: str
    created_at: datetime
    property: Optional[PropertySummary] = None


class FavoriteStatusResponse(BaseModel):
    property_id: str
    is_favorite: bool


class FavoriteCountsResponse(BaseModel):
    """Favorite count per property id."""

    counts: Dict[str, int]


class ClearFavoritesResponse(BaseModel):
    removed: int
