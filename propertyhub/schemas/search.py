"""
Pydantic schemas for natural-language search and location validation.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from propertyhub.schemas.property import PropertySummary


class AISearchRequest(BaseModel):
    """
    Free-text search, e.g. "casa de 3 habitaciones en El Ejido bajo $200k".

    Length limits are enforced by the search service so that empty and
    oversized queries get the same error envelope as other parse failures.
    """

    query: str = Field(..., examples=["3 bedroom apartment under $200k in Cuenca"])


class FilterSummary(BaseModel):
    """Human-readable view of the filters the model extracted."""

    city: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    price_range: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    transaction_type: Optional[str] = None
    features: Optional[List[str]] = None


class ParsedFilters(BaseModel):
    city: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    features: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    transaction_type: Optional[str] = None


class AISearchResponse(BaseModel):
    success: bool
    query: str
    error: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    confidence: Optional[int] = None
    reasoning: Optional[str] = None
    filters: Optional[ParsedFilters] = None
    filter_summary: Optional[FilterSummary] = None
    results: List[PropertySummary] = Field(default_factory=list)
    total: int = 0
    warning: Optional[str] = None
    cached: bool = False


class LocationValidationResponse(BaseModel):
    is_valid: bool
    confidence: int = Field(..., ge=0, le=100)
    matched: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "LocationValidationResponse":
        return cls(**result)
