"""
Pydantic schemas for property listings, search filters and map queries.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from propertyhub.models.property import PropertyCategory, PropertyStatus, TransactionType
from propertyhub.repositories.property import PropertySearchFilters
from propertyhub.schemas.image import ImageResponse
from propertyhub.schemas.user import UserResponse
import re
import uuid

ZIP_CODE_PATTERN = re.compile(r"^[A-Za-z0-9\- ]+$")
MAX_PRICE = Decimal("1000000000")


def _clean_required(value: Optional[str], label: str) -> Optional[str]:
    if value is None:
        return None
    if not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value.strip()


def _clean_zip_code(value: Optional[str]) -> Optional[str]:
    """Empty zip codes are stored as NULL."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not 4 <= len(value) <= 10:
        raise ValueError("Zip code must be between 4 and 10 characters")
    if not ZIP_CODE_PATTERN.match(value):
        raise ValueError("Zip code may only contain letters, numbers, spaces and hyphens")
    return value


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(..., min_length=5, max_length=100, examples=["Casa moderna en El Ejido"])
    description: str = Field(
        ...,
        min_length=20,
        max_length=2000,
        examples=["Amplia casa de tres pisos con jardín, cerca del parque y de colegios."]
    )
    price: Decimal = Field(..., gt=0, le=MAX_PRICE, decimal_places=2, description="Price in USD", examples=[185000])
    transaction_type: TransactionType = Field(..., examples=["SALE"])
    category: PropertyCategory = Field(..., examples=["HOUSE"])
    status: PropertyStatus = Field(PropertyStatus.AVAILABLE)
    bedrooms: int = Field(0, ge=0, le=50)
    bathrooms: float = Field(0, ge=0, le=50)
    area: float = Field(..., gt=0, le=1000000, description="Built area in square meters")
    address: str = Field(..., min_length=5, max_length=200, examples=["Av. Solano 3-45 y Av. 12 de Abril"])
    city: str = Field(..., min_length=2, max_length=100, examples=["Cuenca"])
    state: str = Field(..., min_length=2, max_length=100, examples=["Azuay"])
    zip_code: Optional[str] = Field(None, max_length=10, examples=["010107"])
    latitude: Optional[float] = Field(None, ge=-90, le=90, examples=[-2.9005])
    longitude: Optional[float] = Field(None, ge=-180, le=180, examples=[-79.0045])

    @field_validator("title", "description", "address", "city", "state")
    @classmethod
    def validate_text(cls, v, info):
        return _clean_required(v, info.field_name.capitalize())

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, v):
        return _clean_zip_code(v)

    @model_validator(mode="after")
    def validate_coordinates(self):
        """Validate that both coordinates are provided together or both are None."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Both latitude and longitude must be provided together, or both must be None")
        return self


class PropertyCreate(PropertyBase):
    """
    Schema for creating a new property.

    ``agent_id`` is only honoured for administrators publishing on behalf of an agent.
    """

    agent_id: Optional[uuid.UUID] = None


class PropertyUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=20, max_length=2000)
    price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE, decimal_places=2)
    transaction_type: Optional[TransactionType] = None
    category: Optional[PropertyCategory] = None
    status: Optional[PropertyStatus] = None
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[float] = Field(None, ge=0, le=50)
    area: Optional[float] = Field(None, gt=0, le=1000000)
    address: Optional[str] = Field(None, min_length=5, max_length=200)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("title", "description", "address", "city", "state")
    @classmethod
    def validate_text(cls, v, info):
        return _clean_required(v, info.field_name.capitalize())

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, v):
        return _clean_zip_code(v)

    @model_validator(mode="after")
    def validate_location(self):
        """A location change must name both the city and the state."""
        if any(value is not None for value in (self.address, self.city, self.state)):
            if not self.city or not self.state:
                raise ValueError("City and state are required when updating the location")
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Both latitude and longitude must be provided together, or both must be None")
        return self


class PropertyStatusUpdate(BaseModel):
    status: PropertyStatus


class PropertyResponse(BaseModel):
    """Full listing with its agent and gallery."""

    id: str
    title: str
    slug: str
    description: str
    price: float
    transaction_type: TransactionType
    category: PropertyCategory
    status: PropertyStatus
    bedrooms: int
    bathrooms: float
    area: float
    address: str
    city: str
    state: str
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    agent_id: str
    created_at: datetime
    updated_at: datetime
    agent: Optional[UserResponse] = None
    images: List[ImageResponse] = Field(default_factory=list)
    primary_image: Optional[ImageResponse] = None

    class Config:
        from_attributes = True


class PropertySummary(BaseModel):
    """Compact listing used by favorites, map markers and AI search results."""

    id: str
    title: str
    slug: str
    price: float
    transaction_type: TransactionType
    category: PropertyCategory
    status: PropertyStatus
    bedrooms: int
    bathrooms: float
    area: float
    city: str
    state: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None


class NearbyPropertyResponse(PropertySummary):
    distance_km: float = Field(..., description="Great-circle distance from the search point")


class PropertySearchParams(BaseModel):
    """Query-string filters for the property listing."""

    transaction_type: Optional[TransactionType] = None
    category: Optional[List[PropertyCategory]] = None
    status: Optional[PropertyStatus] = None
    agent_id: Optional[uuid.UUID] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    min_bedrooms: Optional[int] = Field(None, ge=0, le=50)
    min_bathrooms: Optional[float] = Field(None, ge=0, le=50)
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    min_area: Optional[float] = Field(None, ge=0)
    max_area: Optional[float] = Field(None, ge=0)
    search: Optional[str] = Field(None, max_length=255, description="Free text over title, description and address")

    @field_validator("city", "state", "search")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not be greater than max_price")
        if self.min_area is not None and self.max_area is not None and self.min_area > self.max_area:
            raise ValueError("min_area must not be greater than max_area")
        return self

    def to_filters(self) -> PropertySearchFilters:
        return PropertySearchFilters(
            transaction_type=self.transaction_type,
            category=self.category or None,
            status=self.status,
            agent_id=self.agent_id,
            city=self.city,
            state=self.state,
            min_bedrooms=self.min_bedrooms,
            min_bathrooms=self.min_bathrooms,
            min_price=self.min_price,
            max_price=self.max_price,
            min_area=self.min_area,
            max_area=self.max_area,
            search_text=self.search,
        )


class MapBounds(BaseModel):
    """Map viewport. Boxes crossing the antimeridian are rejected."""

    ne_lat: float = Field(..., ge=-90, le=90)
    ne_lng: float = Field(..., ge=-180, le=180)
    sw_lat: float = Field(..., ge=-90, le=90)
    sw_lng: float = Field(..., ge=-180, le=180)

    @model_validator(mode="after")
    def validate_box(self):
        if self.sw_lat > self.ne_lat:
            raise ValueError("sw_lat must not be greater than ne_lat")
        if self.sw_lng > self.ne_lng:
            raise ValueError("sw_lng must not be greater than ne_lng")
        return self


class PriceRangeResponse(BaseModel):
    min_price: float
    max_price: float


class PriceBucket(BaseModel):
    bucket: int = Field(..., description="Lower bound of the price bucket")
    count: int


class CitySuggestion(BaseModel):
    city: str
    state: str
    slug: str
    count: int
