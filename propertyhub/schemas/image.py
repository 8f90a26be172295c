"""
Pydantic schemas for property images.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
import uuid


class ImageResponse(BaseModel):
    """Image in a property gallery."""

    id: str
    property_id: str
    url: str = Field(..., description="Public URL of the image")
    alt: Optional[str] = None
    order: int = Field(..., ge=0, description="Position in the gallery")
    filename: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ImageUrlItem(BaseModel):
    url: str = Field(..., min_length=1, max_length=1000)
    alt: Optional[str] = Field(None, max_length=255)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://") or v.startswith("/")):
            raise ValueError("Image URL must be absolute (http/https) or a site path")
        return v


class ImageUrlCreate(BaseModel):
    """Attach externally hosted images to a property."""

    images: List[ImageUrlItem] = Field(..., min_length=1, max_length=20)


class ImageReorderRequest(BaseModel):
    """Image ids in their new gallery order."""

    image_ids: List[uuid.UUID] = Field(..., min_length=1)

    @field_validator("image_ids")
    @classmethod
    def validate_unique(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("Image ids must not repeat")
        return v


class ImageUpdate(BaseModel):
    alt: Optional[str] = Field(None, max_length=255)
    order: Optional[int] = Field(None, ge=0)


class ImageListResponse(BaseModel):
    images: List[ImageResponse]
    total: int
