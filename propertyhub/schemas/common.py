"""
Shared response shapes: paginated lists and plain messages.
"""

from pydantic import BaseModel, Field
from typing import Generic, List, TypeVar
import math

ItemType = TypeVar("ItemType")


class PaginatedResponse(BaseModel, Generic[ItemType]):
    """Page of results with navigation metadata."""

    items: List[ItemType] = Field(..., description="Items on this page")
    total: int = Field(..., ge=0, description="Total number of matching items")
    page: int = Field(..., ge=1, description="Current page number (1-based)")
    page_size: int = Field(..., ge=1, description="Number of items per page")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool = Field(..., description="Whether there are more pages")
    has_previous: bool = Field(..., description="Whether there are previous pages")

    @classmethod
    def build(cls, items: list, total: int, page: int, page_size: int) -> "PaginatedResponse":
        """Compute navigation fields from a page of items and the total count."""
        total_pages = math.ceil(total / page_size) if total > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class MessageResponse(BaseModel):
    message: str = Field(..., examples=["Operation completed successfully"])


def page_to_skip(page: int, page_size: int) -> int:
    return (page - 1) * page_size
