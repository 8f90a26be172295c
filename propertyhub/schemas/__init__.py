"""
Pydantic schemas for request/response validation.
"""

from .common import PaginatedResponse, MessageResponse
from .auth import SignupRequest, LoginRequest, TokenResponse, RefreshTokenRequest, LoginResponse
from .user import UserUpdate, UserResponse, UserPublic, AgentProfileResponse, PasswordChangeRequest
from .image import ImageResponse, ImageUrlCreate, ImageReorderRequest, ImageUpdate, ImageListResponse
from .property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyStatusUpdate,
    PropertyResponse,
    PropertySummary,
    NearbyPropertyResponse,
    PropertySearchParams,
    MapBounds,
    PriceRangeResponse,
    PriceBucket,
    CitySuggestion,
)
from .favorite import FavoriteResponse, FavoriteStatusResponse, FavoriteCountsResponse, ClearFavoritesResponse
from .appointment import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentResponse,
    AppointmentActionResponse,
    AvailableSlotsResponse,
    AgentStatsResponse,
)
from .search import AISearchRequest, AISearchResponse, FilterSummary, LocationValidationResponse
from .admin import AdminUserRow, AdminPropertyRow, RoleUpdate, StatsResponse, MetricsResponse

__all__ = [
    "PaginatedResponse",
    "MessageResponse",
    "SignupRequest",
    "LoginRequest",
    "TokenResponse",
    "RefreshTokenRequest",
    "LoginResponse",
    "UserUpdate",
    "UserResponse",
    "UserPublic",
    "AgentProfileResponse",
    "PasswordChangeRequest",
    "ImageResponse",
    "ImageUrlCreate",
    "ImageReorderRequest",
    "ImageUpdate",
    "ImageListResponse",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyStatusUpdate",
    "PropertyResponse",
    "PropertySummary",
    "NearbyPropertyResponse",
    "PropertySearchParams",
    "MapBounds",
    "PriceRangeResponse",
    "PriceBucket",
    "CitySuggestion",
    "FavoriteResponse",
    "FavoriteStatusResponse",
    "FavoriteCountsResponse",
    "ClearFavoritesResponse",
    "AppointmentCreate",
    "AppointmentStatusUpdate",
    "AppointmentResponse",
    "AppointmentActionResponse",
    "AvailableSlotsResponse",
    "AgentStatsResponse",
    "AISearchRequest",
    "AISearchResponse",
    "FilterSummary",
    "LocationValidationResponse",
    "AdminUserRow",
    "AdminPropertyRow",
    "RoleUpdate",
    "StatsResponse",
    "MetricsResponse",
]
