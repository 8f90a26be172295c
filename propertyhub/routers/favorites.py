"""
Favorites API endpoints: a user's saved properties.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from propertyhub.config import settings
from propertyhub.models.user import User
from propertyhub.services.favorite import FavoriteService
from propertyhub.schemas.common import PaginatedResponse, page_to_skip
from propertyhub.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses
from propertyhub.schemas.favorite import (
    ClearFavoritesResponse,
    FavoriteCountsResponse,
    FavoriteResponse,
    FavoriteStatusResponse,
)
from propertyhub.utils.dependencies import (
    get_current_active_user,
    get_favorite_service,
    get_optional_current_user,
    rate_limit_by_user,
)

router = APIRouter(prefix="/favorites", tags=["Favorites"])

MAX_COUNT_IDS = 100


@router.get(
    "",
    response_model=PaginatedResponse[FavoriteResponse],
    summary="List my favorites",
    description="Saved properties of the current user, most recent first",
    responses=get_common_error_responses()
)
async def list_favorites(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_active_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> PaginatedResponse[FavoriteResponse]:
    favorites, total = await favorite_service.get_user_favorites(
        current_user,
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[FavoriteResponse].build(
        [FavoriteResponse.model_validate(favorite.to_dict(include_property=True)) for favorite in favorites],
        total,
        page,
        page_size
    )


@router.delete(
    "",
    response_model=ClearFavoritesResponse,
    summary="Clear my favorites",
    responses=get_common_error_responses()
)
async def clear_favorites(
    current_user: User = Depends(get_current_active_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> ClearFavoritesResponse:
    removed = await favorite_service.clear_favorites(current_user)
    return ClearFavoritesResponse(removed=removed)


@router.get(
    "/counts",
    response_model=FavoriteCountsResponse,
    summary="Favorite counts",
    description="How many users saved each of the given properties",
    responses=get_error_responses(422)
)
async def get_favorite_counts(
    ids: List[UUID] = Query(..., description="Property ids"),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteCountsResponse:
    counts = await favorite_service.get_favorite_counts(ids[:MAX_COUNT_IDS])
    return FavoriteCountsResponse(counts={str(property_id): count for property_id, count in counts.items()})


@router.post(
    "/{property_id}",
    response_model=FavoriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save property",
    responses=get_crud_error_responses(),
    dependencies=[Depends(rate_limit_by_user("favorite"))]
)
async def add_favorite(
    property_id: UUID,
    current_user: User = Depends(get_current_active_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteResponse:
    favorite = await favorite_service.add_favorite(current_user, property_id)
    return FavoriteResponse.model_validate(favorite.to_dict(include_property=True))


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove saved property",
    responses=get_common_error_responses(),
    dependencies=[Depends(rate_limit_by_user("favorite"))]
)
async def remove_favorite(
    property_id: UUID,
    current_user: User = Depends(get_current_active_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> None:
    await favorite_service.remove_favorite(current_user, property_id)


@router.post(
    "/{property_id}/toggle",
    response_model=FavoriteStatusResponse,
    summary="Toggle saved property",
    responses=get_common_error_responses(),
    dependencies=[Depends(rate_limit_by_user("favorite"))]
)
async def toggle_favorite(
    property_id: UUID,
    current_user: User = Depends(get_current_active_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteStatusResponse:
    is_favorite = await favorite_service.toggle_favorite(current_user, property_id)
    return FavoriteStatusResponse(property_id=str(property_id), is_favorite=is_favorite)


@router.get(
    "/{property_id}/status",
    response_model=FavoriteStatusResponse,
    summary="Is property saved",
    description="Always false for anonymous visitors"
)
async def get_favorite_status(
    property_id: UUID,
    current_user: Optional[User] = Depends(get_optional_current_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> FavoriteStatusResponse:
    is_favorite = await favorite_service.is_favorite(current_user, property_id)
    return FavoriteStatusResponse(property_id=str(property_id), is_favorite=is_favorite)
