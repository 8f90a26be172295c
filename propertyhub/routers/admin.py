"""
Administration API endpoints: moderation and platform statistics. Admin role required.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from uuid import UUID

from propertyhub.config import settings
from propertyhub.models.property import PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.user import User, UserRole
from propertyhub.services.admin import AdminService
from propertyhub.schemas.admin import (
    AdminPropertyRow,
    AdminUserRow,
    MetricsResponse,
    RoleUpdate,
    StatsResponse,
)
from propertyhub.schemas.common import PaginatedResponse, page_to_skip
from propertyhub.schemas.error import get_common_error_responses
from propertyhub.schemas.property import PropertyResponse, PropertyStatusUpdate
from propertyhub.schemas.user import UserResponse
from propertyhub.utils.dependencies import get_admin_service, get_current_admin_user

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses=get_common_error_responses()
)


@router.get("/stats", response_model=StatsResponse, summary="Platform statistics")
async def get_stats(
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> StatsResponse:
    return StatsResponse.model_validate(await admin_service.get_stats(current_user))


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Daily activity",
    description="Users, properties and appointments created per day"
)
async def get_metrics(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> MetricsResponse:
    return MetricsResponse.model_validate(await admin_service.get_metrics(current_user, days=days))


@router.get("/users", response_model=PaginatedResponse[AdminUserRow], summary="List users with activity counts")
async def list_users(
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> PaginatedResponse[AdminUserRow]:
    rows, total = await admin_service.list_users(
        current_user,
        role=role,
        search=search,
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[AdminUserRow].build(
        [AdminUserRow.model_validate(row) for row in rows],
        total,
        page,
        page_size
    )


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get user")
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> UserResponse:
    user = await admin_service.get_user(user_id, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.patch("/users/{user_id}/role", response_model=UserResponse, summary="Change user role")
async def update_user_role(
    user_id: UUID,
    role_data: RoleUpdate,
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> UserResponse:
    user = await admin_service.update_user_role(user_id, role_data.role, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> None:
    await admin_service.delete_user(user_id, current_user)


@router.get(
    "/properties",
    response_model=PaginatedResponse[AdminPropertyRow],
    summary="List properties with activity counts",
    description="Search matches title, address or city"
)
async def list_properties(
    status_filter: Optional[PropertyStatus] = Query(None, alias="status"),
    category: Optional[PropertyCategory] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None),
    search: Optional[str] = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> PaginatedResponse[AdminPropertyRow]:
    rows, total = await admin_service.list_properties(
        current_user,
        status=status_filter,
        category=category,
        transaction_type=transaction_type,
        search=search,
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[AdminPropertyRow].build(
        [AdminPropertyRow.model_validate(row) for row in rows],
        total,
        page,
        page_size
    )


@router.patch("/properties/{property_id}/status", response_model=PropertyResponse, summary="Moderate property status")
async def update_property_status(
    property_id: UUID,
    status_data: PropertyStatusUpdate,
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> PropertyResponse:
    property_obj = await admin_service.update_property_status(property_id, status_data.status, current_user)
    return PropertyResponse.model_validate(property_obj.to_dict(include_agent=True, include_images=True))


@router.delete("/properties/{property_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete property")
async def delete_property(
    property_id: UUID,
    current_user: User = Depends(get_current_admin_user),
    admin_service: AdminService = Depends(get_admin_service)
) -> None:
    await admin_service.delete_property(property_id, current_user)
