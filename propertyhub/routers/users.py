"""
User API endpoints: profiles, the public agent directory and account administration.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from propertyhub.config import settings
from propertyhub.models.user import User, UserRole
from propertyhub.services.user import UserService
from propertyhub.schemas.common import PaginatedResponse, page_to_skip
from propertyhub.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses
from propertyhub.schemas.user import AgentProfileResponse, UserPublic, UserResponse, UserUpdate
from propertyhub.utils.dependencies import (
    get_current_active_user,
    get_current_admin_user,
    get_user_service,
)
from propertyhub.utils.exceptions import ForbiddenError


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
    description="Paginated user list filtered by role and name/email. Requires admin role.",
    responses=get_common_error_responses()
)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    search: Optional[str] = Query(None, max_length=255, description="Match on name or email"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_admin_user),
    user_service: UserService = Depends(get_user_service)
) -> PaginatedResponse[UserResponse]:
    users, total = await user_service.list_users(
        current_user,
        role=role,
        search=search,
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[UserResponse].build(
        [UserResponse.model_validate(user.to_dict()) for user in users],
        total,
        page,
        page_size
    )


@router.get(
    "/agents",
    response_model=List[UserPublic],
    summary="List agents",
    description="Active agents ordered by name"
)
async def list_agents(
    user_service: UserService = Depends(get_user_service)
) -> List[UserPublic]:
    agents = await user_service.get_agents()
    return [UserPublic.model_validate(agent.to_dict()) for agent in agents]


@router.get(
    "/agents/{agent_id}",
    response_model=AgentProfileResponse,
    summary="Agent profile",
    description="Public agent profile with their available listings",
    responses=get_error_responses(404, 422)
)
async def get_agent_profile(
    agent_id: UUID,
    user_service: UserService = Depends(get_user_service)
) -> AgentProfileResponse:
    profile = await user_service.get_agent_profile(agent_id)
    return AgentProfileResponse.model_validate(profile)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    description="Users can read their own profile; administrators can read any profile",
    responses=get_common_error_responses()
)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    if current_user.id != user_id and not current_user.is_admin:
        raise ForbiddenError("Unauthorized: Cannot view other users")
    user = await user_service.get_user(user_id)
    return UserResponse.model_validate(user.to_dict())


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="Update a profile. Only administrators can change role or active status.",
    responses=get_crud_error_responses()
)
async def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    user = await user_service.update_user(user_id, user_data, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
    description="Delete an account with its listings, favorites and appointments. Requires admin role.",
    responses=get_common_error_responses()
)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_admin_user),
    user_service: UserService = Depends(get_user_service)
) -> None:
    await user_service.delete_user(user_id, current_user)
