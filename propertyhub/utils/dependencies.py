"""
FastAPI dependency injection utilities for authentication, services and rate limiting.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Callable, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.database import get_db
from propertyhub.models.user import User, UserRole
from propertyhub.services.admin import AdminService
from propertyhub.services.ai_search import AISearchService
from propertyhub.services.appointment import AppointmentService
from propertyhub.services.auth import AuthService
from propertyhub.services.favorite import FavoriteService
from propertyhub.services.image import ImageService
from propertyhub.services.location import LocationValidator
from propertyhub.services.property import PropertyService
from propertyhub.services.user import UserService
from propertyhub.utils.exceptions import (
    APIException,
    InactiveUserError,
    InsufficientPermissionsError,
    UnauthorizedError,
)
from propertyhub.utils.rate_limit import check_rate_limit, get_client_ip


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_image_service(db: AsyncSession = Depends(get_db)) -> ImageService:
    return ImageService(db)


async def get_favorite_service(db: AsyncSession = Depends(get_db)) -> FavoriteService:
    return FavoriteService(db)


async def get_appointment_service(db: AsyncSession = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


async def get_ai_search_service(db: AsyncSession = Depends(get_db)) -> AISearchService:
    return AISearchService(db)


async def get_location_validator(db: AsyncSession = Depends(get_db)) -> LocationValidator:
    return LocationValidator(db)


async def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except APIException:
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise InactiveUserError()
    return current_user


async def get_current_agent_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with agent role (or admin).

    Raises:
        InsufficientPermissionsError: If user is not an agent or admin
    """
    if current_user.role not in [UserRole.AGENT, UserRole.ADMIN]:
        raise InsufficientPermissionsError("access agent resources")
    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    if current_user.role != UserRole.ADMIN:
        raise InsufficientPermissionsError("access admin resources")
    return current_user


# Optional authentication dependency (for public endpoints that can benefit from user context)
async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """Current user if a valid token was sent, otherwise None."""
    if not credentials:
        return None

    try:
        user = await auth_service.get_current_user(credentials.credentials)
    except APIException:
        return None
    return user if user.is_active else None


def rate_limit_by_ip(tier_name: str) -> Callable:
    """Dependency limiting unauthenticated endpoints per client IP."""
    async def dependency(request: Request) -> None:
        check_rate_limit(f"ip:{get_client_ip(request)}", tier_name)

    return dependency


def rate_limit_by_user(tier_name: str) -> Callable:
    """
    Dependency limiting authenticated endpoints per user id.

    Anonymous callers of optional-auth endpoints are limited by IP instead.
    """
    async def dependency(
        request: Request,
        current_user: Optional[User] = Depends(get_optional_current_user)
    ) -> None:
        if current_user:
            check_rate_limit(f"user:{current_user.id}", tier_name)
        else:
            check_rate_limit(f"ip:{get_client_ip(request)}", tier_name)

    return dependency
