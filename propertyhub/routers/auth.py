"""
Authentication API endpoints for signup, login, token refresh and password changes.
"""

from fastapi import APIRouter, Depends, status
from propertyhub.models.user import User
from propertyhub.services.auth import AuthService
from propertyhub.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    SignupRequest,
    TokenResponse,
)
from propertyhub.schemas.common import MessageResponse
from propertyhub.schemas.error import get_auth_error_responses, get_error_responses
from propertyhub.schemas.user import PasswordChangeRequest, UserResponse
from propertyhub.utils.dependencies import (
    get_auth_service,
    get_current_active_user,
    rate_limit_by_ip,
)


router = APIRouter(prefix="/auth", tags=["Authentication"])


def _login_response(auth_service: AuthService, user: User, access_token: str, refresh_token: str) -> LoginResponse:
    return LoginResponse(
        user=UserResponse.model_validate(user.to_dict()),
        tokens=TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=auth_service.token_expires_in()
        )
    )


@router.post(
    "/signup",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Register a new client account and return JWT tokens",
    responses=get_error_responses(400, 403, 409, 422, 429),
    dependencies=[Depends(rate_limit_by_ip("auth"))]
)
async def signup(
    signup_data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Register a user and log them in.

    Raises:
        DuplicateResourceError: If the email is already registered
        ForbiddenError: If a role other than USER is requested while agent signup is disabled
    """
    user = await auth_service.register(signup_data)
    access_token, refresh_token = auth_service.create_tokens(user)
    return _login_response(auth_service, user, access_token, refresh_token)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens",
    responses=get_error_responses(401, 403, 422, 429),
    dependencies=[Depends(rate_limit_by_ip("auth"))]
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    user, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )
    return _login_response(auth_service, user, access_token, refresh_token)


@router.post(
    "/refresh",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh tokens",
    description="Exchange a refresh token for a new access and refresh token pair",
    responses=get_error_responses(401, 403, 422, 429),
    dependencies=[Depends(rate_limit_by_ip("auth"))]
)
async def refresh_tokens(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    user, access_token, refresh_token = await auth_service.refresh_tokens(refresh_data.refresh_token)
    return _login_response(auth_service, user, access_token, refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    responses=get_auth_error_responses()
)
async def get_me(
    current_user: User = Depends(get_current_active_user)
) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())


@router.post(
    "/change-password",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Change password",
    description="Replace the current user's password; the current password is required",
    responses=get_error_responses(400, 401, 403, 422)
)
async def change_password(
    password_data: PasswordChangeRequest,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth_service.change_password(
        current_user,
        password_data.current_password,
        password_data.new_password
    )
    return MessageResponse(message="Password changed successfully")
