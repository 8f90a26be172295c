"""
Authentication service for registration, login and token management.
"""

from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.config import settings
from propertyhub.repositories.user import UserRepository
from propertyhub.models.user import User, UserRole
from propertyhub.schemas.auth import SignupRequest
from propertyhub.utils.auth import create_access_token, create_refresh_token, verify_token
from propertyhub.utils.exceptions import (
    APIException,
    BadRequestError,
    DuplicateResourceError,
    ForbiddenError,
    InactiveUserError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for managing accounts and tokens.
    Handles signup, login, token refresh and password changes.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def register(self, data: SignupRequest) -> User:
        """
        Register a new account.

        Accounts are clients (USER). Requesting AGENT is accepted only when
        ``allow_agent_signup`` is enabled; ADMIN can never be self-assigned.

        Raises:
            DuplicateResourceError: If the email is already registered
            ForbiddenError: If the requested role is not allowed
        """
        role = UserRole.USER
        if data.role and data.role != UserRole.USER:
            if data.role == UserRole.AGENT and settings.allow_agent_signup:
                role = UserRole.AGENT
            else:
                raise ForbiddenError(f"Cannot sign up with role {data.role.value}")

        try:
            if await self.user_repo.email_exists(data.email):
                raise DuplicateResourceError("User", data.email)

            user = await self.user_repo.create_user({
                "email": data.email,
                "password": data.password,
                "name": data.name,
                "phone": data.phone,
                "role": role,
            })
            logger.info(f"User registered: {user.email} (ID: {user.id}, role: {role.value})")
            return user

        except APIException:
            raise
        except ValueError as e:
            raise BadRequestError(str(e))
        except Exception as e:
            logger.error(f"Failed to register user {data.email}: {e}")
            raise BadRequestError(f"Failed to register user: {str(e)}")

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
            InactiveUserError: If the account is deactivated
        """
        user = await self.user_repo.get_by_email(email)

        if not user or not user.verify_password(password):
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(f"Inactive user attempted login: {email}")
            raise InactiveUserError()

        logger.info(f"User authenticated successfully: {user.email}")
        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """Create an (access_token, refresh_token) pair for a user."""
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        """
        Authenticate user and create tokens.

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = self.create_tokens(user)
        return user, access_token, refresh_token

    async def refresh_tokens(self, refresh_token: str) -> Tuple[User, str, str]:
        """
        Issue a new token pair from a refresh token.

        Raises:
            InvalidTokenError: If the refresh token is invalid or expired
            InactiveUserError: If the account was deactivated since login
        """
        try:
            payload = verify_token(refresh_token, token_type="refresh")
        except JWTError as e:
            raise InvalidTokenError(self._token_error_message(e))

        user = await self._get_token_user(payload.user_id)
        access_token, new_refresh_token = self.create_tokens(user)
        return user, access_token, new_refresh_token

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user behind an access token.

        Raises:
            InvalidTokenError: If the token is invalid, expired or its user is gone
            InactiveUserError: If the account is deactivated
        """
        try:
            payload = verify_token(token, token_type="access")
        except JWTError as e:
            raise InvalidTokenError(self._token_error_message(e))

        return await self._get_token_user(payload.user_id)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace a user's password after checking the current one.

        Raises:
            InvalidCredentialsError: If the current password is wrong
            BadRequestError: If the new password equals the current one
        """
        if not user.verify_password(current_password):
            raise InvalidCredentialsError("Current password is incorrect")

        if current_password == new_password:
            raise BadRequestError("New password must be different from the current password")

        try:
            user.set_password(new_password)
            await self.db.commit()
            logger.info(f"Password changed for user: {user.email}")
        except ValueError as e:
            await self.db.rollback()
            raise BadRequestError(str(e))

    async def _get_token_user(self, user_id: str) -> User:
        try:
            user = await self.user_repo.get_by_id(uuid.UUID(user_id))
        except ValueError:
            raise InvalidTokenError("Invalid token payload")

        if user is None:
            raise InvalidTokenError("User no longer exists")
        if not user.is_active:
            raise InactiveUserError()
        return user

    @staticmethod
    def _token_error_message(error: JWTError) -> str:
        if "expired" in str(error).lower():
            return "Token has expired"
        return f"Invalid token: {error}"

    def token_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return settings.access_token_expire_minutes * 60
