"""
Pydantic schemas for authentication requests and responses.
Handles signup, login and token refresh.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from propertyhub.models.user import UserRole
from propertyhub.schemas.user import UserBase, UserResponse, validate_password_strength


class SignupRequest(UserBase):
    """Registration request. Accounts are clients unless agent signup is enabled."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (minimum 8 characters, one letter and one number)",
        examples=["securepassword123"]
    )
    role: Optional[UserRole] = Field(
        None,
        description="Requested role; only AGENT can be requested and only when enabled"
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return validate_password_strength(v)


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="User's email address", examples=["maria@example.com"])
    password: str = Field(..., min_length=1, max_length=128, description="User's password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()


class TokenResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds", examples=[1800])


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., description="Valid refresh token")


class LoginResponse(BaseModel):
    """Tokens plus the authenticated user's profile."""

    user: UserResponse
    tokens: TokenResponse
