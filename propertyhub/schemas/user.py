"""
Pydantic schemas for user accounts and agent profiles.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from propertyhub.models.user import UserRole
import re

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{7,20}$")


def validate_password_strength(value: str) -> str:
    """Require at least 8 characters with one letter and one number."""
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if not any(c.isalpha() for c in value):
        raise ValueError("Password must contain at least one letter")

    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")

    return value


def validate_phone_number(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number format")
    return value


class UserBase(BaseModel):
    """Base user schema with common fields."""

    email: EmailStr = Field(..., description="User's email address", examples=["maria@example.com"])
    name: str = Field(..., min_length=2, max_length=255, description="Display name", examples=["María Vázquez"])
    phone: Optional[str] = Field(None, max_length=30, examples=["+593 99 123 4567"])

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)


class UserUpdate(BaseModel):
    """
    Schema for updating a user profile.

    Only the fields sent are changed. ``role`` and ``is_active`` are honoured
    for administrators only.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    avatar: Optional[str] = Field(None, max_length=500)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip() if v else v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    id: str = Field(..., description="User's unique identifier")
    email: EmailStr
    name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserPublic(BaseModel):
    """Contact card shown on listings and appointments."""

    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    avatar: Optional[str] = None


class AgentProfileResponse(BaseModel):
    agent: UserPublic
    properties: List[dict] = Field(default_factory=list, description="Agent's available listings")
    total_properties: int = 0


class PasswordChangeRequest(BaseModel):
    """Schema for password change request."""

    current_password: str = Field(..., min_length=1, max_length=128, description="Current password")
    new_password: str = Field(..., min_length=8, max_length=128, description="New password (minimum 8 characters)")
    confirm_password: str = Field(..., min_length=8, max_length=128, description="Confirm new password")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return validate_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v, info):
        if "new_password" in info.data and v != info.data["new_password"]:
            raise ValueError("Passwords do not match")
        return v
