"""
Pydantic schemas for the administration dashboard.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from propertyhub.models.user import UserRole
from propertyhub.schemas.property import PropertySummary
from propertyhub.schemas.user import UserPublic, UserResponse


class AdminUserRow(UserResponse):
    property_count: int = 0
    favorite_count: int = 0
    appointment_count: int = 0


class AdminPropertyRow(PropertySummary):
    address: str
    agent: Optional[UserPublic] = None
    image_count: int = 0
    favorite_count: int = 0
    appointment_count: int = 0
    created_at: str


class RoleUpdate(BaseModel):
    role: UserRole


class StatsTotals(BaseModel):
    users: int
    properties: int
    appointments: int
    favorites: int


class RecentActivity(BaseModel):
    """Accounts and listings created in the last 30 days."""

    users: int
    properties: int


class StatsResponse(BaseModel):
    totals: StatsTotals
    users_by_role: Dict[str, int]
    properties_by_status: Dict[str, int]
    appointments_by_status: Dict[str, int]
    recent: RecentActivity


class DailyCount(BaseModel):
    date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    users: int = 0
    properties: int = 0
    appointments: int = 0


class MetricsResponse(BaseModel):
    days: int
    series: List[DailyCount]
