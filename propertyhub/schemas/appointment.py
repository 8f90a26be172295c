"""
Pydantic schemas for property visit appointments.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
from propertyhub.models.appointment import AppointmentStatus
from propertyhub.schemas.property import PropertySummary
import uuid


class AppointmentCreate(BaseModel):
    """
    Booking request.

    ``scheduled_at`` may carry a UTC offset; naive values are read as local
    business time.
    """

    property_id: uuid.UUID
    scheduled_at: datetime = Field(..., examples=["2024-01-15T14:00:00"])
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v):
        if v is None:
            return None
        return v.strip() or None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class AppointmentContact(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: str
    user_id: str
    property_id: str
    agent_id: Optional[str] = None
    scheduled_at: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    property: Optional[PropertySummary] = None
    user: Optional[AppointmentContact] = None
    agent: Optional[AppointmentContact] = None


class AppointmentActionResponse(BaseModel):
    """Appointment after a change, with a warning when the notification email failed."""

    appointment: AppointmentResponse
    warning: Optional[str] = None


class AvailableSlotsResponse(BaseModel):
    property_id: str
    date: date
    slots: List[datetime] = Field(default_factory=list, description="Free start times, one hour each")


class AgentStatsResponse(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
