"""
Appointment model for property visits.
A client books a one-hour visit to a property; the listing's agent confirms or cancels it.
"""

from sqlalchemy import String, Text, DateTime, ForeignKey, Index, Enum as SQLEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from propertyhub.database import Base
from datetime import datetime
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from propertyhub.models.user import User
    from propertyhub.models.property import Property


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Statuses that keep a time slot occupied
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class Appointment(Base):
    """
    Property visit appointment.

    ``scheduled_at`` is stored as a naive datetime expressed in the configured
    business timezone, on the hour.
    """

    __tablename__ = "appointments"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Client who booked the visit"
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Agent responsible for the property at booking time"
    )

    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False
    )

    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    user: Mapped["User"] = relationship(
        "User",
        back_populates="appointments",
        foreign_keys=[user_id],
        lazy="selectin"
    )

    agent: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[agent_id],
        lazy="selectin"
    )

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="appointments",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, property_id={self.property_id}, scheduled_at={self.scheduled_at}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.user_id, self.agent_id)

    def to_dict(self, include_relations: bool = True) -> dict:
        result = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id),
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "scheduled_at": self.scheduled_at.isoformat(),
            "status": self.status.value,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_relations:
            result["property"] = self.property_rel.to_summary() if self.property_rel else None
            result["user"] = {
                "id": str(self.user.id),
                "name": self.user.name,
                "email": self.user.email,
                "phone": self.user.phone,
            } if self.user else None
            result["agent"] = {
                "id": str(self.agent.id),
                "name": self.agent.name,
                "email": self.agent.email,
                "phone": self.agent.phone,
            } if self.agent else None

        return result


Index(
    "idx_appointments_property_scheduled",
    Appointment.property_id,
    Appointment.scheduled_at
)

Index(
    "idx_appointments_agent_scheduled",
    Appointment.agent_id,
    Appointment.scheduled_at
)
