"""
Appointment repository: visit bookings, slot occupancy and agent statistics.
"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from propertyhub.repositories.base import BaseRepository
from propertyhub.utils.availability import day_bounds


class AppointmentRepository(BaseRepository[Appointment]):
    """Repository for property visit appointments."""

    def __init__(self, db: AsyncSession):
        super().__init__(Appointment, db)

    async def create_appointment(
        self,
        user_id: uuid.UUID,
        property_id: uuid.UUID,
        agent_id: Optional[uuid.UUID],
        scheduled_at: datetime,
        notes: Optional[str] = None
    ) -> Appointment:
        return await self.create({
            "user_id": user_id,
            "property_id": property_id,
            "agent_id": agent_id,
            "scheduled_at": scheduled_at,
            "notes": notes,
            "status": AppointmentStatus.PENDING,
        })

    async def get_with_relations(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Load an appointment with fresh property, client and agent data."""
        result = await self.db.execute(
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_status(
        self,
        appointment_id: uuid.UUID,
        status: AppointmentStatus,
        cancellation_reason: Optional[str] = None
    ) -> Optional[Appointment]:
        values = {"status": status}
        if cancellation_reason is not None:
            values["cancellation_reason"] = cancellation_reason
        return await self.update(appointment_id, values)

    async def get_user_appointments(self, user_id: uuid.UUID) -> List[Appointment]:
        """Appointments booked by a client, latest visit first."""
        result = await self.db.execute(
            select(Appointment)
            .where(Appointment.user_id == user_id)
            .order_by(Appointment.scheduled_at.desc())
        )
        return list(result.scalars().all())

    async def get_agent_appointments(
        self,
        agent_id: uuid.UUID,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        take: Optional[int] = None
    ) -> List[Appointment]:
        """
        Appointments assigned to an agent, earliest visit first.

        Args:
            agent_id: Assigned agent
            status: Only return this status
            start: Inclusive lower bound on the visit time
            end: Inclusive upper bound on the visit time
        """
        conditions = [Appointment.agent_id == agent_id]
        if status:
            conditions.append(Appointment.status == status)
        if start:
            conditions.append(Appointment.scheduled_at >= start)
        if end:
            conditions.append(Appointment.scheduled_at <= end)

        query = (
            select(Appointment)
            .where(and_(*conditions))
            .order_by(Appointment.scheduled_at.asc())
            .offset(skip)
        )
        if take is not None:
            query = query.limit(take)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def is_slot_available(self, property_id: uuid.UUID, scheduled_at: datetime) -> bool:
        """A slot is taken when a pending or confirmed visit starts at exactly that time."""
        result = await self.db.execute(
            select(func.count(Appointment.id)).where(and_(
                Appointment.property_id == property_id,
                Appointment.scheduled_at == scheduled_at,
                Appointment.status.in_(ACTIVE_STATUSES),
            ))
        )
        return (result.scalar() or 0) == 0

    async def get_booked_hours(self, property_id: uuid.UUID, day: date) -> List[int]:
        start, end = day_bounds(day)
        result = await self.db.execute(
            select(Appointment.scheduled_at).where(and_(
                Appointment.property_id == property_id,
                Appointment.scheduled_at >= start,
                Appointment.scheduled_at < end,
                Appointment.status.in_(ACTIVE_STATUSES),
            ))
        )
        return sorted({scheduled_at.hour for scheduled_at in result.scalars().all()})

    async def get_agent_stats(self, agent_id: uuid.UUID) -> Dict[str, int]:
        result = await self.db.execute(
            select(Appointment.status, func.count(Appointment.id))
            .where(Appointment.agent_id == agent_id)
            .group_by(Appointment.status)
        )
        stats = {status.value: 0 for status in AppointmentStatus}
        for status, count in result.all():
            stats[status.value] = count
        return stats

    async def count_by_status(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status)
        )
        counts = {status.value: 0 for status in AppointmentStatus}
        for status, count in result.all():
            counts[status.value] = count
        return counts

    async def counts_by_day(self, since: datetime) -> Dict[str, int]:
        day = func.date(Appointment.created_at)
        result = await self.db.execute(
            select(day, func.count(Appointment.id))
            .where(Appointment.created_at >= since)
            .group_by(day)
        )
        return {str(d): count for d, count in result.all()}
