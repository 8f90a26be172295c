"""
Appointment service for property visits.
Handles booking against business hours, the agent confirmation workflow,
slot availability and notification emails.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.models.appointment import Appointment, AppointmentStatus
from propertyhub.models.property import PropertyStatus
from propertyhub.models.user import User, UserRole
from propertyhub.repositories.appointment import AppointmentRepository
from propertyhub.repositories.property import PropertyRepository
from propertyhub.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from propertyhub.services.notifications import EmailService
from propertyhub.utils.availability import (
    business_now,
    generate_time_slots,
    get_valid_date_range,
    to_business_time,
    validate_appointment_datetime,
)
from propertyhub.utils.exceptions import (
    APIException,
    BadRequestError,
    ForbiddenError,
    InsufficientPermissionsError,
    InvalidAppointmentTimeError,
    InvalidStatusTransitionError,
    NotFoundError,
    SlotUnavailableError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

CREATED_EMAIL_WARNING = "Appointment created but email notification failed"
STATUS_EMAIL_WARNING = "Status updated but email notification failed"

# Target status -> (verb used in errors, statuses the agent may move from)
AGENT_TRANSITIONS = {
    AppointmentStatus.CONFIRMED: ("confirm", (AppointmentStatus.PENDING,)),
    AppointmentStatus.CANCELLED: ("cancel", (AppointmentStatus.PENDING,)),
    AppointmentStatus.COMPLETED: ("complete", (AppointmentStatus.CONFIRMED,)),
}

CLIENT_CANCELLABLE = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class AppointmentService:
    """
    Visit booking workflow.

    Clients request a visit, the listing's agent confirms, cancels or completes
    it. Administrators can act as the agent on any appointment.
    """

    def __init__(self, db_session: AsyncSession, email_service: Optional[EmailService] = None):
        self.db = db_session
        self.appointment_repo = AppointmentRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.email_service = email_service or EmailService()

    async def create_appointment(
        self,
        data: AppointmentCreate,
        current_user: User
    ) -> Tuple[Appointment, Optional[str]]:
        """
        Book a visit for the calling client.

        Args:
            data: Property, requested start time and optional notes
            current_user: Client making the booking

        Returns:
            Tuple of (created appointment, warning if the email failed)

        Raises:
            InsufficientPermissionsError: If the caller is not a regular user
            NotFoundError: If the property doesn't exist
            BadRequestError: If the property is not available for visits
            InvalidAppointmentTimeError: If the time breaks the business-hours rules
            SlotUnavailableError: If the slot is already taken
        """
        try:
            if current_user.role != UserRole.USER:
                raise InsufficientPermissionsError("book appointments")

            property_obj = await self.property_repo.get_by_id(data.property_id)
            if not property_obj:
                raise NotFoundError("Property", str(data.property_id))
            if property_obj.status != PropertyStatus.AVAILABLE:
                raise BadRequestError("Property is not available for appointments")

            scheduled_at = to_business_time(data.scheduled_at)
            is_valid, error = validate_appointment_datetime(scheduled_at)
            if not is_valid:
                raise InvalidAppointmentTimeError(error)

            if not await self.appointment_repo.is_slot_available(property_obj.id, scheduled_at):
                raise SlotUnavailableError()

            created = await self.appointment_repo.create_appointment(
                user_id=current_user.id,
                property_id=property_obj.id,
                agent_id=property_obj.agent_id,
                scheduled_at=scheduled_at,
                notes=data.notes
            )
            appointment = await self.appointment_repo.get_with_relations(created.id)

            logger.info(
                f"Appointment {appointment.id} booked by {current_user.email} "
                f"for property {property_obj.id} at {scheduled_at.isoformat()}"
            )

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create appointment for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create appointment: {str(e)}")

        result = await self.email_service.send_appointment_created(appointment)
        warning = None if result["success"] else CREATED_EMAIL_WARNING
        return appointment, warning

    def _is_acting_agent(self, appointment: Appointment, user: User) -> bool:
        return user.is_admin or (user.is_agent and appointment.agent_id == user.id)

    async def update_status(
        self,
        appointment_id: uuid.UUID,
        data: AppointmentStatusUpdate,
        current_user: User
    ) -> Tuple[Appointment, Optional[str]]:
        """
        Move an appointment through its workflow.

        The assigned agent (or an administrator) confirms or cancels pending
        visits and completes confirmed ones. The client may cancel their own
        pending or confirmed visit.

        Returns:
            Tuple of (updated appointment, warning if the email failed)

        Raises:
            NotFoundError: If the appointment doesn't exist
            ForbiddenError: If the caller is not allowed to change it
            InvalidStatusTransitionError: If the current status does not allow the change
        """
        appointment = await self.appointment_repo.get_with_relations(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", str(appointment_id))

        target = data.status
        current = appointment.status

        if target == AppointmentStatus.PENDING:
            raise BadRequestError("Appointments cannot be moved back to PENDING")

        verb, allowed_from = AGENT_TRANSITIONS[target]

        if self._is_acting_agent(appointment, current_user):
            if current not in allowed_from:
                raise InvalidStatusTransitionError(verb, current.value)
        elif appointment.user_id == current_user.id:
            if target != AppointmentStatus.CANCELLED:
                raise ForbiddenError("Only the agent can confirm or complete an appointment")
            if current not in CLIENT_CANCELLABLE:
                raise InvalidStatusTransitionError(verb, current.value)
        else:
            raise ForbiddenError("You cannot modify this appointment")

        reason = data.cancellation_reason if target == AppointmentStatus.CANCELLED else None
        await self.appointment_repo.update_status(appointment_id, target, cancellation_reason=reason)
        appointment = await self.appointment_repo.get_with_relations(appointment_id)

        logger.info(
            f"Appointment {appointment_id} {current.value} -> {target.value} by {current_user.email}"
        )

        if target == AppointmentStatus.CONFIRMED:
            result = await self.email_service.send_appointment_confirmed(appointment)
        elif target == AppointmentStatus.CANCELLED:
            result = await self.email_service.send_appointment_cancelled(appointment)
        else:
            return appointment, None

        return appointment, None if result["success"] else STATUS_EMAIL_WARNING

    async def get_available_slots(
        self,
        property_id: uuid.UUID,
        day: date,
        now: Optional[datetime] = None
    ) -> List[datetime]:
        """
        Free one-hour start times for a property on a given day.

        Weekends and dates outside the booking window have no slots.

        Raises:
            NotFoundError: If the property doesn't exist
        """
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", str(property_id))

        first, last = get_valid_date_range(now=now or business_now())
        if day < first or day > last:
            return []

        booked = set(await self.appointment_repo.get_booked_hours(property_id, day))
        return [slot for slot in generate_time_slots(day) if slot.hour not in booked]

    async def get_user_appointments(self, current_user: User) -> List[Appointment]:
        return await self.appointment_repo.get_user_appointments(current_user.id)

    async def get_agent_appointments(
        self,
        current_user: User,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Appointment]:
        if not current_user.can_publish:
            raise InsufficientPermissionsError("view agent appointments")

        if start and end and start > end:
            raise BadRequestError("Start date must be before end date")

        return await self.appointment_repo.get_agent_appointments(
            current_user.id,
            status=status,
            start=to_business_time(start) if start else None,
            end=to_business_time(end) if end else None
        )

    async def get_appointment(self, appointment_id: uuid.UUID, current_user: User) -> Appointment:
        """
        Raises:
            NotFoundError: If the appointment doesn't exist
            ForbiddenError: If the caller is neither a participant nor an administrator
        """
        appointment = await self.appointment_repo.get_with_relations(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", str(appointment_id))

        if not current_user.is_admin and not appointment.is_participant(current_user.id):
            raise ForbiddenError("You cannot view this appointment")
        return appointment

    async def delete_appointment(self, appointment_id: uuid.UUID, current_user: User) -> bool:
        appointment = await self.appointment_repo.get_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", str(appointment_id))

        if not current_user.is_admin and not appointment.is_participant(current_user.id):
            raise ForbiddenError("You cannot delete this appointment")

        deleted = await self.appointment_repo.delete(appointment_id)
        logger.info(f"Appointment {appointment_id} deleted by {current_user.email}")
        return deleted

    async def get_agent_stats(self, current_user: User) -> Dict[str, int]:
        if not current_user.can_publish:
            raise InsufficientPermissionsError("view agent statistics")

        by_status = await self.appointment_repo.get_agent_stats(current_user.id)
        stats = {status.lower(): count for status, count in by_status.items()}
        stats["total"] = sum(by_status.values())
        return stats
