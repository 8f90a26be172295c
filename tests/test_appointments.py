"""
Tests for the visit booking workflow.
"""

import pytest
import uuid
from datetime import datetime, time, timedelta, timezone
from unittest.mock import AsyncMock, Mock

from propertyhub.models.appointment import AppointmentStatus
from propertyhub.models.property import PropertyStatus
from propertyhub.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from propertyhub.services.appointment import (
    CREATED_EMAIL_WARNING,
    STATUS_EMAIL_WARNING,
    AppointmentService,
)
from propertyhub.services.notifications import EmailService
from propertyhub.utils.exceptions import (
    BadRequestError,
    ForbiddenError,
    InsufficientPermissionsError,
    InvalidAppointmentTimeError,
    InvalidStatusTransitionError,
    NotFoundError,
    SlotUnavailableError,
)
from propertyhub.utils.availability import business_now
from tests.conftest import PropertyFactory, UserFactory, next_business_slot


def make_notifier(success: bool = True) -> Mock:
    result = {"success": True} if success else {"success": False, "error": "SMTP down"}
    notifier = Mock(spec=EmailService)
    notifier.send_appointment_created = AsyncMock(return_value=result)
    notifier.send_appointment_confirmed = AsyncMock(return_value=result)
    notifier.send_appointment_cancelled = AsyncMock(return_value=result)
    return notifier


@pytest.fixture
def notifier():
    return make_notifier()


@pytest.fixture
def service(db_session, notifier):
    return AppointmentService(db_session, email_service=notifier)


@pytest.fixture
async def booking(service, test_user, test_property):
    appointment, _ = await service.create_appointment(
        AppointmentCreate(property_id=test_property.id, scheduled_at=next_business_slot(hour=10), notes="  Llego en taxi "),
        test_user
    )
    return appointment


class TestCreateAppointment:
    """Test booking rules."""

    async def test_books_with_listing_agent(self, booking, notifier, test_user, test_agent, test_property):
        assert booking.status == AppointmentStatus.PENDING
        assert booking.user_id == test_user.id
        assert booking.agent_id == test_agent.id
        assert booking.property_rel.id == test_property.id
        assert booking.notes == "Llego en taxi"
        notifier.send_appointment_created.assert_awaited_once()

    async def test_email_failure_returns_warning(self, db_session, test_user, test_property):
        service = AppointmentService(db_session, email_service=make_notifier(success=False))

        appointment, warning = await service.create_appointment(
            AppointmentCreate(property_id=test_property.id, scheduled_at=next_business_slot(hour=11)),
            test_user
        )

        assert appointment.id is not None
        assert warning == CREATED_EMAIL_WARNING

    async def test_disabled_email_is_not_a_failure(self, db_session, test_user, test_property):
        service = AppointmentService(db_session, email_service=EmailService(enabled=False))

        _, warning = await service.create_appointment(
            AppointmentCreate(property_id=test_property.id, scheduled_at=next_business_slot(hour=9)),
            test_user
        )

        assert warning is None

    async def test_aware_time_is_converted(self, service, test_user, test_property):
        local = next_business_slot(hour=14)
        # Guayaquil is UTC-5 all year
        utc = (local + timedelta(hours=5)).replace(tzinfo=timezone.utc)

        appointment, _ = await service.create_appointment(
            AppointmentCreate(property_id=test_property.id, scheduled_at=utc),
            test_user
        )

        assert appointment.scheduled_at == local

    async def test_agents_cannot_book(self, service, test_agent, test_property):
        with pytest.raises(InsufficientPermissionsError):
            await service.create_appointment(
                AppointmentCreate(property_id=test_property.id, scheduled_at=next_business_slot()),
                test_agent
            )

    async def test_missing_property(self, service, test_user):
        with pytest.raises(NotFoundError):
            await service.create_appointment(
                AppointmentCreate(property_id=uuid.uuid4(), scheduled_at=next_business_slot()),
                test_user
            )

    async def test_unavailable_property(self, service, property_repository, test_user, test_agent):
        sold = await PropertyFactory.create_property(
            property_repository, agent_id=test_agent.id, status=PropertyStatus.SOLD
        )

        with pytest.raises(BadRequestError):
            await service.create_appointment(
                AppointmentCreate(property_id=sold.id, scheduled_at=next_business_slot()),
                test_user
            )

    @pytest.mark.parametrize("hour", [8, 12, 17])
    async def test_outside_business_hours(self, service, test_user, test_property, hour):
        with pytest.raises(InvalidAppointmentTimeError):
            await service.create_appointment(
                AppointmentCreate(property_id=test_property.id, scheduled_at=next_business_slot(hour=hour)),
                test_user
            )

    async def test_beyond_booking_window(self, service, test_user, test_property):
        far_away = next_business_slot(hour=10, days_ahead=200)

        with pytest.raises(InvalidAppointmentTimeError) as exc_info:
            await service.create_appointment(
                AppointmentCreate(property_id=test_property.id, scheduled_at=far_away),
                test_user
            )

        assert "30 days in advance" in exc_info.value.detail
        assert await service.get_available_slots(test_property.id, far_away.date()) == []

    async def test_not_on_the_hour(self, service, test_user, test_property):
        with pytest.raises(InvalidAppointmentTimeError):
            await service.create_appointment(
                AppointmentCreate(
                    property_id=test_property.id,
                    scheduled_at=next_business_slot(hour=10) + timedelta(minutes=30)
                ),
                test_user
            )

    async def test_same_day_rejected(self, service, test_user, test_property):
        today = datetime.combine(business_now().date(), time(hour=10))

        with pytest.raises(InvalidAppointmentTimeError):
            await service.create_appointment(
                AppointmentCreate(property_id=test_property.id, scheduled_at=today),
                test_user
            )

    async def test_slot_taken(self, service, booking, user_repository, test_property):
        other_client = await UserFactory.create_user(user_repository)

        with pytest.raises(SlotUnavailableError):
            await service.create_appointment(
                AppointmentCreate(property_id=test_property.id, scheduled_at=booking.scheduled_at),
                other_client
            )

    async def test_cancelled_slot_can_be_rebooked(self, service, booking, test_user, test_property):
        await service.update_status(
            booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED), test_user
        )

        appointment, _ = await service.create_appointment(
            AppointmentCreate(property_id=test_property.id, scheduled_at=booking.scheduled_at),
            test_user
        )

        assert appointment.id != booking.id


class TestStatusWorkflow:
    """Test who may move an appointment and where."""

    async def test_agent_confirms_then_completes(self, service, notifier, booking, test_agent):
        confirmed, warning = await service.update_status(
            booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent
        )
        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert warning is None
        notifier.send_appointment_confirmed.assert_awaited_once()

        completed, warning = await service.update_status(
            booking.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED), test_agent
        )
        assert completed.status == AppointmentStatus.COMPLETED
        assert warning is None

    async def test_agent_cannot_complete_pending(self, service, booking, test_agent):
        with pytest.raises(InvalidStatusTransitionError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED), test_agent
            )

    async def test_agent_cannot_cancel_confirmed(self, service, booking, test_agent):
        await service.update_status(booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent)

        with pytest.raises(InvalidStatusTransitionError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED), test_agent
            )

    async def test_client_cancels_confirmed_visit(self, service, notifier, booking, test_user, test_agent):
        await service.update_status(booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent)

        cancelled, _ = await service.update_status(
            booking.id,
            AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED, cancellation_reason="Viaje imprevisto"),
            test_user
        )

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancellation_reason == "Viaje imprevisto"
        notifier.send_appointment_cancelled.assert_awaited_once()

    async def test_client_cannot_confirm(self, service, booking, test_user):
        with pytest.raises(ForbiddenError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_user
            )

    async def test_client_cannot_cancel_completed(self, service, booking, test_user, test_agent):
        await service.update_status(booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent)
        await service.update_status(booking.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED), test_agent)

        with pytest.raises(InvalidStatusTransitionError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED), test_user
            )

    async def test_other_agent_forbidden(self, service, booking, other_agent):
        with pytest.raises(ForbiddenError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), other_agent
            )

    async def test_admin_acts_as_agent(self, service, booking, test_admin):
        confirmed, _ = await service.update_status(
            booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_admin
        )
        assert confirmed.status == AppointmentStatus.CONFIRMED

    async def test_back_to_pending_rejected(self, service, booking, test_agent):
        with pytest.raises(BadRequestError):
            await service.update_status(
                booking.id, AppointmentStatusUpdate(status=AppointmentStatus.PENDING), test_agent
            )

    async def test_status_email_failure_warning(self, db_session, booking, test_agent):
        service = AppointmentService(db_session, email_service=make_notifier(success=False))

        appointment, warning = await service.update_status(
            booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent
        )

        assert appointment.status == AppointmentStatus.CONFIRMED
        assert warning == STATUS_EMAIL_WARNING

    async def test_missing_appointment(self, service, test_agent):
        with pytest.raises(NotFoundError):
            await service.update_status(
                uuid.uuid4(), AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent
            )


class TestSlotsAndQueries:
    """Test availability, listings and statistics."""

    async def test_available_slots_skip_booked_hours(self, service, booking, test_property):
        slots = await service.get_available_slots(test_property.id, booking.scheduled_at.date())

        assert booking.scheduled_at not in slots
        assert [slot.hour for slot in slots] == [9, 11, 13, 14, 15, 16]

    async def test_no_slots_outside_booking_window(self, service, test_property):
        today = business_now().date()
        far_away = next_business_slot(days_ahead=400).date()

        assert await service.get_available_slots(test_property.id, today) == []
        assert await service.get_available_slots(test_property.id, far_away) == []

    async def test_slots_for_missing_property(self, service):
        with pytest.raises(NotFoundError):
            await service.get_available_slots(uuid.uuid4(), next_business_slot().date())

    async def test_get_appointment_visibility(self, service, booking, test_user, test_agent, test_admin, other_agent):
        assert (await service.get_appointment(booking.id, test_user)).id == booking.id
        assert (await service.get_appointment(booking.id, test_agent)).id == booking.id
        assert (await service.get_appointment(booking.id, test_admin)).id == booking.id

        with pytest.raises(ForbiddenError):
            await service.get_appointment(booking.id, other_agent)

    async def test_user_and_agent_lists(self, service, booking, test_user, test_agent, other_agent):
        assert [a.id for a in await service.get_user_appointments(test_user)] == [booking.id]
        assert [a.id for a in await service.get_agent_appointments(test_agent)] == [booking.id]
        assert await service.get_agent_appointments(other_agent) == []

        with pytest.raises(InsufficientPermissionsError):
            await service.get_agent_appointments(test_user)

    async def test_agent_list_date_range(self, service, booking, test_agent):
        start = booking.scheduled_at + timedelta(days=1)
        with pytest.raises(BadRequestError):
            await service.get_agent_appointments(test_agent, start=start, end=booking.scheduled_at)

        assert await service.get_agent_appointments(test_agent, start=start) == []

    async def test_agent_stats(self, service, booking, test_agent, test_user):
        await service.update_status(booking.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), test_agent)

        stats = await service.get_agent_stats(test_agent)

        assert stats == {"pending": 0, "confirmed": 1, "cancelled": 0, "completed": 0, "total": 1}
        with pytest.raises(InsufficientPermissionsError):
            await service.get_agent_stats(test_user)

    async def test_delete(self, service, booking, other_agent, test_user):
        with pytest.raises(ForbiddenError):
            await service.delete_appointment(booking.id, other_agent)

        assert await service.delete_appointment(booking.id, test_user)
        with pytest.raises(NotFoundError):
            await service.get_appointment(booking.id, test_user)
