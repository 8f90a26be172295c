"""
Appointment API endpoints: visit booking, the agent workflow and slot availability.
"""

from datetime import date, datetime
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from propertyhub.models.appointment import Appointment, AppointmentStatus
from propertyhub.models.user import User
from propertyhub.services.appointment import AppointmentService
from propertyhub.schemas.appointment import (
    AgentStatsResponse,
    AppointmentActionResponse,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailableSlotsResponse,
)
from propertyhub.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses
from propertyhub.utils.dependencies import (
    get_appointment_service,
    get_current_active_user,
    get_current_agent_user,
    rate_limit_by_user,
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def _appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment.to_dict())


@router.post(
    "",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a visit",
    description=(
        "Request a one-hour visit, Monday to Friday between 09:00 and 17:00 "
        "(lunch 12:00-13:00), from tomorrow on. Times without an offset are "
        "read as local business time."
    ),
    responses=get_crud_error_responses(),
    dependencies=[Depends(rate_limit_by_user("appointment"))]
)
async def create_appointment(
    appointment_data: AppointmentCreate,
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentActionResponse:
    """
    Raises:
        InvalidAppointmentTimeError: If the time breaks the business-hours rules
        SlotUnavailableError: If another visit already holds the slot
    """
    appointment, warning = await appointment_service.create_appointment(appointment_data, current_user)
    return AppointmentActionResponse(appointment=_appointment_response(appointment), warning=warning)


@router.get(
    "/me",
    response_model=List[AppointmentResponse],
    summary="My appointments",
    description="Visits booked by the current user, latest first",
    responses=get_common_error_responses()
)
async def get_my_appointments(
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> List[AppointmentResponse]:
    appointments = await appointment_service.get_user_appointments(current_user)
    return [_appointment_response(appointment) for appointment in appointments]


@router.get(
    "/agent",
    response_model=List[AppointmentResponse],
    summary="Agent appointments",
    description="Visits assigned to the current agent, earliest first",
    responses=get_common_error_responses()
)
async def get_agent_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    start: Optional[datetime] = Query(None, description="Inclusive lower bound"),
    end: Optional[datetime] = Query(None, description="Inclusive upper bound"),
    current_user: User = Depends(get_current_agent_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> List[AppointmentResponse]:
    appointments = await appointment_service.get_agent_appointments(
        current_user,
        status=status_filter,
        start=start,
        end=end
    )
    return [_appointment_response(appointment) for appointment in appointments]


@router.get(
    "/agent/stats",
    response_model=AgentStatsResponse,
    summary="Agent appointment statistics",
    responses=get_common_error_responses()
)
async def get_agent_stats(
    current_user: User = Depends(get_current_agent_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AgentStatsResponse:
    return AgentStatsResponse(**await appointment_service.get_agent_stats(current_user))


@router.get(
    "/slots",
    response_model=AvailableSlotsResponse,
    summary="Available slots",
    description="Free start times for a property on a date; empty on weekends and outside the booking window",
    responses=get_error_responses(404, 422)
)
async def get_available_slots(
    property_id: UUID = Query(...),
    slot_date: date = Query(..., alias="date", description="Day to check (YYYY-MM-DD)"),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AvailableSlotsResponse:
    slots = await appointment_service.get_available_slots(property_id, slot_date)
    return AvailableSlotsResponse(property_id=str(property_id), date=slot_date, slots=slots)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment",
    description="Visible to the client, the assigned agent and administrators",
    responses=get_common_error_responses()
)
async def get_appointment(
    appointment_id: UUID,
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentResponse:
    appointment = await appointment_service.get_appointment(appointment_id, current_user)
    return _appointment_response(appointment)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentActionResponse,
    summary="Change appointment status",
    description=(
        "Agents confirm or cancel pending visits and complete confirmed ones. "
        "Clients can cancel their own pending or confirmed visits."
    ),
    responses=get_common_error_responses()
)
async def update_appointment_status(
    appointment_id: UUID,
    status_data: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentActionResponse:
    appointment, warning = await appointment_service.update_status(appointment_id, status_data, current_user)
    return AppointmentActionResponse(appointment=_appointment_response(appointment), warning=warning)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
    responses=get_common_error_responses()
)
async def delete_appointment(
    appointment_id: UUID,
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> None:
    await appointment_service.delete_appointment(appointment_id, current_user)
