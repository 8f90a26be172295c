"""
Business-hours rules for property visit appointments.

Visits last one hour, start on the hour, and are offered Monday to Friday
from 9:00 to 17:00 with a lunch break between 12:00 and 13:00. All datetimes
handled here are naive values in the configured business timezone.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from propertyhub.config import settings

BUSINESS_START_HOUR = 9
BUSINESS_END_HOUR = 17
LUNCH_START_HOUR = 12
LUNCH_END_HOUR = 13
WORKDAYS = (0, 1, 2, 3, 4)  # Monday..Friday as returned by date.weekday()

AVAILABLE_HOURS = [9, 10, 11, 13, 14, 15, 16]

APPOINTMENT_DURATION_MINUTES = 60


def business_now() -> datetime:
    """Current wall-clock time in the business timezone, without tzinfo."""
    return datetime.now(ZoneInfo(settings.business_timezone)).replace(tzinfo=None)


def to_business_time(value: datetime) -> datetime:
    """
    Normalize a datetime to naive business-timezone time.

    Aware values are converted; naive values are assumed to already be local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.business_timezone)).replace(tzinfo=None)


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def is_workday(value: date) -> bool:
    return value.weekday() in WORKDAYS


def is_business_hour(hour: int) -> bool:
    if hour < BUSINESS_START_HOUR or hour >= BUSINESS_END_HOUR:
        return False
    if LUNCH_START_HOUR <= hour < LUNCH_END_HOUR:
        return False
    return True


def validate_appointment_datetime(
    value: datetime,
    now: Optional[datetime] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check a requested visit time against the scheduling rules.

    Args:
        value: Requested start time (naive, business timezone)
        now: Reference time, defaults to the current business time

    Returns:
        Tuple of (is_valid, error message or None)
    """
    now = now or business_now()
    tomorrow = datetime.combine(now.date() + timedelta(days=1), time.min)

    if value < tomorrow:
        return False, "Appointments must be scheduled for tomorrow or later"

    _, last_day = get_valid_date_range(now=now)
    if value.date() > last_day:
        return False, (
            f"Appointments can be scheduled at most {settings.appointment_booking_days} days in advance"
        )

    if not is_workday(value.date()):
        return False, "Appointments are only available Monday through Friday"

    if not is_business_hour(value.hour):
        return False, (
            f"Appointments are available from {format_hour(BUSINESS_START_HOUR)} to "
            f"{format_hour(BUSINESS_END_HOUR)} (lunch break "
            f"{format_hour(LUNCH_START_HOUR)}-{format_hour(LUNCH_END_HOUR)})"
        )

    if value.minute or value.second or value.microsecond:
        return False, "Appointments must start on the hour"

    return True, None


def get_valid_date_range(
    days_ahead: Optional[int] = None,
    now: Optional[datetime] = None
) -> Tuple[date, date]:
    """First and last bookable dates, inclusive."""
    days_ahead = settings.appointment_booking_days if days_ahead is None else days_ahead
    now = now or business_now()
    first = now.date() + timedelta(days=1)
    return first, first + timedelta(days=days_ahead)


def generate_time_slots(day: date) -> List[datetime]:
    """All bookable start times on a given day, ignoring existing bookings."""
    if not is_workday(day):
        return []
    return [datetime.combine(day, time(hour=hour)) for hour in AVAILABLE_HOURS]


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
