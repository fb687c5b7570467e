"""Appointment scheduling rules.

Pure helpers shared by every booking path: interval conflict detection
within a clinic's day schedule and the appointment status lifecycle.
Nothing here touches the database; callers supply the appointments to
compare against.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import (
    AppointmentConflictException,
    InvalidInputException,
    InvalidStateException,
    ValidationException,
)

DEFAULT_DURATION_MINUTES = 60
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480

# HH:MM with an optional :SS suffix (databases hand back full times)
TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])(?::([0-5][0-9]))?$")


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


@dataclass(frozen=True)
class ScheduleSlot:
    """An existing booking as seen by the conflict checker."""

    id: UUID | str
    appointment_time: time | str
    duration_minutes: int | None = None
    status: str = AppointmentStatus.SCHEDULED.value
    appointment_date: date | str | None = None

    @classmethod
    def from_mapping(cls, row: Any) -> "ScheduleSlot":
        """Build a slot from a database row mapping."""
        return cls(
            id=row["id"],
            appointment_time=row["appointment_time"],
            duration_minutes=row.get("duration_minutes"),
            status=row["status"],
            appointment_date=row.get("appointment_date"),
        )


def parse_date(value: date | str) -> date:
    """
    Coerce an ISO calendar date.

    Raises:
        InvalidInputException: If the value is not a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidInputException(f"Invalid appointment date: {value!r}")


def parse_time(value: time | str) -> time:
    """
    Coerce a time of day to minute resolution.

    Raises:
        InvalidInputException: If the value is not an HH:MM time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, str):
        match = TIME_PATTERN.match(value.strip())
        if match:
            return time(int(match.group(1)), int(match.group(2)))
    raise InvalidInputException(f"Invalid appointment time: {value!r}")


def _coerce_duration(value: Any) -> int:
    if value is None:
        return DEFAULT_DURATION_MINUTES
    if isinstance(value, bool):
        raise InvalidInputException(f"Invalid duration: {value!r}")
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise InvalidInputException(f"Invalid duration: {value!r}")
    if minutes <= 0:
        raise InvalidInputException("Duration must be a positive number of minutes")
    return minutes


def effective_interval(
    appointment_date: date | str,
    appointment_time: time | str,
    duration_minutes: int | None = None,
) -> tuple[datetime, datetime]:
    """
    Compute the half-open interval an appointment occupies.

    Args:
        appointment_date: Calendar date
        appointment_time: Time of day
        duration_minutes: Length in minutes (60 when missing)

    Returns:
        (start, end) pair; end is exclusive
    """
    start = datetime.combine(parse_date(appointment_date), parse_time(appointment_time))
    return start, start + timedelta(minutes=_coerce_duration(duration_minutes))


def find_conflict(
    candidate_date: date | str,
    candidate_time: time | str,
    existing: Iterable[ScheduleSlot],
    duration_minutes: int | None = None,
    exclude_appointment_id: UUID | str | None = None,
) -> ScheduleSlot | None:
    """
    Find the first existing appointment overlapping a candidate slot.

    The caller narrows ``existing`` to a single clinic and calendar date.
    Cancelled appointments and ``exclude_appointment_id`` are ignored.
    Intervals that only touch at an endpoint do not overlap.

    Args:
        candidate_date: Date of the proposed appointment
        candidate_time: Start time of the proposed appointment
        existing: Appointments already booked for that clinic and date
        duration_minutes: Proposed length (60 when missing)
        exclude_appointment_id: Appointment being rescheduled, if any

    Returns:
        The colliding slot, or None when the candidate fits

    Raises:
        InvalidInputException: If date, time or duration cannot be parsed
    """
    day = parse_date(candidate_date)
    start, end = effective_interval(day, candidate_time, duration_minutes)
    excluded = str(exclude_appointment_id) if exclude_appointment_id is not None else None

    for slot in existing:
        if slot.status == AppointmentStatus.CANCELLED.value:
            continue
        if excluded is not None and str(slot.id) == excluded:
            continue

        slot_start, slot_end = effective_interval(
            slot.appointment_date or day,
            slot.appointment_time,
            slot.duration_minutes,
        )
        if start < slot_end and end > slot_start:
            return slot

    return None


def check_conflict(
    candidate_date: date | str,
    candidate_time: time | str,
    existing: Iterable[ScheduleSlot],
    duration_minutes: int | None = None,
    exclude_appointment_id: UUID | str | None = None,
) -> None:
    """
    Reject a candidate slot that overlaps an existing appointment.

    Raises:
        AppointmentConflictException: Carrying the id of the colliding appointment
        InvalidInputException: If date, time or duration cannot be parsed
    """
    conflict = find_conflict(
        candidate_date,
        candidate_time,
        existing,
        duration_minutes=duration_minutes,
        exclude_appointment_id=exclude_appointment_id,
    )
    if conflict is not None:
        raise AppointmentConflictException(conflict.id)


def validate_status(value: Any) -> AppointmentStatus:
    """
    Validate an appointment status value.

    Raises:
        ValidationException: If value is not one of the known statuses
    """
    try:
        return AppointmentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise ValidationException(
            f"Invalid appointment status {value!r}; expected one of: {allowed}"
        )


def can_delete(status: AppointmentStatus | str) -> bool:
    """Completed appointments are part of the clinical record and stay."""
    return validate_status(status) != AppointmentStatus.COMPLETED


def ensure_deletable(status: AppointmentStatus | str) -> None:
    """
    Guard appointment deletion.

    Raises:
        InvalidStateException: If the appointment is completed
    """
    if not can_delete(status):
        raise InvalidStateException("Cannot delete completed appointments")
