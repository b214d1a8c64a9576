"""
Slot Validator

Decides whether a requested (professional, date, start, end) can be booked:

1. The interval must sit entirely inside one of the professional's weekly
   availability windows for that weekday.
2. It must not overlap a non-cancelled appointment of the same professional
   on the same date. Intervals are half-open, so back-to-back bookings
   (09:00-09:30 then 09:30-10:00) do not conflict.

Express requests invert rule 1: they are only allowed while the professional
is outside every window and not already attending someone.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.orm import Session

from app.core.error_handling import (
    ExpressNotAllowed,
    NoAvailability,
    SlotTaken,
    ValidationFailed,
)
from app.models.appointment import Appointment, AppointmentState
from app.models.availability import Availability
from app.utils.dates import weekday_of

logger = logging.getLogger(__name__)

_FAILURES = {
    ValidationFailed.code: ValidationFailed,
    NoAvailability.code: NoAvailability,
    SlotTaken.code: SlotTaken,
}


@dataclass
class SlotCheck:
    ok: bool
    reason: Optional[str] = None


def find_window(
    db: Session, professional_id: int, day: date, start: time, end: time
) -> Optional[Availability]:
    return db.query(Availability).filter(
        Availability.professional_id == professional_id,
        Availability.weekday == weekday_of(day),
        Availability.start_time <= start,
        Availability.end_time >= end,
    ).first()


def has_overlap(
    db: Session,
    professional_id: int,
    day: date,
    start: time,
    end: time,
    exclude_id: Optional[int] = None,
) -> bool:
    query = db.query(Appointment.id).filter(
        Appointment.professional_id == professional_id,
        Appointment.date == day,
        Appointment.state != AppointmentState.CANCELLED.value,
        Appointment.start_time < end,
        Appointment.end_time > start,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.first() is not None


def can_book(db: Session, professional_id: int, day: date, start: time, end: time) -> SlotCheck:
    if start >= end:
        return SlotCheck(False, ValidationFailed.code)

    if find_window(db, professional_id, day, start, end) is None:
        return SlotCheck(False, NoAvailability.code)

    if has_overlap(db, professional_id, day, start, end):
        return SlotCheck(False, SlotTaken.code)

    return SlotCheck(True)


def ensure_bookable(db: Session, professional_id: int, day: date, start: time, end: time) -> None:
    """Raise the typed failure for a slot that cannot be booked."""
    check = can_book(db, professional_id, day, start, end)
    if not check.ok:
        logger.info(
            f"Slot {day} {start}-{end} rejected for professional {professional_id}: {check.reason}"
        )
        if check.reason == ValidationFailed.code:
            raise ValidationFailed("La hora de inicio debe ser anterior a la hora de fin")
        raise _FAILURES[check.reason]()


def can_request_express(db: Session, professional_id: int, now: datetime) -> SlotCheck:
    today = now.date()
    at = now.time().replace(tzinfo=None)

    in_window = db.query(Availability.id).filter(
        Availability.professional_id == professional_id,
        Availability.weekday == weekday_of(today),
        Availability.start_time <= at,
        Availability.end_time > at,
    ).first()
    if in_window is not None:
        return SlotCheck(False, ExpressNotAllowed.code)

    busy = db.query(Appointment.id).filter(
        Appointment.professional_id == professional_id,
        Appointment.date == today,
        Appointment.state != AppointmentState.CANCELLED.value,
        Appointment.start_time <= at,
        Appointment.end_time > at,
    ).first()
    if busy is not None:
        return SlotCheck(False, ExpressNotAllowed.code)

    return SlotCheck(True)
