# Overview: Service-layer operations for calendar slots; lazy day materialization and atomic capacity counters.

from __future__ import annotations

"""
Calendar Slot Invariants (authoritative)

- A working day (Mon-Fri) has eight 1-hour slots, 08:00-17:00 minus the
  12:00-13:00 lunch hour, each with capacity DEFAULT_MAX_APPOINTMENTS.
- Weekend days never get slots. Asking for a weekend day is not an error,
  it just yields nothing.
- Slots for a day are materialized lazily, on first access, exactly once.
- 0 <= current_appointments <= max_appointments at all times. The counter is
  only ever changed by ONE guarded UPDATE statement, never by reading the
  row and writing back a new value, so two concurrent bookings can not both
  take the last spot.
- Slot windows are half-open: start_time <= t < end_time.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import PastDateError, SlotNotFoundError, SlotUnavailableError, ValidationError
from ..models import CalendarSlot
from .. import time_utils
from .concurrency import get_session


WORKING_HOURS = (
    (time(8), time(9)),
    (time(9), time(10)),
    (time(10), time(11)),
    (time(11), time(12)),
    # 12:00-13:00 lunch
    (time(13), time(14)),
    (time(14), time(15)),
    (time(15), time(16)),
    (time(16), time(17)),
)
DEFAULT_MAX_APPOINTMENTS = 2
WEEKEND_DAYS = {5, 6}  # date.weekday(): Saturday, Sunday

REASON_NOT_FOUND = "slot does not exist"
REASON_MARKED_UNAVAILABLE = "marked unavailable"
REASON_FULL = "full"


@dataclass(frozen=True)
class SlotAvailability:
    available: bool
    reason: Optional[str] = None
    slot: Optional[CalendarSlot] = None
    available_spots: int = 0

    def to_dict(self) -> dict:
        body = {"available": self.available}
        if self.available:
            body["availableSpots"] = self.available_spots
            body["slot"] = self.slot.to_dict() if self.slot else None
        else:
            body["reason"] = self.reason
        return body


def is_working_day(day: date) -> bool:
    return day.weekday() not in WEEKEND_DAYS


def _window(day: date, at: time):
    return (
        CalendarSlot.slot_date == day,
        CalendarSlot.start_time <= at,
        CalendarSlot.end_time > at,
    )


def ensure_day_materialized(day: date, *, session=None, commit: bool = True) -> int:
    """
    Create the slot rows for `day` if it has none yet.

    Returns the number of rows created (0 when the day already exists or is
    a weekend). With commit=False the rows are only flushed, so a caller
    already inside a transaction keeps them in its own unit of work.

    Safe to call repeatedly (idempotent). Two requests racing to materialize
    the same day collide on uq_calendar_slots_window; the loser rolls back
    and treats the day as materialized.
    """
    session = get_session(session)

    existing = (
        session.query(func.count(CalendarSlot.id))
        .filter(CalendarSlot.slot_date == day)
        .scalar()
    )
    if existing:
        return 0
    if not is_working_day(day):
        return 0

    for start, end in WORKING_HOURS:
        session.add(
            CalendarSlot(
                slot_date=day,
                start_time=start,
                end_time=end,
                max_appointments=DEFAULT_MAX_APPOINTMENTS,
                current_appointments=0,
                is_available=True,
                notes="Auto-generated slot",
            )
        )

    if not commit:
        session.flush()
        return len(WORKING_HOURS)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return 0
    return len(WORKING_HOURS)


def get_available_slots(day: Optional[date], *, session=None) -> list[CalendarSlot]:
    """
    Bookable slots of a day, ordered by start time.

    Raises:
        ValidationError: day missing
        PastDateError: day before today
    """
    if day is None:
        raise ValidationError("Date is required")
    if day < time_utils.local_today():
        raise PastDateError("You can not schedule an appointment in the past")

    session = get_session(session)
    if not is_working_day(day):
        return []

    ensure_day_materialized(day, session=session)

    return (
        session.query(CalendarSlot)
        .filter(
            CalendarSlot.slot_date == day,
            CalendarSlot.is_available.is_(True),
            CalendarSlot.current_appointments < CalendarSlot.max_appointments,
        )
        .order_by(CalendarSlot.start_time)
        .all()
    )


def find_slot(day: date, at: time, *, session=None) -> Optional[CalendarSlot]:
    session = get_session(session)
    return session.query(CalendarSlot).filter(*_window(day, at)).first()


def check_slot_availability(day: date, at: time, *, session=None) -> SlotAvailability:
    session = get_session(session)
    ensure_day_materialized(day, session=session)

    slot = find_slot(day, at, session=session)
    if slot is None:
        return SlotAvailability(available=False, reason=REASON_NOT_FOUND)
    if not slot.is_available:
        return SlotAvailability(available=False, reason=REASON_MARKED_UNAVAILABLE, slot=slot)
    if slot.is_full:
        return SlotAvailability(available=False, reason=REASON_FULL, slot=slot)
    return SlotAvailability(available=True, slot=slot, available_spots=slot.available_spots)


def adjust_slot_count(day: date, at: time, delta: int, *, session=None) -> CalendarSlot:
    """
    Atomically apply current_appointments += delta to the slot containing `at`.

    Runs inside the caller's transaction and never commits. The guard in the
    WHERE clause keeps the counter within [0, max_appointments]:

    - delta > 0 (booking): zero rows updated on an existing slot means the
      slot is full or marked unavailable -> SlotUnavailableError. This is
      the check that actually decides a race for the last spot.
    - delta < 0 (release): a counter already at 0 stays at 0.

    Raises:
        SlotNotFoundError: no slot contains `at` on `day`
        SlotUnavailableError: booking into a full or unavailable slot
    """
    if not delta:
        raise ValidationError("delta must be non-zero")

    session = get_session(session)
    ensure_day_materialized(day, session=session, commit=False)

    stmt = update(CalendarSlot).where(*_window(day, at))
    if delta > 0:
        stmt = stmt.where(
            CalendarSlot.is_available.is_(True),
            CalendarSlot.current_appointments + delta <= CalendarSlot.max_appointments,
        )
    else:
        stmt = stmt.where(CalendarSlot.current_appointments + delta >= 0)
    stmt = stmt.values(
        current_appointments=CalendarSlot.current_appointments + delta
    ).execution_options(synchronize_session=False)

    result = session.execute(stmt)

    slot = (
        session.query(CalendarSlot)
        .filter(*_window(day, at))
        .populate_existing()
        .first()
    )
    if slot is None:
        raise SlotNotFoundError(f"No calendar slot on {day} at {at}")
    if not result.rowcount and delta > 0:
        raise SlotUnavailableError("Time slot is not available")
    return slot
