from __future__ import annotations

from ..extensions import db
from autoshop.time_utils import format_date, format_time


class CalendarSlot(db.Model):
    """
    One bookable window of a working day.

    CAPACITY INVARIANT: 0 <= current_appointments <= max_appointments.
    The CHECK constraints below are the last line of defence; the booking
    code never writes the counter with read-modify-write, it issues a single
    guarded UPDATE (see services/calendar_service.py).

    Rows for a day are created lazily the first time the day is queried and
    are never deleted. Slot times are stored at second granularity; request
    times like "10:00" are normalized to 10:00:00 before any lookup.
    """
    __tablename__ = "calendar_slots"
    __table_args__ = (
        db.UniqueConstraint("slot_date", "start_time", "end_time", name="uq_calendar_slots_window"),
        db.CheckConstraint("current_appointments >= 0", name="ck_calendar_slots_current_nonneg"),
        db.CheckConstraint(
            "current_appointments <= max_appointments",
            name="ck_calendar_slots_capacity",
        ),
        db.CheckConstraint("start_time < end_time", name="ck_calendar_slots_window_order"),
        db.Index("ix_calendar_slots_date_start", "slot_date", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    slot_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    max_appointments = db.Column(db.Integer, nullable=False, default=2)
    current_appointments = db.Column(db.Integer, nullable=False, default=0)
    is_available = db.Column(db.Boolean, nullable=False, default=True)

    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def available_spots(self) -> int:
        return max(self.max_appointments - self.current_appointments, 0)

    @property
    def is_full(self) -> bool:
        return self.current_appointments >= self.max_appointments

    def __repr__(self) -> str:
        return (
            f"<CalendarSlot {self.slot_date} {self.start_time}-{self.end_time} "
            f"{self.current_appointments}/{self.max_appointments}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": format_date(self.slot_date),
            "start_time": format_time(self.start_time, seconds=True),
            "end_time": format_time(self.end_time, seconds=True),
            "max_appointments": self.max_appointments,
            "current_appointments": self.current_appointments,
            "available_spots": self.available_spots,
            "is_available": self.is_available,
        }
