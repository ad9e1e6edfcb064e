"""
Calendar slot tests.

Verifies:
- Lazy materialization of the eight working-hour slots (and none on weekends)
- Half-open slot windows and the availability reasons
- The guarded capacity counter never leaves [0, max]
"""

from datetime import date, time, timedelta

import pytest

from autoshop.errors import PastDateError, SlotNotFoundError, SlotUnavailableError, ValidationError
from autoshop.models import CalendarSlot
from autoshop.services import calendar_service


class TestMaterialization:
    def test_weekday_gets_eight_slots_without_lunch(self, db_session, booking_day):
        created = calendar_service.ensure_day_materialized(booking_day)

        assert created == 8
        slots = (
            db_session.query(CalendarSlot)
            .filter_by(slot_date=booking_day)
            .order_by(CalendarSlot.start_time)
            .all()
        )
        starts = [s.start_time for s in slots]
        assert starts[0] == time(8)
        assert starts[-1] == time(16)
        assert time(12) not in starts
        assert all(s.max_appointments == 2 and s.current_appointments == 0 for s in slots)

    def test_materialization_is_idempotent(self, db_session, booking_day):
        calendar_service.ensure_day_materialized(booking_day)

        assert calendar_service.ensure_day_materialized(booking_day) == 0
        assert db_session.query(CalendarSlot).filter_by(slot_date=booking_day).count() == 8

    def test_weekend_is_a_no_op(self, db_session, weekend_day):
        assert calendar_service.ensure_day_materialized(weekend_day) == 0
        assert calendar_service.get_available_slots(weekend_day) == []
        assert db_session.query(CalendarSlot).filter_by(slot_date=weekend_day).count() == 0


class TestAvailableSlots:
    def test_lists_bookable_slots_in_order(self, db_session, booking_day):
        slots = calendar_service.get_available_slots(booking_day)

        assert len(slots) == 8
        assert [s.start_time for s in slots] == sorted(s.start_time for s in slots)
        assert all(s.available_spots == 2 for s in slots)

    def test_full_and_closed_slots_are_hidden(self, db_session, booking_day):
        calendar_service.ensure_day_materialized(booking_day)
        full = calendar_service.find_slot(booking_day, time(9))
        full.current_appointments = 2
        closed = calendar_service.find_slot(booking_day, time(10))
        closed.is_available = False
        db_session.commit()

        starts = [s.start_time for s in calendar_service.get_available_slots(booking_day)]

        assert time(9) not in starts
        assert time(10) not in starts
        assert len(starts) == 6

    def test_missing_date_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            calendar_service.get_available_slots(None)

    def test_past_date_is_rejected(self, db_session):
        with pytest.raises(PastDateError) as exc:
            calendar_service.get_available_slots(date.today() - timedelta(days=1))
        assert "past" in exc.value.message


class TestSlotAvailability:
    def test_time_inside_window_finds_slot(self, db_session, booking_day):
        result = calendar_service.check_slot_availability(booking_day, time(10, 30))

        assert result.available is True
        assert result.slot.start_time == time(10)
        assert result.available_spots == 2

    def test_end_time_belongs_to_next_slot(self, db_session, booking_day):
        result = calendar_service.check_slot_availability(booking_day, time(11))

        assert result.slot.start_time == time(11)

    def test_lunch_hour_has_no_slot(self, db_session, booking_day):
        result = calendar_service.check_slot_availability(booking_day, time(12, 30))

        assert result.available is False
        assert result.reason == calendar_service.REASON_NOT_FOUND

    def test_reports_marked_unavailable_and_full(self, db_session, booking_day):
        calendar_service.ensure_day_materialized(booking_day)
        calendar_service.find_slot(booking_day, time(8)).is_available = False
        calendar_service.find_slot(booking_day, time(9)).current_appointments = 2
        db_session.commit()

        closed = calendar_service.check_slot_availability(booking_day, time(8))
        full = calendar_service.check_slot_availability(booking_day, time(9))

        assert closed.reason == calendar_service.REASON_MARKED_UNAVAILABLE
        assert full.reason == calendar_service.REASON_FULL
        assert full.to_dict() == {"available": False, "reason": "full"}


class TestAdjustSlotCount:
    def test_increment_and_release(self, db_session, booking_day):
        slot = calendar_service.adjust_slot_count(booking_day, time(14), +1)
        db_session.commit()
        assert slot.current_appointments == 1

        slot = calendar_service.adjust_slot_count(booking_day, time(14), -1)
        db_session.commit()
        assert slot.current_appointments == 0

    def test_increment_past_capacity_fails(self, db_session, booking_day):
        calendar_service.adjust_slot_count(booking_day, time(14), +1)
        calendar_service.adjust_slot_count(booking_day, time(14), +1)
        db_session.commit()

        with pytest.raises(SlotUnavailableError):
            calendar_service.adjust_slot_count(booking_day, time(14), +1)
        db_session.rollback()

        assert calendar_service.find_slot(booking_day, time(14)).current_appointments == 2

    def test_increment_into_closed_slot_fails(self, db_session, booking_day):
        calendar_service.ensure_day_materialized(booking_day)
        calendar_service.find_slot(booking_day, time(15)).is_available = False
        db_session.commit()

        with pytest.raises(SlotUnavailableError):
            calendar_service.adjust_slot_count(booking_day, time(15), +1)

    def test_release_never_goes_below_zero(self, db_session, booking_day):
        slot = calendar_service.adjust_slot_count(booking_day, time(16), -1)
        db_session.commit()

        assert slot.current_appointments == 0

    def test_missing_slot_raises_not_found(self, db_session, weekend_day):
        with pytest.raises(SlotNotFoundError):
            calendar_service.adjust_slot_count(weekend_day, time(10), +1)
