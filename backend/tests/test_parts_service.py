"""
Part inventory tests.

Verifies:
- Per-part availability breakdown (missing part, insufficient stock)
- Conditional stock deduction never drives stock below zero
- deduct_multiple reports every violation and deducts nothing on failure
"""

import pytest

from autoshop.errors import InsufficientStockError, NotFoundError, ValidationError
from autoshop.models import Part
from autoshop.services import parts_service
from autoshop.services.appointment_schemas import PartRequest


def _stock(session, part_id):
    return session.query(Part.stock_quantity).filter_by(id=part_id).scalar()


class TestCheckAvailability:
    def test_all_parts_available(self, db_session, brake_pads, oil_filter):
        report = parts_service.check_availability([
            PartRequest(part_id=brake_pads.id, quantity=10),
            PartRequest(part_id=oil_filter.id, quantity=1),
        ])

        assert report.available is True
        assert report.unavailable_parts == []

    def test_missing_and_short_parts_are_listed(self, db_session, brake_pads):
        report = parts_service.check_availability([
            PartRequest(part_id=brake_pads.id, quantity=11),
            PartRequest(part_id=9999, quantity=1),
        ])

        assert report.available is False
        by_id = {p.part_id: p for p in report.unavailable_parts}
        assert by_id[brake_pads.id].reason == "Insufficient stock: requested 11, available 10"
        assert by_id[brake_pads.id].available == 10
        assert by_id[9999].reason == "Part not found"

    def test_repeated_part_is_checked_against_its_total(self, db_session, brake_pads):
        report = parts_service.check_availability([
            PartRequest(part_id=brake_pads.id, quantity=6),
            PartRequest(part_id=brake_pads.id, quantity=6),
        ])

        assert report.available is False
        assert report.unavailable_parts[0].requested == 12

    def test_empty_request_is_available(self, db_session):
        assert parts_service.check_availability([]).available is True


class TestDeductStock:
    def test_deducts_and_reports_before_after(self, db_session, brake_pads):
        update = parts_service.deduct_stock(brake_pads.id, 2)
        db_session.commit()

        assert update.stock_before == 10
        assert update.stock_after == 8
        assert update.quantity_used == 2
        assert _stock(db_session, brake_pads.id) == 8

    def test_can_take_the_last_unit(self, db_session, brake_pads):
        update = parts_service.deduct_stock(brake_pads.id, 10)
        db_session.commit()

        assert update.stock_after == 0

    def test_insufficient_stock_leaves_stock_untouched(self, db_session, brake_pads):
        with pytest.raises(InsufficientStockError) as exc:
            parts_service.deduct_stock(brake_pads.id, 11)
        db_session.rollback()

        assert exc.value.unavailable_parts[0].available == 10
        assert _stock(db_session, brake_pads.id) == 10

    def test_unknown_part(self, db_session):
        with pytest.raises(InsufficientStockError) as exc:
            parts_service.deduct_stock(4242, 1)
        assert exc.value.unavailable_parts[0].reason == "Part not found"

    def test_quantity_must_be_positive(self, db_session, brake_pads):
        with pytest.raises(ValidationError):
            parts_service.deduct_stock(brake_pads.id, 0)


class TestDeductMultiple:
    def test_deducts_every_part(self, db_session, brake_pads, oil_filter):
        updates = parts_service.deduct_multiple([
            PartRequest(part_id=brake_pads.id, quantity=2),
            PartRequest(part_id=oil_filter.id, quantity=1),
        ])
        db_session.commit()

        assert [u.stock_after for u in updates] == [8, 5]

    def test_reports_all_violations_and_deducts_nothing(self, db_session, brake_pads, oil_filter):
        with pytest.raises(InsufficientStockError) as exc:
            parts_service.deduct_multiple([
                PartRequest(part_id=brake_pads.id, quantity=11),
                PartRequest(part_id=oil_filter.id, quantity=7),
            ])
        db_session.rollback()

        assert len(exc.value.unavailable_parts) == 2
        assert exc.value.to_dict()["unavailableParts"][0]["partId"] == brake_pads.id
        assert _stock(db_session, brake_pads.id) == 10
        assert _stock(db_session, oil_filter.id) == 6


class TestLowStockWarnings:
    def test_flags_remaining_stock_at_threshold(self, db_session, brake_pads, oil_filter):
        updates = parts_service.deduct_multiple([
            PartRequest(part_id=brake_pads.id, quantity=2),
            PartRequest(part_id=oil_filter.id, quantity=1),
        ])

        warnings = parts_service.low_stock_warnings(updates, threshold=5)

        assert [w["partId"] for w in warnings] == [oil_filter.id]
        assert warnings[0]["remainingStock"] == 5


class TestCatalogue:
    def test_search_category_and_availability_filters(self, db_session, brake_pads, oil_filter):
        oil_filter.stock_quantity = 0
        db_session.commit()

        assert [p.id for p in parts_service.list_parts(search="brake")] == [brake_pads.id]
        assert [p.id for p in parts_service.list_parts(category="Engine")] == [oil_filter.id]
        assert [p.id for p in parts_service.list_parts(available_only=True)] == [brake_pads.id]

    def test_categories_and_low_stock(self, db_session, brake_pads, oil_filter):
        brake_pads.stock_quantity = 3
        db_session.commit()

        assert parts_service.list_categories() == ["Brakes", "Engine"]
        assert [p.id for p in parts_service.get_low_stock_parts()] == [brake_pads.id]

    def test_get_part_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            parts_service.get_part(31337)
