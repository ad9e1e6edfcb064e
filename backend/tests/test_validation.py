"""
Request parsing tests.

Verifies:
- Strict date / time formats, with times normalized to seconds
- Strict integer and money coercion (cents, no floats drifting)
- Selected parts shape and the one-row-per-part rule
- Status decision parsing, including free-text warranties
"""

from datetime import date, time

import pytest

from autoshop.errors import ValidationError
from autoshop.validation import (
    parse_date,
    parse_int,
    parse_money_cents,
    parse_selected_parts,
    parse_status_decision,
    parse_time,
    validate_description,
)


class TestDateTime:
    def test_parse_date(self):
        assert parse_date("2030-01-07") == date(2030, 1, 7)

    @pytest.mark.parametrize("raw", [None, "", "07/01/2030", "2030-1-7", "2030-02-30", 20300107])
    def test_parse_date_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_date(raw)

    def test_parse_time_normalizes_to_seconds(self):
        assert parse_time("10:00") == parse_time("10:00:00") == time(10)
        assert parse_time(time(9, 30, 15, 500)) == time(9, 30, 15)

    @pytest.mark.parametrize("raw", [None, "10h", "25:00", "9:00", "10:00:00.5"])
    def test_parse_time_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_time(raw)

    def test_description_is_trimmed_and_has_a_minimum(self):
        assert validate_description("  Brakes squeal badly  ") == "Brakes squeal badly"
        with pytest.raises(ValidationError):
            validate_description("too short")


class TestNumbers:
    def test_parse_int(self):
        assert parse_int("12", field="x") == 12
        assert parse_int(3.0, field="x") == 3
        assert parse_int(None, field="x") is None

    @pytest.mark.parametrize("raw", [True, 1.5, "1.0", "1e3", "abc", [1]])
    def test_parse_int_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_int(raw, field="x")

    def test_parse_int_minimum_and_required(self):
        with pytest.raises(ValidationError):
            parse_int(0, field="quantity", minimum=1)
        with pytest.raises(ValidationError):
            parse_int("", field="quantity", required=True)

    @pytest.mark.parametrize(
        "raw,cents",
        [(150, 15000), ("19.99", 1999), ("0.1", 10), (0.105, 11), ("2", 200)],
    )
    def test_parse_money_cents(self, raw, cents):
        assert parse_money_cents(raw, field="price") == cents

    @pytest.mark.parametrize("raw", ["-1", "ten", "NaN", "Infinity", False, "10000000"])
    def test_parse_money_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_money_cents(raw, field="price")


class TestSelectedParts:
    def test_parses_camel_and_snake_case(self):
        parts = parse_selected_parts([
            {"partId": 1, "quantity": 2, "unitPrice": "20"},
            {"part_id": "2", "quantity": "1"},
        ])

        assert [(p.part_id, p.quantity, p.unit_price_cents) for p in parts] == [(1, 2, 2000), (2, 1, None)]

    def test_missing_selection_is_empty(self):
        assert parse_selected_parts(None) == []

    @pytest.mark.parametrize(
        "raw",
        [
            {"partId": 1},
            ["not an object"],
            [{"quantity": 1}],
            [{"partId": 1, "quantity": 0}],
            [{"partId": 1, "quantity": 1}, {"partId": 1, "quantity": 2}],
        ],
    )
    def test_rejects_bad_selections(self, raw):
        with pytest.raises(ValidationError):
            parse_selected_parts(raw)


class TestStatusDecision:
    def test_approval(self):
        decision = parse_status_decision({
            "status": "approved",
            "estimatedPrice": "150",
            "warranty": "6",
            "adminResponse": "  See you Monday ",
        })

        assert decision.status == "approved"
        assert decision.estimated_price_cents == 15000
        assert decision.warranty_months == 6
        assert decision.admin_response == "See you Monday"

    def test_free_text_warranty(self):
        decision = parse_status_decision({"status": "approved", "warranty": "12 months or 20,000 km"})

        assert decision.warranty_months is None
        assert decision.warranty_info == "12 months or 20,000 km"

    def test_rejection(self):
        decision = parse_status_decision({
            "status": "rejected",
            "rejectionReason": "other",
            "rejectionDetails": "Waiting on the insurer",
            "retryDays": 10,
        })

        assert decision.rejection_reason == "other"
        assert decision.rejection_details == "Waiting on the insurer"
        assert decision.retry_days == 10

    @pytest.mark.parametrize(
        "payload",
        [None, [], {}, {"status": "cancelled"}, {"status": "completed"}, {"status": "approved", "retryDays": 0}],
    )
    def test_rejects_bad_payloads(self, payload):
        with pytest.raises(ValidationError):
            parse_status_decision(payload)
