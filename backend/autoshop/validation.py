from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ValidationError
from .money import decimal_to_cents
from .services.appointment_schemas import PartRequest, StatusDecision


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

MIN_DESCRIPTION_LENGTH = 10

DECISION_STATUSES = ("pending", "approved", "rejected")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def parse_date(value: Any, *, field: str = "date") -> date:
    """Strict YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise ValidationError(f"Invalid {field} format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def parse_time(value: Any, *, field: str = "time") -> time:
    """
    HH:MM or HH:MM:SS, normalized to second granularity.

    Slot lookups and appointment datetimes always use the normalized value,
    so "10:00" and "10:00:00" address the same slot.
    """
    if isinstance(value, time):
        return value.replace(microsecond=0)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    if not isinstance(value, str) or not _TIME_RE.match(value.strip()):
        raise ValidationError(f"Invalid {field} format. Use HH:MM or HH:MM:SS")
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def validate_description(value: Any) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError("Description is required")
    cleaned = value.strip()
    if len(cleaned) < MIN_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description should be at least {MIN_DESCRIPTION_LENGTH} characters long"
        )
    return cleaned


def parse_int(value: Any, *, field: str, minimum: Optional[int] = None, required: bool = False) -> Optional[int]:
    """
    Strict integer coercion: rejects floats, bools, decimals and
    scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        result = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_money_cents(value: Any, *, field: str, required: bool = False) -> Optional[int]:
    """Decimal amount ("150", 150, "19.99") -> integer cents."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    cents = decimal_to_cents(amount)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def _optional_text(value: Any, *, field: str, max_length: Optional[int] = None) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    cleaned = value.strip()
    if not cleaned:
        return None
    if max_length and len(cleaned) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return cleaned


def _pick(payload: dict, *keys: str) -> Any:
    # Accept both the camelCase API names and snake_case aliases
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def parse_selected_parts(raw: Any) -> list[PartRequest]:
    """
    Parse [{partId, quantity, unitPrice?}, ...].

    A part may appear only once per selection; allocation rows are unique
    per (appointment, part).
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("selectedParts must be a list")

    parts: list[PartRequest] = []
    seen: set[int] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"selectedParts[{index}] must be an object")
        part_id = parse_int(_pick(item, "partId", "part_id"), field=f"selectedParts[{index}].partId",
                            minimum=1, required=True)
        quantity = parse_int(item.get("quantity"), field=f"selectedParts[{index}].quantity",
                             minimum=1, required=True)
        unit_price_cents = parse_money_cents(_pick(item, "unitPrice", "unit_price"),
                                             field=f"selectedParts[{index}].unitPrice")
        if part_id in seen:
            raise ValidationError(f"Part {part_id} is selected more than once")
        seen.add(part_id)
        parts.append(PartRequest(part_id=part_id, quantity=quantity, unit_price_cents=unit_price_cents))
    return parts


def parse_status_decision(payload: Any) -> StatusDecision:
    """
    Parse the admin status-update body into a StatusDecision.

    Only shape and type are checked here; the per-status business rules
    (price required for approval, reason required for rejection) live in
    appointment_service so every caller gets them.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    status = payload.get("status")
    if status not in DECISION_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(DECISION_STATUSES)}")

    warranty_raw = payload.get("warranty")
    warranty_months = None
    warranty_info = _optional_text(_pick(payload, "warrantyInfo", "warranty_info"), field="warrantyInfo",
                                   max_length=255)
    if isinstance(warranty_raw, str) and warranty_raw.strip() and not warranty_raw.strip().isdigit():
        # Free-text warranty ("12 months or 20,000 km")
        warranty_info = warranty_info or _optional_text(warranty_raw, field="warranty", max_length=255)
    else:
        warranty_months = parse_int(warranty_raw, field="warranty", minimum=0)

    return StatusDecision(
        status=status,
        admin_response=_optional_text(_pick(payload, "adminResponse", "adminMessage", "admin_response"),
                                      field="adminResponse"),
        rejection_reason=_optional_text(_pick(payload, "rejectionReason", "rejection_reason"),
                                        field="rejectionReason"),
        rejection_details=_optional_text(_pick(payload, "rejectionDetails", "rejection_details"),
                                         field="rejectionDetails"),
        retry_days=parse_int(_pick(payload, "retryDays", "retry_days"), field="retryDays", minimum=1),
        estimated_price_cents=parse_money_cents(_pick(payload, "estimatedPrice", "estimated_price"),
                                                field="estimatedPrice"),
        warranty_months=warranty_months,
        warranty_info=warranty_info,
        estimated_completion_time=_optional_text(
            _pick(payload, "estimatedCompletionTime", "estimated_completion_time"),
            field="estimatedCompletionTime",
            max_length=100,
        ),
    )
