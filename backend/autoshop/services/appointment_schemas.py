# Overview: Typed inputs and results exchanged between routes and the appointment services.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    """Closed set of rejection categories an admin can pick from."""

    PARTS = "parts"
    SCHEDULE = "schedule"
    EXPERTISE = "expertise"
    OTHER = "other"

    @property
    def display_text(self) -> Optional[str]:
        # OTHER has no canned text; the admin's own wording is stored
        return REJECTION_REASON_TEXT.get(self)


REJECTION_REASON_TEXT = {
    RejectionReason.PARTS: "Unavailable mechanic parts",
    RejectionReason.SCHEDULE: "Full schedule",
    RejectionReason.EXPERTISE: "Beyond our area of expertise",
}


@dataclass(frozen=True)
class PartRequest:
    """
    One part selected for an appointment.

    unit_price_cents=None means "snapshot the part's current price".
    """
    part_id: int
    quantity: int
    unit_price_cents: Optional[int] = None


@dataclass(frozen=True)
class PartShortage:
    part_id: int
    reason: str
    name: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "partId": self.part_id,
            "name": self.name,
            "requested": self.requested,
            "available": self.available,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AvailabilityReport:
    available: bool
    unavailable_parts: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "unavailableParts": [p.to_dict() for p in self.unavailable_parts],
        }


@dataclass(frozen=True)
class StockUpdate:
    """Before/after stock of one part deducted inside an approval."""
    part_id: int
    name: str
    part_number: str
    quantity_used: int
    stock_before: int
    stock_after: int
    minimum_stock_level: int

    def to_dict(self) -> dict:
        return {
            "partId": self.part_id,
            "name": self.name,
            "partNumber": self.part_number,
            "quantityUsed": self.quantity_used,
            "stockBefore": self.stock_before,
            "stockAfter": self.stock_after,
            "minimumStockLevel": self.minimum_stock_level,
        }


@dataclass(frozen=True)
class StatusDecision:
    """
    An admin's decision on an appointment, already parsed from the request.

    Money is in cents. warranty_months and warranty_info are alternatives:
    an explicit warranty_info text wins, otherwise the text is derived from
    warranty_months.
    """
    status: str
    admin_response: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_details: Optional[str] = None
    retry_days: Optional[int] = None
    estimated_price_cents: Optional[int] = None
    warranty_months: Optional[int] = None
    warranty_info: Optional[str] = None
    estimated_completion_time: Optional[str] = None


@dataclass
class ApprovalResult:
    appointment: object
    stock_updates: list = field(default_factory=list)
    allocation: list = field(default_factory=list)
    low_stock_warnings: list = field(default_factory=list)

    @property
    def parts_total_cents(self) -> int:
        return sum(row.subtotal_cents for row in self.allocation)
