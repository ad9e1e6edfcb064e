# Overview: Domain error taxonomy shared by services and routes.

"""
Error taxonomy for the workshop backend.

Every error a service raises on purpose derives from ServiceError and knows
its HTTP status and its JSON body. Anything else escaping a service is an
internal failure (500) and is logged by the route that caught it.

    ValidationError          400  malformed or missing input
    BusinessRuleError        400  TooLateToCancel, PastDateTime, PastDate
    InsufficientStockError   400  structured per-part shortfall
    NotFoundError            404  appointment / part / slot / user / vehicle
    ConflictError            409  AlreadyProcessed, AlreadyCancelled,
                                  AlreadyCompleted, DuplicateBooking,
                                  SlotUnavailable
"""

from __future__ import annotations

from typing import Any, Iterable


class ServiceError(ValueError):
    """Base class for errors that map onto a client-facing response."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "message": self.message,
            "error": self.error_code,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """400-level input problem."""

    status_code = 400
    error_code = "validation_error"


class BusinessRuleError(ServiceError):
    status_code = 400
    error_code = "business_rule_violation"


class PastDateError(BusinessRuleError):
    error_code = "past_date"


class PastDateTimeError(BusinessRuleError):
    error_code = "past_datetime"


class TooLateToCancelError(BusinessRuleError):
    error_code = "too_late_to_cancel"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "not_found"


class SlotNotFoundError(NotFoundError):
    error_code = "slot_not_found"


class ConflictError(ServiceError):
    """409-level business rule conflict (e.g., appointment already decided)."""

    status_code = 409
    error_code = "conflict"


class AlreadyProcessedError(ConflictError):
    error_code = "already_processed"


class AlreadyCancelledError(ConflictError):
    error_code = "already_cancelled"


class AlreadyCompletedError(ConflictError):
    error_code = "already_completed"


class DuplicateBookingError(ConflictError):
    error_code = "duplicate_booking"


class SlotUnavailableError(ConflictError):
    error_code = "slot_unavailable"


class InsufficientStockError(ServiceError):
    """
    Raised when one or more parts cannot cover the requested quantity.

    unavailable_parts holds one PartShortage per failing part, so callers can
    tell the client exactly which part is short and by how much. The same
    error is raised by the pre-check and by a deduction that lost a race
    inside the transaction.
    """

    status_code = 400
    error_code = "insufficient_stock"

    def __init__(self, message: str, unavailable_parts: Iterable[Any] = ()):
        self.unavailable_parts = list(unavailable_parts)
        super().__init__(message, details=[p.to_dict() for p in self.unavailable_parts])

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["unavailableParts"] = body.get("details", [])
        return body
