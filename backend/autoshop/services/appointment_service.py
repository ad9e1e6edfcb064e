# Overview: Service-layer operations for appointments; booking, cancellation and the admin approval workflow.

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from flask import current_app
from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AlreadyCancelledError,
    AlreadyCompletedError,
    AlreadyProcessedError,
    DuplicateBookingError,
    InsufficientStockError,
    NotFoundError,
    PastDateTimeError,
    SlotUnavailableError,
    TooLateToCancelError,
    ValidationError,
)
from ..models import (
    APPOINTMENT_STATUSES,
    Appointment,
    STATUS_APPROVED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_REJECTED,
    User,
    Vehicle,
)
from ..money import format_cents
from ..validation import DECISION_STATUSES, parse_date, parse_time, validate_description
from .. import time_utils
from . import (
    allocation_service,
    auth_service,
    calendar_service,
    history_service,
    parts_service,
    vehicle_service,
)
from .appointment_schemas import ApprovalResult, PartRequest, RejectionReason, StatusDecision
from .concurrency import get_session, lock_for_update, run_with_retry, transaction
"""
Appointment Lifecycle Invariants (authoritative)

    pending -> approved | rejected    admin decision
    pending -> cancelled              client, before the cancellation cutoff
    completed                         terminal, set outside this backend

- approved and rejected are final for the admin flow; a second decision
  raises AlreadyProcessedError and touches nothing.
- A pending appointment holds exactly one unit of its slot's capacity.
  Rejection and cancellation release it, approval keeps it.
- Every transition is ONE transaction: stock deduction, appointment row,
  allocation rows, slot counter and history row commit together or not at
  all.
- The status change itself is a compare-and-set UPDATE
  (WHERE id = :id AND status = :expected), so of two concurrent decisions on
  the same appointment only one can win; the loser rolls back its stock
  deduction with the rest of its transaction.
- Validation happens before the transaction opens wherever possible, so
  callers get a precise error without any rollback.
"""

# Statuses that still block another booking of the same user at the same time
BLOCKING_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_COMPLETED)

DUPLICATE_BOOKING_MESSAGE = "You already have an appointment at this date and time"

ADMIN_DATE_FILTERS = ("today", "tomorrow", "week", "month")

STATISTICS_WINDOW_DAYS = 30


def _config(key: str, default):
    return current_app.config.get(key, default)


def _status_conflict(status: str):
    if status == STATUS_CANCELLED:
        return AlreadyCancelledError("Appointment is already cancelled")
    if status == STATUS_COMPLETED:
        return AlreadyCompletedError("Appointment is already completed")
    return AlreadyProcessedError(f"Cannot modify appointment: already {status}")


def _compare_and_set_status(appointment_id: int, expected: str, values: dict, *, session) -> Appointment:
    """
    Apply `values` only if the appointment still has status `expected`.

    Zero rows updated means a concurrent transaction moved it first.
    """
    stmt = (
        update(Appointment)
        .where(Appointment.id == appointment_id, Appointment.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if not result.rowcount:
        current = session.query(Appointment.status).filter(Appointment.id == appointment_id).scalar()
        if current is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        raise _status_conflict(current)

    return (
        session.query(Appointment)
        .filter(Appointment.id == appointment_id)
        .populate_existing()
        .one()
    )


def _lock_appointment(appointment_id: int, *, session) -> Appointment:
    appointment = (
        lock_for_update(session.query(Appointment).filter(Appointment.id == appointment_id))
        .populate_existing()
        .first()
    )
    if appointment is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    return appointment


# =============================================================================
# Client operations
# =============================================================================

def create_appointment(
    *,
    user_id: int,
    date,
    time,
    description,
    vehicle_id: Optional[int] = None,
    session=None,
) -> Appointment:
    """
    Book a pending appointment and take one unit of its slot's capacity.

    Raises:
        ValidationError: bad date/time/description, or too far ahead
        NotFoundError: unknown user, or vehicle missing / not owned
        PastDateTimeError: appointment time not in the future
        DuplicateBookingError: user already booked at that exact time
        SlotUnavailableError: no slot, slot closed or slot full
    """
    day = parse_date(date)
    at = parse_time(time)
    description = validate_description(description)

    session = get_session(session)
    auth_service.get_user(user_id, session=session)
    if vehicle_id is not None:
        vehicle_service.get_vehicle_for_user(vehicle_id, user_id, session=session)

    appointment_at = datetime.combine(day, at)
    now = time_utils.local_now()
    if appointment_at <= now:
        raise PastDateTimeError("You can not schedule an appointment in the past")
    max_days = _config("MAX_BOOKING_DAYS_AHEAD", 365)
    if appointment_at > now + timedelta(days=max_days):
        raise ValidationError(f"Appointments can be booked at most {max_days} days ahead")

    duplicate = (
        session.query(Appointment.id)
        .filter(
            Appointment.user_id == user_id,
            Appointment.appointment_at == appointment_at,
            Appointment.status.in_(BLOCKING_STATUSES),
        )
        .first()
    )
    if duplicate:
        raise DuplicateBookingError(DUPLICATE_BOOKING_MESSAGE)

    availability = calendar_service.check_slot_availability(day, at, session=session)
    if not availability.available:
        raise SlotUnavailableError(f"Time slot is not available ({availability.reason})")

    def _op() -> Appointment:
        with transaction(session):
            appointment = Appointment(
                user_id=user_id,
                vehicle_id=vehicle_id,
                appointment_at=appointment_at,
                status=STATUS_PENDING,
                problem_description=description,
            )
            session.add(appointment)
            try:
                session.flush()
            except IntegrityError:
                # uq_appointments_user_at_active: a concurrent booking got there first
                raise DuplicateBookingError(DUPLICATE_BOOKING_MESSAGE) from None

            calendar_service.adjust_slot_count(day, at, +1, session=session)

            history_service.append_history(
                appointment_id=appointment.id,
                user_id=user_id,
                action="created",
                new_status=STATUS_PENDING,
                comment="Appointment created by client",
                session=session,
            )
        return appointment

    return run_with_retry(_op, session=session)


def cancel_appointment(*, user_id: int, appointment_id: int, session=None) -> Appointment:
    """
    Cancel the user's own pending appointment and release its slot unit.

    Raises:
        NotFoundError: no such appointment for this user
        AlreadyCancelledError / AlreadyCompletedError / AlreadyProcessedError
        TooLateToCancelError: inside the cancellation cutoff
    """
    session = get_session(session)
    appointment = get_appointment_for_user(appointment_id, user_id, session=session)

    if appointment.status != STATUS_PENDING:
        raise _status_conflict(appointment.status)

    cutoff_minutes = _config("CANCELLATION_CUTOFF_MINUTES", 60)
    if appointment.appointment_at - time_utils.local_now() < timedelta(minutes=cutoff_minutes):
        raise TooLateToCancelError(
            f"Appointments can only be cancelled at least {cutoff_minutes} minutes in advance"
        )

    day = appointment.appointment_date
    at = appointment.appointment_time

    def _op() -> Appointment:
        with transaction(session):
            _lock_appointment(appointment_id, session=session)
            cancelled = _compare_and_set_status(
                appointment_id,
                STATUS_PENDING,
                {"status": STATUS_CANCELLED},
                session=session,
            )
            calendar_service.adjust_slot_count(day, at, -1, session=session)
            history_service.append_history(
                appointment_id=appointment_id,
                user_id=user_id,
                action="cancelled",
                old_status=STATUS_PENDING,
                new_status=STATUS_CANCELLED,
                comment="Appointment cancelled by client",
                session=session,
            )
        return cancelled

    return run_with_retry(_op, session=session)


# =============================================================================
# Admin decision
# =============================================================================

def resolve_rejection_reason(reason: Optional[str], details: Optional[str] = None) -> str:
    """
    Map a rejection category to its stored text.

    "other" stores the admin's own wording (details, falling back to the raw
    value); an unknown code is stored verbatim.
    """
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")
    reason = reason.strip()
    try:
        category = RejectionReason(reason)
    except ValueError:
        return reason
    if category is RejectionReason.OTHER:
        return details or reason
    return category.display_text


def _warranty_text(decision: StatusDecision) -> Optional[str]:
    if decision.warranty_info:
        return decision.warranty_info
    if decision.warranty_months is not None:
        return f"{decision.warranty_months} months warranty"
    return None


def _validate_decision(decision: StatusDecision) -> dict:
    """Per-status business rules; returns the column values to write."""
    if decision.status not in DECISION_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(DECISION_STATUSES)}")

    if decision.status == STATUS_APPROVED:
        if not decision.estimated_price_cents or decision.estimated_price_cents <= 0:
            raise ValidationError("Estimated price is required for approval")
        warranty = _warranty_text(decision)
        if warranty is None:
            raise ValidationError("Warranty is required for approval")
        return {
            "status": STATUS_APPROVED,
            "admin_response": decision.admin_response,
            "rejection_reason": None,
            "retry_days": None,
            "estimated_price_cents": decision.estimated_price_cents,
            "warranty_info": warranty,
            "estimated_completion_time": decision.estimated_completion_time,
        }

    if decision.status == STATUS_REJECTED:
        if decision.retry_days is not None and decision.retry_days <= 0:
            raise ValidationError("retryDays must be a positive number of days")
        return {
            "status": STATUS_REJECTED,
            "admin_response": None,
            "rejection_reason": resolve_rejection_reason(
                decision.rejection_reason, decision.rejection_details
            ),
            "retry_days": decision.retry_days,
            "estimated_price_cents": None,
            "warranty_info": None,
            "estimated_completion_time": None,
        }

    # Staying pending: only the admin's note changes
    return {
        "status": STATUS_PENDING,
        "admin_response": decision.admin_response,
        "rejection_reason": None,
        "retry_days": None,
        "estimated_price_cents": None,
        "warranty_info": None,
        "estimated_completion_time": None,
    }


def _history_comment(action: str, values: dict, stock_updates, allocation) -> str:
    if action == "rejected":
        comment = f"Appointment rejected: {values['rejection_reason']}"
    elif values.get("admin_response"):
        comment = values["admin_response"]
    else:
        comment = f"Appointment {action} by admin"

    if action == "approved" and stock_updates:
        total_cents = sum(row.subtotal_cents for row in allocation)
        stock_info = "; ".join(
            f"{u.name}: used {u.quantity_used}, remaining {u.stock_after}" for u in stock_updates
        )
        comment += (
            f" ({len(stock_updates)} parts allocated, total cost: {format_cents(total_cents)}."
            f" Stock updated: {stock_info})"
        )
    return comment


def update_status_with_parts(
    appointment_id: int,
    decision: StatusDecision,
    selected_parts: Sequence[PartRequest] = (),
    *,
    actor_id: Optional[int] = None,
    session=None,
) -> ApprovalResult:
    """
    Apply an admin decision to a pending appointment.

    Transaction step order:
        a. deduct stock for the selected parts (approval only)
        b. compare-and-set the appointment row, clearing the fields that do
           not belong to the target status
        c. replace the allocation rows (cleared unless approving)
        d. release the slot unit (rejection only)
        e. append the history row
        f. commit

    Raises:
        NotFoundError: unknown appointment
        AlreadyProcessedError: already approved or rejected
        AlreadyCancelledError / AlreadyCompletedError
        ValidationError: missing price/warranty/reason
        InsufficientStockError: a selected part can not cover its quantity
    """
    session = get_session(session)
    appointment = get_appointment(appointment_id, session=session)
    if appointment.status != STATUS_PENDING:
        raise _status_conflict(appointment.status)

    values = _validate_decision(decision)
    target = values["status"]
    action = target if target in (STATUS_APPROVED, STATUS_REJECTED) else "updated"
    parts = list(selected_parts) if target == STATUS_APPROVED else []

    if parts:
        report = parts_service.check_availability(parts, session=session)
        if not report.available:
            raise InsufficientStockError(
                "Cannot approve appointment. " + "; ".join(
                    f"{p.name or 'Unknown part'}: {p.reason}" for p in report.unavailable_parts
                ),
                report.unavailable_parts,
            )

    day = appointment.appointment_date
    at = appointment.appointment_time

    def _op() -> ApprovalResult:
        with transaction(session):
            _lock_appointment(appointment_id, session=session)

            stock_updates = parts_service.deduct_multiple(parts, session=session) if parts else []

            updated = _compare_and_set_status(appointment_id, STATUS_PENDING, values, session=session)

            allocation = allocation_service.replace_allocation(appointment_id, parts, session=session)

            if target == STATUS_REJECTED:
                calendar_service.adjust_slot_count(day, at, -1, session=session)

            history_service.append_history(
                appointment_id=appointment_id,
                user_id=actor_id,
                action=action,
                old_status=STATUS_PENDING,
                new_status=target,
                comment=_history_comment(action, values, stock_updates, allocation),
                session=session,
            )

        return ApprovalResult(
            appointment=updated,
            stock_updates=stock_updates,
            allocation=allocation,
            low_stock_warnings=parts_service.low_stock_warnings(
                stock_updates,
                threshold=_config("LOW_STOCK_WARNING_THRESHOLD", 5),
            ),
        )

    return run_with_retry(_op, session=session)


# =============================================================================
# Read operations
# =============================================================================

def get_appointment(appointment_id: int, *, session=None) -> Appointment:
    session = get_session(session)
    appointment = session.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    return appointment


def get_appointment_for_user(appointment_id: int, user_id: int, *, session=None) -> Appointment:
    """Another user's appointment is reported as missing."""
    session = get_session(session)
    appointment = (
        session.query(Appointment)
        .filter(Appointment.id == appointment_id, Appointment.user_id == user_id)
        .first()
    )
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def list_user_appointments(user_id: int, *, session=None) -> list[Appointment]:
    session = get_session(session)
    return (
        session.query(Appointment)
        .filter(Appointment.user_id == user_id)
        .order_by(Appointment.appointment_at.desc(), Appointment.id.desc())
        .all()
    )


def _date_range(date_filter: str):
    today = time_utils.local_today()
    if date_filter == "today":
        start, days = today, 1
    elif date_filter == "tomorrow":
        start, days = today + timedelta(days=1), 1
    elif date_filter == "week":
        start, days = today, 7
    elif date_filter == "month":
        start, days = today, 30
    else:
        raise ValidationError(f"Invalid date filter. Must be one of: {', '.join(ADMIN_DATE_FILTERS)}")
    start_at = datetime.combine(start, datetime.min.time())
    return start_at, start_at + timedelta(days=days)


def list_appointments_for_admin(
    *,
    status: Optional[str] = None,
    date_filter: Optional[str] = None,
    search: Optional[str] = None,
    session=None,
) -> list[Appointment]:
    """
    Admin dashboard listing, newest first.

    date_filter (today / tomorrow / week / month) applies to the appointment
    time; search matches client name, email, problem text and vehicle.
    """
    session = get_session(session)
    q = (
        session.query(Appointment)
        .join(User, Appointment.user_id == User.id)
        .outerjoin(Vehicle, Appointment.vehicle_id == Vehicle.id)
    )

    if status:
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        q = q.filter(Appointment.status == status)

    if date_filter:
        start_at, end_at = _date_range(date_filter)
        q = q.filter(Appointment.appointment_at >= start_at, Appointment.appointment_at < end_at)

    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(
            or_(
                User.first_name.ilike(term),
                User.last_name.ilike(term),
                User.email.ilike(term),
                Appointment.problem_description.ilike(term),
                Vehicle.brand.ilike(term),
                Vehicle.model.ilike(term),
            )
        )

    return q.order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()


def get_statistics(*, days: int = STATISTICS_WINDOW_DAYS, session=None) -> dict:
    """Appointment counts per status, created within the last `days` days."""
    session = get_session(session)
    since = time_utils.utcnow() - timedelta(days=days)

    rows = (
        session.query(Appointment.status, func.count(Appointment.id))
        .filter(Appointment.created_at >= since)
        .group_by(Appointment.status)
        .all()
    )

    stats = {"total": 0}
    stats.update({status: 0 for status in APPOINTMENT_STATUSES})
    for status, count in rows:
        stats[status] = int(count)
        stats["total"] += int(count)
    return stats
