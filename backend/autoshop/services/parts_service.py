# Overview: Service-layer operations for part inventory; availability checks and atomic stock deduction.

# backend/autoshop/services/parts_service.py

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Optional, Sequence

from sqlalchemy import or_, update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..models import Part
from .appointment_schemas import AvailabilityReport, PartRequest, PartShortage, StockUpdate
from .concurrency import get_session
"""
Part Stock Invariants (authoritative)

- stock_quantity >= 0 after any sequence of operations.
- Stock is lowered only by deduct_stock, as ONE conditional UPDATE:
      stock_quantity = stock_quantity - :q WHERE id = :id AND stock_quantity >= :q
  Zero rows affected means another transaction got there first (or the
  pre-check was stale) and the whole enclosing transaction must fail.
- check_availability is a read-only pre-check. It gives the caller a precise
  per-part answer before any transaction opens, but it is NOT the race
  guarantee; the conditional UPDATE is.
- Deductions never commit. They always run inside the caller's transaction.
"""

PART_NOT_FOUND = "Part not found"


def _insufficient_reason(requested: int, available: int) -> str:
    return f"Insufficient stock: requested {requested}, available {available}"


def _requested_totals(requested: Iterable[PartRequest]) -> "OrderedDict[int, int]":
    totals: "OrderedDict[int, int]" = OrderedDict()
    for item in requested:
        totals[item.part_id] = totals.get(item.part_id, 0) + item.quantity
    return totals


def _shortage_message(shortages: Sequence[PartShortage]) -> str:
    parts = "; ".join(
        f"{s.name or f'part {s.part_id}'}: {s.reason}" for s in shortages
    )
    return f"Cannot allocate parts. {parts}"


def check_availability(requested: Sequence[PartRequest], *, session=None) -> AvailabilityReport:
    """
    Report whether every requested part can cover its quantity.

    Returns an AvailabilityReport listing one PartShortage per failing part
    ("Part not found" or "Insufficient stock: requested X, available Y").
    """
    session = get_session(session)
    totals = _requested_totals(requested)
    if not totals:
        return AvailabilityReport(available=True, unavailable_parts=[])

    parts = {
        p.id: p
        for p in session.query(Part).filter(Part.id.in_(list(totals.keys()))).populate_existing().all()
    }

    shortages: list[PartShortage] = []
    for part_id, quantity in totals.items():
        part = parts.get(part_id)
        if part is None:
            shortages.append(PartShortage(part_id=part_id, reason=PART_NOT_FOUND, requested=quantity))
        elif part.stock_quantity < quantity:
            shortages.append(
                PartShortage(
                    part_id=part_id,
                    name=part.name,
                    requested=quantity,
                    available=part.stock_quantity,
                    reason=_insufficient_reason(quantity, part.stock_quantity),
                )
            )

    return AvailabilityReport(available=not shortages, unavailable_parts=shortages)


def deduct_stock(part_id: int, quantity: int, *, session=None) -> StockUpdate:
    """
    Atomically take `quantity` units of a part out of stock.

    Must run inside the caller's transaction; does not commit.

    Raises:
        ValidationError: quantity <= 0
        InsufficientStockError: part missing or stock too low at UPDATE time
    """
    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be > 0")

    session = get_session(session)

    stmt = (
        update(Part)
        .where(Part.id == part_id, Part.stock_quantity >= quantity)
        .values(stock_quantity=Part.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)

    part = session.query(Part).filter(Part.id == part_id).populate_existing().first()

    if not result.rowcount:
        if part is None:
            shortage = PartShortage(part_id=part_id, reason=PART_NOT_FOUND, requested=quantity)
        else:
            shortage = PartShortage(
                part_id=part_id,
                name=part.name,
                requested=quantity,
                available=part.stock_quantity,
                reason=_insufficient_reason(quantity, part.stock_quantity),
            )
        raise InsufficientStockError(_shortage_message([shortage]), [shortage])

    return StockUpdate(
        part_id=part.id,
        name=part.name,
        part_number=part.part_number,
        quantity_used=quantity,
        stock_before=part.stock_quantity + quantity,
        stock_after=part.stock_quantity,
        minimum_stock_level=part.minimum_stock_level,
    )


def deduct_multiple(parts: Sequence[PartRequest], *, session=None) -> list[StockUpdate]:
    """
    Deduct several parts inside the caller's transaction.

    Two phases: validate every part first (raising one InsufficientStockError
    that lists ALL violations), then deduct each part in order. A deduction
    that still fails after the pre-check raises and the caller's transaction
    rolls back every earlier deduction with it.
    """
    session = get_session(session)

    report = check_availability(parts, session=session)
    if not report.available:
        raise InsufficientStockError(_shortage_message(report.unavailable_parts), report.unavailable_parts)

    return [deduct_stock(p.part_id, p.quantity, session=session) for p in parts]


def low_stock_warnings(stock_updates: Iterable[StockUpdate], *, threshold: int) -> list[dict]:
    """Parts whose remaining stock after a deduction is at or below `threshold`."""
    warnings = []
    for update_ in stock_updates:
        if update_.stock_after <= threshold:
            warnings.append({
                "partId": update_.part_id,
                "name": update_.name,
                "partNumber": update_.part_number,
                "remainingStock": update_.stock_after,
                "minimumStockLevel": update_.minimum_stock_level,
                "message": f"{update_.name} is running low: {update_.stock_after} left in stock",
            })
    return warnings


# =============================================================================
# Read operations
# =============================================================================

def get_part(part_id: int, *, session=None) -> Part:
    session = get_session(session)
    part = session.query(Part).filter_by(id=part_id).first()
    if part is None:
        raise NotFoundError(f"Part {part_id} not found")
    return part


def list_parts(
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    available_only: bool = False,
    session=None,
) -> list[Part]:
    session = get_session(session)
    q = session.query(Part)

    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Part.name.ilike(term),
                Part.part_number.ilike(term),
                Part.description.ilike(term),
                Part.category.ilike(term),
            )
        )
    if category:
        q = q.filter(Part.category == category)
    if available_only:
        q = q.filter(Part.stock_quantity > 0)

    return q.order_by(Part.name.asc()).all()


def list_categories(*, session=None) -> list[str]:
    session = get_session(session)
    rows = (
        session.query(Part.category)
        .filter(Part.category.isnot(None))
        .distinct()
        .order_by(Part.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def get_low_stock_parts(*, session=None) -> list[Part]:
    session = get_session(session)
    return (
        session.query(Part)
        .filter(Part.stock_quantity <= Part.minimum_stock_level)
        .order_by(Part.stock_quantity.asc(), Part.name.asc())
        .all()
    )
