# Overview: Service-layer operations for appointment part allocations.

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import func

from ..errors import NotFoundError
from ..models import AppointmentPart, Part
from .appointment_schemas import PartRequest
from .concurrency import get_session


@dataclass(frozen=True)
class AllocationTotal:
    total_cents: int
    parts_count: int


def replace_allocation(
    appointment_id: int,
    parts: Sequence[PartRequest],
    *,
    session=None,
) -> list[AppointmentPart]:
    """
    Replace the full set of allocation rows of an appointment.

    Deletes every existing row, then inserts one row per requested part.
    An empty `parts` simply clears the allocation. Runs inside the caller's
    transaction and never commits, so the delete and the inserts land
    together or not at all.

    unit_price_cents is snapshotted here: the requested price when given,
    otherwise the part's current price.
    """
    session = get_session(session)

    session.query(AppointmentPart).filter_by(appointment_id=appointment_id).delete(
        synchronize_session=False
    )

    rows: list[AppointmentPart] = []
    for item in parts:
        unit_price_cents = item.unit_price_cents
        if unit_price_cents is None:
            part = session.query(Part).filter_by(id=item.part_id).first()
            if part is None:
                raise NotFoundError(f"Part {item.part_id} not found")
            unit_price_cents = part.price_cents

        row = AppointmentPart(
            appointment_id=appointment_id,
            part_id=item.part_id,
            quantity=item.quantity,
            unit_price_cents=unit_price_cents,
            subtotal_cents=item.quantity * unit_price_cents,
        )
        session.add(row)
        rows.append(row)

    session.flush()
    return rows


def get_allocation(appointment_id: int, *, session=None) -> list[AppointmentPart]:
    session = get_session(session)
    return (
        session.query(AppointmentPart)
        .filter_by(appointment_id=appointment_id)
        .order_by(AppointmentPart.id.asc())
        .all()
    )


def get_allocation_total(appointment_id: int, *, session=None) -> AllocationTotal:
    session = get_session(session)
    row = (
        session.query(
            func.coalesce(func.sum(AppointmentPart.subtotal_cents), 0).label("total"),
            func.count(AppointmentPart.id).label("count"),
        )
        .filter(AppointmentPart.appointment_id == appointment_id)
        .one()
    )
    return AllocationTotal(total_cents=int(row.total or 0), parts_count=int(row.count or 0))
