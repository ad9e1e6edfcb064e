# Overview: Service-layer operations for the appointment history audit trail.

from __future__ import annotations

from typing import Optional

from ..models import AppointmentHistory, HISTORY_ACTIONS
from .concurrency import get_session
"""
Appointment History Invariants (authoritative)

- Append-only: rows are never updated or deleted.
- Exactly one row per status transition.
- Written inside the same DB transaction as the transition it records, so
  a rolled-back transition leaves no history behind.
"""


def append_history(
    *,
    appointment_id: int,
    action: str,
    new_status: str,
    user_id: Optional[int] = None,
    old_status: Optional[str] = None,
    comment: Optional[str] = None,
    session=None,
) -> AppointmentHistory:
    """
    Append one history row. Flushes, never commits.
    """
    if action not in HISTORY_ACTIONS:
        raise ValueError(f"Invalid history action '{action}'")

    session = get_session(session)
    entry = AppointmentHistory(
        appointment_id=appointment_id,
        user_id=user_id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        comment=comment,
    )
    session.add(entry)
    session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_history(appointment_id: int, *, session=None) -> list[AppointmentHistory]:
    session = get_session(session)
    return (
        session.query(AppointmentHistory)
        .filter_by(appointment_id=appointment_id)
        .order_by(AppointmentHistory.created_at.asc(), AppointmentHistory.id.asc())
        .all()
    )
