from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_now() -> datetime:
    """
    Workshop wall-clock 'now' (naive, second precision).

    Appointment times are booked in the workshop's local time, so every
    comparison against an appointment datetime goes through this function.
    """
    return datetime.now().replace(microsecond=0)


def local_today() -> date:
    return local_now().date()


def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")


def format_time(value: Optional[time], *, seconds: bool = False) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%H:%M:%S" if seconds else "%H:%M")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
