# Overview: Vehicle lookups used when an appointment names a vehicle.

from __future__ import annotations

from ..errors import NotFoundError
from ..models import Vehicle
from .concurrency import get_session


def get_vehicle(vehicle_id: int, *, session=None) -> Vehicle:
    session = get_session(session)
    vehicle = session.query(Vehicle).filter_by(id=vehicle_id).first()
    if vehicle is None:
        raise NotFoundError(f"Vehicle {vehicle_id} not found")
    return vehicle


def get_vehicle_for_user(vehicle_id: int, user_id: int, *, session=None) -> Vehicle:
    """A vehicle owned by someone else is reported as missing."""
    vehicle = get_vehicle(vehicle_id, session=session)
    if vehicle.user_id != user_id:
        raise NotFoundError(f"Vehicle {vehicle_id} not found")
    return vehicle
