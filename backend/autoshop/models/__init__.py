from .auth import User, SessionToken, USER_ROLES
from .vehicles import Vehicle
from .calendar import CalendarSlot
from .inventory import Supplier, Part
from .appointments import (
    Appointment,
    AppointmentPart,
    AppointmentHistory,
    APPOINTMENT_STATUSES,
    HISTORY_ACTIONS,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

__all__ = [
    'User', 'SessionToken', 'USER_ROLES',
    'Vehicle',
    'CalendarSlot',
    'Supplier', 'Part',
    'Appointment', 'AppointmentPart', 'AppointmentHistory',
    'APPOINTMENT_STATUSES', 'HISTORY_ACTIONS',
    'STATUS_PENDING', 'STATUS_APPROVED', 'STATUS_REJECTED', 'STATUS_COMPLETED', 'STATUS_CANCELLED',
]
