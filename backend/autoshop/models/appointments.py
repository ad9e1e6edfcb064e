from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from autoshop.money import format_cents
from autoshop.time_utils import format_date, format_time, to_utc_z


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

APPOINTMENT_STATUSES = (
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

HISTORY_ACTIONS = ("created", "approved", "rejected", "cancelled", "updated")

# Statuses that occupy a user's booking time
ACTIVE_BOOKING_CLAUSE = "status IN ('pending', 'approved', 'completed')"


class Appointment(db.Model):
    """
    A client's service booking.

    STATE MACHINE:
        pending -> approved | rejected   (admin decision, locks the appointment)
        pending -> cancelled             (client, >= 1h before the appointment)
        completed                        (set outside this backend)

    A pending appointment holds exactly one unit of its calendar slot's
    capacity. Rejection and cancellation give it back; approval keeps it.

    Each status carries only its own fields: rejection_reason/retry_days only
    when rejected, estimated price/warranty only when approved.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'completed', 'cancelled')",
            name="ck_appointments_status",
        ),
        db.CheckConstraint(
            "estimated_price_cents IS NULL OR estimated_price_cents > 0",
            name="ck_appointments_price_positive",
        ),
        db.CheckConstraint("retry_days IS NULL OR retry_days > 0", name="ck_appointments_retry_days"),
        # One live booking per user and time; cancelled/rejected rows do not count
        db.Index(
            "uq_appointments_user_at_active",
            "user_id",
            "appointment_at",
            unique=True,
            sqlite_where=text(ACTIVE_BOOKING_CLAUSE),
            postgresql_where=text(ACTIVE_BOOKING_CLAUSE),
        ),
        db.Index("ix_appointments_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=True)

    # Workshop local time, naive, second granularity
    appointment_at = db.Column(db.DateTime, nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    problem_description = db.Column(db.Text, nullable=False)
    admin_response = db.Column(db.Text, nullable=True)

    rejection_reason = db.Column(db.Text, nullable=True)
    retry_days = db.Column(db.Integer, nullable=True)

    estimated_price_cents = db.Column(db.Integer, nullable=True)
    warranty_info = db.Column(db.String(255), nullable=True)
    estimated_completion_time = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("appointments", lazy=True))
    vehicle = db.relationship("Vehicle")

    @property
    def appointment_date(self):
        return self.appointment_at.date()

    @property
    def appointment_time(self):
        return self.appointment_at.time()

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} at={self.appointment_at} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "vehicle_id": self.vehicle_id,
            "date": format_date(self.appointment_date),
            "time": format_time(self.appointment_time),
            "status": self.status,
            "description": self.problem_description,
            "admin_response": self.admin_response,
            "rejection_reason": self.rejection_reason,
            "retry_days": self.retry_days,
            "estimated_price": format_cents(self.estimated_price_cents),
            "estimated_price_cents": self.estimated_price_cents,
            "warranty_info": self.warranty_info,
            "estimated_completion_time": self.estimated_completion_time,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AppointmentPart(db.Model):
    """
    Parts reserved for an appointment, with a price snapshot.

    unit_price_cents is captured at allocation time and never follows later
    Part price changes. The set of rows for an appointment is always replaced
    as a whole (delete all, insert all) inside the approval transaction.
    """
    __tablename__ = "appointment_parts"
    __table_args__ = (
        db.UniqueConstraint("appointment_id", "part_id", name="uq_appointment_parts_part"),
        db.CheckConstraint("quantity > 0", name="ck_appointment_parts_quantity"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_appointment_parts_unit_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=False, index=True)
    part_id = db.Column(db.Integer, db.ForeignKey("parts.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    appointment = db.relationship("Appointment", backref=db.backref("parts", lazy=True))
    part = db.relationship("Part")

    def __repr__(self) -> str:
        return (
            f"<AppointmentPart appointment_id={self.appointment_id} part_id={self.part_id} "
            f"qty={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "part_id": self.part_id,
            "part_name": self.part.name if self.part else None,
            "part_number": self.part.part_number if self.part else None,
            "category": self.part.category if self.part else None,
            "quantity": self.quantity,
            "unit_price": format_cents(self.unit_price_cents),
            "unit_price_cents": self.unit_price_cents,
            "subtotal": format_cents(self.subtotal_cents),
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }


class AppointmentHistory(db.Model):
    """
    Append-only audit trail of appointment status transitions.

    One row per transition, written in the same DB transaction as the
    transition itself. Rows are never updated or deleted.
    """
    __tablename__ = "appointment_history"
    __table_args__ = (
        db.CheckConstraint(
            "action IN ('created', 'approved', 'rejected', 'cancelled', 'updated')",
            name="ck_appointment_history_action",
        ),
        db.Index("ix_appointment_history_appointment_created", "appointment_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=False)
    # Acting user: the client for created/cancelled, the admin for decisions
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    action = db.Column(db.String(16), nullable=False)
    old_status = db.Column(db.String(16), nullable=True)
    new_status = db.Column(db.String(16), nullable=False)
    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return (
            f"<AppointmentHistory appointment_id={self.appointment_id} action={self.action} "
            f"{self.old_status}->{self.new_status}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "user_id": self.user_id,
            "action": self.action,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
