from __future__ import annotations

from ..extensions import db
from autoshop.time_utils import to_utc_z


class Vehicle(db.Model):
    """A client's vehicle. Appointments may optionally reference one."""
    __tablename__ = "vehicles"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    vehicle_type = db.Column(db.String(32), nullable=False)
    brand = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=True)
    is_electric = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("vehicles", lazy=True))

    @property
    def display_name(self) -> str:
        label = f"{self.vehicle_type} {self.brand} {self.model}"
        if self.year:
            label += f" ({self.year})"
        return label

    def __repr__(self) -> str:
        return f"<Vehicle id={self.id} {self.brand} {self.model} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.vehicle_type,
            "brand": self.brand,
            "model": self.model,
            "year": self.year,
            "is_electric": self.is_electric,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
