from __future__ import annotations

from ..extensions import db
from autoshop.money import format_cents
from autoshop.time_utils import to_utc_z


class Supplier(db.Model):
    """
    Supplier master data. Managed by the accountant tooling; parts only
    reference it here.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(255), nullable=False, unique=True)
    contact_person = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} company_name={self.company_name!r}>"


class Part(db.Model):
    """
    Spare part with an on-hand stock counter.

    STOCK INVARIANT: stock_quantity >= 0, always.
    stock_quantity is only ever lowered by a single conditional UPDATE
    (WHERE stock_quantity >= :qty) inside the approval transaction; see
    services/parts_service.py. Price is authoritative in cents.
    """
    __tablename__ = "parts"
    __table_args__ = (
        db.UniqueConstraint("part_number", name="uq_parts_part_number"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_parts_stock_nonneg"),
        db.CheckConstraint("price_cents >= 0", name="ck_parts_price_nonneg"),
        db.CheckConstraint("minimum_stock_level >= 0", name="ck_parts_min_stock_nonneg"),
        db.Index("ix_parts_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock_level = db.Column(db.Integer, nullable=False, default=5)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("parts", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.minimum_stock_level

    def __repr__(self) -> str:
        return f"<Part id={self.id} part_number={self.part_number!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "part_number": self.part_number,
            "category": self.category,
            "description": self.description,
            "price": format_cents(self.price_cents),
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "minimum_stock_level": self.minimum_stock_level,
            "is_low_stock": self.is_low_stock,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.company_name if self.supplier else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
