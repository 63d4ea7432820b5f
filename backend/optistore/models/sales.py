from __future__ import annotations

from ..extensions import db
from optistore.time_utils import to_utc_z


def _money(value) -> str | None:
    return str(value) if value is not None else None


class Sale(db.Model):
    """
    Point-of-sale transaction aggregate: cart -> priced totals -> payments.

    DERIVED FIELDS (never set independently):
    - subtotal = sum(items.total_price)
    - discount = subtotal * discount_percent / 100
    - tax = (subtotal - discount) * tax_rate_percent / 100
    - total = subtotal - discount + tax
    - paid_amount = sum(payments.amount)
    - remaining_amount = max(0, total - paid_amount)
    - status: unpaid, partial or paid

    discount_percent and tax_rate_percent are snapshots taken at build time.
    Items are frozen after creation; only client identity and notes may change.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sale_number", name="uq_sales_store_number"),
        db.Index("ix_sales_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # Human-readable number (e.g., "S-001-0042"), unique within the store
    sale_number = db.Column(db.String(64), nullable=False)

    # Walk-in sales have no client
    client_id = db.Column(db.String(64), nullable=True, index=True)
    client_name = db.Column(db.String(255), nullable=True)
    client_email = db.Column(db.String(255), nullable=True)

    subtotal = db.Column(db.Numeric(18, 4), nullable=False)
    discount_percent = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    discount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    tax_rate_percent = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    tax = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    total = db.Column(db.Numeric(18, 4), nullable=False)

    paid_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    remaining_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    created_by = db.Column(db.String(255), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "PaymentRecord",
        back_populates="sale",
        order_by="PaymentRecord.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "sale_number": self.sale_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "subtotal": _money(self.subtotal),
            "discount_percent": _money(self.discount_percent),
            "discount": _money(self.discount),
            "tax_rate_percent": _money(self.tax_rate_percent),
            "tax": _money(self.tax),
            "total": _money(self.total),
            "paid_amount": _money(self.paid_amount),
            "remaining_amount": _money(self.remaining_amount),
            "status": self.status,
            "notes": self.notes,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "created_by": self.created_by,
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SaleItem(db.Model):
    """
    One catalog entry's quantity and price within a sale.

    product_name and unit_price are snapshots: historic sales stay stable
    when the catalog entry is renamed, repriced or deleted.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_sale_line", "sale_id", "line_number", unique=True),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    # Reference into products or contact_lenses, selected by product_type
    product_id = db.Column(db.Integer, nullable=False)
    product_type = db.Column(db.String(32), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(18, 4), nullable=False)
    total_price = db.Column(db.Numeric(18, 4), nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_type": self.product_type,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "total_price": _money(self.total_price),
        }


class PaymentRecord(db.Model):
    """
    A single payment applied to a sale.

    IMMUTABLE: the ledger is append-only. Records are never updated; they
    disappear only when their sale is deleted.

    METHODS: cash, card, transfer, cheque
    """
    __tablename__ = "payment_records"
    __table_args__ = (
        db.Index("ix_payment_records_sale_date", "sale_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(18, 4), nullable=False)
    method = db.Column(db.String(16), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    sale = db.relationship("Sale", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount": _money(self.amount),
            "method": self.method,
            "date": to_utc_z(self.date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
        }
