from __future__ import annotations

from ..extensions import db
from optistore.time_utils import to_utc_z

PRODUCT_TYPE_PRODUCT = "product"
PRODUCT_TYPE_CONTACT_LENS = "contact_lens"

VALID_PRODUCT_TYPES = [
    PRODUCT_TYPE_PRODUCT,
    PRODUCT_TYPE_CONTACT_LENS,
]


def _money(value) -> str | None:
    return str(value) if value is not None else None


class CatalogEntryMixin:
    """
    Columns shared by every sellable catalog entry.

    stock is the authoritative on-hand quantity. It is NOT clamped at zero:
    a negative value means the store oversold and must reconcile.
    min_stock is an advisory reorder threshold and never blocks a sale.
    """
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(120), nullable=True)
    sku = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)
    supplier = db.Column(db.String(120), nullable=True)

    price = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    cost = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def stock_status(self) -> str:
        if self.stock <= 0:
            return "out"
        if self.stock <= self.min_stock:
            return "low"
        return "in"

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_type": self.product_type,
            "name": self.name,
            "brand": self.brand,
            "sku": self.sku,
            "barcode": self.barcode,
            "supplier": self.supplier,
            "price": _money(self.price),
            "cost": _money(self.cost),
            "stock": self.stock,
            "min_stock": self.min_stock,
            "stock_status": self.stock_status(),
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(CatalogEntryMixin, db.Model):
    """Frames, sunglasses, accessories and other general stock items."""
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    product_type = PRODUCT_TYPE_PRODUCT

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    # Free-form attributes such as frame size or lens type
    attributes = db.Column(db.JSON, nullable=True)

    store = db.relationship("Store", backref=db.backref("products", lazy=True))
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        data = self._base_dict()
        data.update({
            "description": self.description,
            "category": self.category,
            "attributes": self.attributes or {},
        })
        return data


class ContactLens(CatalogEntryMixin, db.Model):
    """Contact lenses and lens-care products ("lentilles" / "produits")."""
    __tablename__ = "contact_lenses"
    __table_args__ = (
        db.Index("ix_contact_lenses_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    product_type = PRODUCT_TYPE_CONTACT_LENS

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category = db.Column(db.String(32), nullable=False, default="lentilles")
    lens_type = db.Column(db.String(32), nullable=True)  # daily, weekly, monthly, yearly
    material = db.Column(db.String(64), nullable=True)
    power = db.Column(db.String(16), nullable=True)
    cylinder = db.Column(db.String(16), nullable=True)
    axis = db.Column(db.Integer, nullable=True)
    addition = db.Column(db.String(16), nullable=True)
    base_curve = db.Column(db.Numeric(5, 2), nullable=True)
    diameter = db.Column(db.Numeric(5, 2), nullable=True)
    color = db.Column(db.String(64), nullable=True)

    store = db.relationship("Store", backref=db.backref("contact_lenses", lazy=True))
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ContactLens id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        data = self._base_dict()
        data.update({
            "category": self.category,
            "lens_type": self.lens_type,
            "material": self.material,
            "power": self.power,
            "cylinder": self.cylinder,
            "axis": self.axis,
            "addition": self.addition,
            "base_curve": _money(self.base_curve),
            "diameter": _money(self.diameter),
            "color": self.color,
        })
        return data


class StockMovement(db.Model):
    """
    Append-only audit of catalog stock changes.

    TYPES:
    - out: stock reserved by a sale
    - in: stock released by a deleted sale
    - adjustment: manual correction

    quantity is the signed delta applied to the entry's stock.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_entry", "store_id", "product_type", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)
    product_type = db.Column(db.String(32), nullable=False)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    reference = db.Column(db.String(64), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "product_type": self.product_type,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "reference": self.reference,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
