from __future__ import annotations

from ..extensions import db
from optistore.time_utils import to_utc_z


class Store(db.Model):
    """
    An optical store.

    Each store owns its catalog, its sales and its document sequences.
    The tax rate is the store's Tax Policy: sales snapshot it at build time,
    so later changes never alter an existing sale.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "name", name="uq_stores_owner_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, index=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    # Store-level configuration
    timezone = db.Column(db.String(64), nullable=False, default="UTC")
    tax_rate_percent = db.Column(db.Numeric(7, 4), nullable=False, default=16)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    owner = db.relationship("User", foreign_keys=[owner_id], backref=db.backref("owned_stores", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "phone": self.phone,
            "timezone": self.timezone,
            "tax_rate_percent": str(self.tax_rate_percent) if self.tax_rate_percent is not None else None,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
