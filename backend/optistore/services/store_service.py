# Overview: Store lifecycle; creation with timezone and tax defaults, and per-user listing.

from __future__ import annotations

from flask import current_app

from optistore.extensions import db
from optistore.models import Store, User
from optistore.services.concurrency import run_with_retry
from optistore.services.tax_service import validate_tax_rate_percent
from optistore.time_utils import get_zone


class StoreError(Exception):
    """Raised for store operation errors."""
    pass


def _validate_timezone(tz: str) -> str:
    try:
        get_zone(tz)
    except ValueError as e:
        raise StoreError(str(e))
    return tz


def create_store(
    name: str,
    *,
    owner_id: int | None = None,
    code: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    timezone: str = "UTC",
    tax_rate_percent=None,
) -> Store:
    def _op():
        if not name or not name.strip():
            raise StoreError("name is required")

        if tax_rate_percent is None:
            rate = validate_tax_rate_percent(current_app.config["DEFAULT_TAX_RATE_PERCENT"])
        else:
            rate = validate_tax_rate_percent(tax_rate_percent)

        store = Store(
            name=name.strip(),
            owner_id=owner_id,
            code=code,
            address=address,
            phone=phone,
            timezone=_validate_timezone(timezone),
            tax_rate_percent=rate,
        )
        db.session.add(store)
        db.session.commit()
        return store

    return run_with_retry(_op)


def get_store(store_id: int) -> Store | None:
    return db.session.query(Store).filter_by(id=store_id).first()


def list_stores_for_user(user: User) -> list[Store]:
    """Owners see their stores; employees see their assigned stores."""
    query = db.session.query(Store).filter_by(is_active=True)
    if user.is_owner:
        query = query.filter(Store.owner_id == user.id)
    else:
        store_ids = user.assigned_store_ids or []
        if not store_ids:
            return []
        query = query.filter(Store.owner_id == user.owner_id, Store.id.in_(store_ids))
    return query.order_by(Store.name.asc()).all()
