# Overview: Per-store tax policy; read by the sale builder at build time.

from __future__ import annotations

from decimal import Decimal

from optistore.extensions import db
from optistore.models import Store
from optistore.pricing import HUNDRED, ZERO, to_decimal, within_money_scale
from optistore.services.concurrency import lock_for_update, run_with_retry
from optistore.validation import ValidationError


def validate_tax_rate_percent(value) -> Decimal:
    try:
        rate = to_decimal(value)
    except ValueError:
        raise ValidationError("tax_rate_percent must be a number")
    if not rate.is_finite() or rate < ZERO or rate > HUNDRED:
        raise ValidationError("tax_rate_percent must be between 0 and 100")
    if not within_money_scale(rate):
        raise ValidationError("tax_rate_percent allows at most 4 decimal places")
    return rate


def get_tax_rate_percent(store_id: int) -> Decimal:
    """
    Point-in-time tax rate for a store, as a percent (16 means 16%).

    Sales snapshot the returned value; changing the rate later never
    alters a sale that was already built.
    """
    store = db.session.query(Store).filter_by(id=store_id).first()
    if store is None:
        raise ValidationError(f"Store {store_id} not found")
    return Decimal(store.tax_rate_percent)


def set_tax_rate_percent(store_id: int, rate) -> Store:
    def _op():
        new_rate = validate_tax_rate_percent(rate)
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if store is None:
            raise ValidationError(f"Store {store_id} not found")
        store.tax_rate_percent = new_rate
        db.session.commit()
        return store

    return run_with_retry(_op)
