# Overview: Catalog Store for products and contact lenses; reads entries and adjusts stock.

"""
Catalog Service

The catalog is the authoritative holder of on-hand stock. Two collections
share one interface, selected by product_type:
- "product": frames, sunglasses, accessories (Product)
- "contact_lens": contact lenses and lens-care products (ContactLens)

Catalog Store interface used by the sales core:
- get_entry(store_id, product_id, product_type) -> entry | None
- adjust_stock(store_id, product_id, product_type, delta, ...) -> entry

adjust_stock does not commit: the caller owns the transaction so a sale and
its stock changes land together or not at all.
"""

from __future__ import annotations

from optistore.extensions import db
from optistore.models import Product, ContactLens, StockMovement
from optistore.models.catalog import (
    PRODUCT_TYPE_PRODUCT,
    PRODUCT_TYPE_CONTACT_LENS,
    VALID_PRODUCT_TYPES,
)
from optistore.services.concurrency import lock_for_update, run_with_retry
from optistore.validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_catalog_entry,
    validate_payload,
)


class CatalogError(Exception):
    """Raised for catalog operation errors."""
    pass


CATALOG_MODELS = {
    PRODUCT_TYPE_PRODUCT: Product,
    PRODUCT_TYPE_CONTACT_LENS: ContactLens,
}

CONTACT_LENS_CATEGORIES = ("lentilles", "produits")

_COMMON_FIELDS = frozenset({
    "name", "brand", "sku", "barcode", "supplier",
    "price", "cost", "stock", "min_stock", "is_active",
})

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON_FIELDS | {"description", "category", "attributes"},
    required_on_create=frozenset({"name", "price"}),
    create_only_fields=frozenset({"stock"}),
)

CONTACT_LENS_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON_FIELDS | {
        "category", "lens_type", "material", "power", "cylinder", "axis",
        "addition", "base_curve", "diameter", "color",
    },
    required_on_create=frozenset({"name", "brand", "category", "price"}),
    create_only_fields=frozenset({"stock"}),
    choices={"category": CONTACT_LENS_CATEGORIES},
)

POLICIES = {
    PRODUCT_TYPE_PRODUCT: PRODUCT_POLICY,
    PRODUCT_TYPE_CONTACT_LENS: CONTACT_LENS_POLICY,
}


def model_for(product_type: str):
    model = CATALOG_MODELS.get(product_type)
    if model is None:
        raise ValidationError(
            f"Invalid product_type: {product_type}. Must be one of {VALID_PRODUCT_TYPES}"
        )
    return model


def get_entry(store_id: int, product_id, product_type: str, *, lock: bool = False):
    """
    Resolve a catalog entry within a store, or None.

    Unknown product types resolve to None as well; entries of another
    store are invisible.
    """
    model = CATALOG_MODELS.get(product_type)
    if model is None:
        return None
    query = db.session.query(model).filter_by(id=product_id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def adjust_stock(
    store_id: int,
    product_id,
    product_type: str,
    delta: int,
    *,
    movement_type: str = "adjustment",
    reason: str | None = None,
    reference: str | None = None,
    user_id: int | None = None,
    entry=None,
):
    """
    Apply a signed stock delta and record the movement.

    Stock is NOT clamped at zero. Pass an already locked entry to skip
    the lookup. Raises CatalogError when the entry does not exist.
    """
    if entry is None:
        entry = get_entry(store_id, product_id, product_type, lock=True)
    if entry is None:
        raise CatalogError(f"Catalog entry {product_type}:{product_id} not found")

    entry.stock = entry.stock + delta

    db.session.add(StockMovement(
        store_id=store_id,
        product_id=entry.id,
        product_type=product_type,
        type=movement_type,
        quantity=delta,
        reason=reason,
        reference=reference,
        created_by_user_id=user_id,
    ))
    return entry


def manual_adjust_stock(
    store_id: int,
    product_id: int,
    product_type: str,
    delta,
    *,
    reason: str | None = None,
    user_id: int | None = None,
):
    """Operator stock correction (receiving, breakage, recount)."""
    def _op():
        model_for(product_type)
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError("delta must be a non-zero integer")

        entry = adjust_stock(
            store_id,
            product_id,
            product_type,
            delta,
            movement_type="adjustment",
            reason=reason,
            user_id=user_id,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def create_entry(store_id: int, product_type: str, payload: dict):
    def _op():
        model = model_for(product_type)
        patch = validate_payload(
            model=model,
            payload=payload,
            policy=POLICIES[product_type],
            partial=False,
        )
        enforce_rules_catalog_entry(patch)

        entry = model(store_id=store_id, **patch)
        db.session.add(entry)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def update_entry(store_id: int, product_type: str, product_id: int, payload: dict):
    def _op():
        model = model_for(product_type)
        entry = get_entry(store_id, product_id, product_type, lock=True)
        if entry is None:
            raise CatalogError(f"Catalog entry {product_type}:{product_id} not found")

        patch = validate_payload(
            model=model,
            payload=payload,
            policy=POLICIES[product_type],
            partial=True,
        )
        # After creation stock moves only through adjust_stock, which audits it
        enforce_rules_catalog_entry(patch)

        for key, value in patch.items():
            setattr(entry, key, value)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def delete_entry(store_id: int, product_type: str, product_id: int) -> None:
    """
    Remove a catalog entry.

    Sales that reference it keep their snapshots; releasing their stock
    later simply skips the missing entry.
    """
    def _op():
        model_for(product_type)
        entry = get_entry(store_id, product_id, product_type, lock=True)
        if entry is None:
            raise CatalogError(f"Catalog entry {product_type}:{product_id} not found")
        db.session.delete(entry)
        db.session.commit()

    run_with_retry(_op)


def list_entries(
    store_id: int,
    product_type: str,
    *,
    search: str | None = None,
    include_inactive: bool = False,
) -> list:
    model = model_for(product_type)
    query = db.session.query(model).filter_by(store_id=store_id)
    if not include_inactive:
        query = query.filter(model.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(model.name.ilike(pattern), model.brand.ilike(pattern)))
    return query.order_by(model.name.asc()).all()


def low_stock_entries(store_id: int) -> list:
    """Active entries at or below their reorder threshold, including oversold ones."""
    rows = []
    for model in (Product, ContactLens):
        rows.extend(
            db.session.query(model).filter(
                model.store_id == store_id,
                model.is_active.is_(True),
                model.stock <= model.min_stock,
            ).order_by(model.stock.asc(), model.name.asc()).all()
        )
    return rows


def stock_movements(store_id: int, *, reference: str | None = None) -> list[StockMovement]:
    query = db.session.query(StockMovement).filter_by(store_id=store_id)
    if reference:
        query = query.filter_by(reference=reference)
    return query.order_by(StockMovement.id.asc()).all()
