# Overview: Sale Builder and sale lifecycle (create, edit details, delete).

"""
Sales Service

A sale is built in one step from a cart: items are priced, stock is
reserved, an optional initial payment is recorded, and the sale is
persisted. Everything happens in one database transaction; a failure at
any point rolls back stock changes, the sale number, and the sale itself.

After creation a sale changes only through the payment ledger
(payment_service.add_payment) or through update_sale_details, which
touches client identity and notes. Item changes require delete and
re-create.

INITIAL PAYMENT vs LEDGER PAYMENTS:
- build_sale CLAMPS an initial payment larger than the total.
- add_payment REJECTS a payment larger than the remaining balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app

from optistore.extensions import db
from optistore.models import Sale, SaleItem, PaymentRecord
from optistore.models.catalog import VALID_PRODUCT_TYPES
from optistore.pricing import (
    HUNDRED,
    ZERO,
    derive_payment_status,
    price_cart,
    to_decimal,
    within_money_scale,
)
from optistore.services import inventory_service, tax_service
from optistore.services.concurrency import lock_for_update, run_with_retry
from optistore.services.document_service import next_document_number
from optistore.services.errors import (
    EmptyCartError,
    SaleNotFoundError,
    SaleValidationError,
)
from optistore.services.payment_service import VALID_PAYMENT_METHODS, PAYMENT_METHOD_CASH
from optistore.time_utils import utcnow

logger = logging.getLogger(__name__)

INITIAL_PAYMENT_NOTE = "Initial payment"

EDITABLE_DETAIL_FIELDS = ("client_id", "client_name", "client_email", "notes")


# =============================================================================
# CART INPUT
# =============================================================================

@dataclass(frozen=True)
class CartItemInput:
    product_id: int
    product_name: str
    product_type: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class CartInput:
    items: list[CartItemInput] = field(default_factory=list)
    discount_percent: Decimal = ZERO
    initial_payment: Decimal = ZERO
    payment_method: str = PAYMENT_METHOD_CASH
    client_id: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "CartInput":
        """
        Parse a JSON request body into a cart.

        Shape checks only (types, required keys). Range checks happen in
        validate_cart so programmatic callers get the same rules.
        """
        if not isinstance(payload, dict):
            raise SaleValidationError("Invalid JSON payload")

        raw_items = payload.get("items") or []
        if not isinstance(raw_items, list):
            raise SaleValidationError("items must be a list")

        items = []
        for index, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise SaleValidationError(f"items[{index}] must be an object")
            missing = [
                key for key in ("product_id", "product_type", "quantity", "unit_price")
                if raw.get(key) is None
            ]
            if missing:
                raise SaleValidationError(
                    f"items[{index}] missing: {', '.join(missing)}",
                    details={"index": index, "missing": missing},
                )
            items.append(CartItemInput(
                product_id=raw["product_id"],
                product_name=str(raw.get("product_name") or "").strip(),
                product_type=raw["product_type"],
                quantity=raw["quantity"],
                unit_price=_parse_decimal(raw["unit_price"], f"items[{index}].unit_price"),
            ))

        return cls(
            items=items,
            discount_percent=_parse_decimal(payload.get("discount_percent", 0), "discount_percent"),
            initial_payment=_parse_decimal(payload.get("initial_payment", 0), "initial_payment"),
            payment_method=payload.get("payment_method") or PAYMENT_METHOD_CASH,
            client_id=_optional_str(payload.get("client_id")),
            client_name=_optional_str(payload.get("client_name")),
            client_email=_optional_str(payload.get("client_email")),
            notes=_optional_str(payload.get("notes")),
        )


def _parse_decimal(value, name: str) -> Decimal:
    if value is None:
        return ZERO
    try:
        return to_decimal(value)
    except ValueError:
        raise SaleValidationError(f"{name} must be a number")


def _optional_str(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _check_money_scale(value: Decimal, name: str) -> None:
    # Stored columns keep 4 places; anything finer would be rounded per column
    if not within_money_scale(value):
        raise SaleValidationError(f"{name} allows at most 4 decimal places")


def validate_cart(cart: CartInput) -> None:
    """
    Reject malformed carts before any side effect.

    EmptyCartError comes first so an empty cart is always reported as such.
    """
    if not cart.items:
        raise EmptyCartError()

    for index, item in enumerate(cart.items):
        if item.product_type not in VALID_PRODUCT_TYPES:
            raise SaleValidationError(
                f"items[{index}].product_type must be one of {VALID_PRODUCT_TYPES}"
            )
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
            raise SaleValidationError(f"items[{index}].quantity must be an integer >= 1")
        if not item.unit_price.is_finite() or item.unit_price < ZERO:
            raise SaleValidationError(f"items[{index}].unit_price must be >= 0")
        _check_money_scale(item.unit_price, f"items[{index}].unit_price")

    if not cart.discount_percent.is_finite() or not (ZERO <= cart.discount_percent <= HUNDRED):
        raise SaleValidationError("discount_percent must be between 0 and 100")
    _check_money_scale(cart.discount_percent, "discount_percent")

    if not cart.initial_payment.is_finite() or cart.initial_payment < ZERO:
        raise SaleValidationError("initial_payment must be >= 0")
    _check_money_scale(cart.initial_payment, "initial_payment")

    if cart.payment_method not in VALID_PAYMENT_METHODS:
        raise SaleValidationError(
            f"Invalid payment method: {cart.payment_method}. Must be one of {VALID_PAYMENT_METHODS}"
        )


# =============================================================================
# SALE BUILDER
# =============================================================================

def build_sale(
    store_id: int,
    cart: CartInput,
    *,
    created_by: str | None = None,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Sale:
    """
    Price a cart, reserve its stock, and persist the resulting sale.

    Args:
        store_id: Store the sale belongs to (tax rate and catalog scope)
        cart: Items, discount percent, initial payment and client identity
        created_by: Display name of the operator
        user_id: Operator account, for attribution
        now: Clock override; defaults to utcnow()

    Returns:
        The persisted Sale, with items and payments loaded

    Raises:
        EmptyCartError: cart has no items
        SaleValidationError: malformed item, discount, payment or method
        UnknownProductError: an item's catalog entry does not exist
    """
    def _op():
        validate_cart(cart)
        timestamp = now or utcnow()

        tax_rate_percent = tax_service.get_tax_rate_percent(store_id)
        priced = price_cart(
            ((item.quantity, item.unit_price) for item in cart.items),
            cart.discount_percent,
            tax_rate_percent,
        )

        paid_amount = min(cart.initial_payment, priced.total)
        remaining_amount = priced.total - paid_amount

        sale_number = next_document_number(
            store_id=store_id,
            document_type="SALE",
            prefix=current_app.config.get("SALE_NUMBER_PREFIX", "S"),
        )

        # All-or-nothing: raises before touching stock when any entry is unknown
        entries = inventory_service.reserve(
            store_id,
            cart.items,
            reference=sale_number,
            user_id=user_id,
        )

        sale = Sale(
            store_id=store_id,
            sale_number=sale_number,
            client_id=cart.client_id,
            client_name=cart.client_name,
            client_email=cart.client_email,
            subtotal=priced.subtotal,
            discount_percent=cart.discount_percent,
            discount=priced.discount,
            tax_rate_percent=tax_rate_percent,
            tax=priced.tax,
            total=priced.total,
            paid_amount=paid_amount,
            remaining_amount=remaining_amount,
            status=derive_payment_status(priced.total, paid_amount),
            notes=cart.notes,
            created_at=timestamp,
            created_by=created_by,
            created_by_user_id=user_id,
        )

        for line_number, (item, line, entry) in enumerate(
            zip(cart.items, priced.lines, entries), start=1
        ):
            sale.items.append(SaleItem(
                line_number=line_number,
                product_id=item.product_id,
                product_type=item.product_type,
                product_name=item.product_name or entry.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            ))

        if paid_amount > ZERO:
            sale.payments.append(PaymentRecord(
                amount=paid_amount,
                method=cart.payment_method,
                date=timestamp,
                notes=INITIAL_PAYMENT_NOTE,
                created_by_user_id=user_id,
            ))

        db.session.add(sale)
        db.session.commit()

        logger.info(
            "Sale %s created in store %s: total=%s paid=%s status=%s",
            sale.sale_number, store_id, sale.total, sale.paid_amount, sale.status,
        )
        return sale

    return run_with_retry(_op)


# =============================================================================
# QUERIES AND EDITS
# =============================================================================

def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if sale is None:
        raise SaleNotFoundError(sale_id)
    return sale


def update_sale_details(sale_id: int, changes: dict) -> Sale:
    """
    Edit client identity and notes of an existing sale.

    Pricing, items and payments are frozen; any other key is rejected.
    """
    def _op():
        if not isinstance(changes, dict):
            raise SaleValidationError("Invalid JSON payload")
        not_editable = sorted(set(changes) - set(EDITABLE_DETAIL_FIELDS))
        if not_editable:
            raise SaleValidationError(
                f"Only {', '.join(EDITABLE_DETAIL_FIELDS)} can be edited after creation",
                details={"fields": not_editable},
            )

        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFoundError(sale_id)

        for key, value in changes.items():
            setattr(sale, key, _optional_str(value))

        db.session.commit()
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int, *, user_id: int | None = None) -> None:
    """
    Delete a sale and restore the stock it reserved.

    Deletion is not a payment-status transition: the aggregate and its
    payment history are removed.
    """
    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFoundError(sale_id)

        inventory_service.release(
            sale.store_id,
            sale.items,
            reference=sale.sale_number,
            user_id=user_id,
        )

        sale_number = sale.sale_number
        store_id = sale.store_id
        db.session.delete(sale)
        db.session.commit()

        logger.info("Sale %s deleted from store %s; stock released", sale_number, store_id)

    run_with_retry(_op)
