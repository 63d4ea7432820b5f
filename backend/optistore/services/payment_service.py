# Overview: Payment ledger; records payments against sales and recomputes balances.

"""
Payment Service

Append-only ledger of payments per sale. Each accepted payment:
- appends a PaymentRecord
- recomputes paid_amount = sum(payments.amount)
- recomputes remaining_amount and status

REJECTION ORDER:
1. InvalidAmountError (amount <= 0, non-numeric, non-finite, finer than 4 places)
2. InvalidPaymentMethodError (method not in VALID_PAYMENT_METHODS)
3. ExceedsBalanceError (amount > remaining_amount)

A rejected payment leaves the sale untouched.
"""

from __future__ import annotations

import logging
from datetime import datetime

from optistore.extensions import db
from optistore.models import PaymentRecord, Sale
from optistore.pricing import (
    ZERO,
    derive_payment_status,
    quantize_money,
    remaining_balance,
    to_decimal,
    within_money_scale,
)
from optistore.services.concurrency import lock_for_update, run_with_retry
from optistore.services.errors import (
    ExceedsBalanceError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    SaleNotFoundError,
)
from optistore.time_utils import utcnow

logger = logging.getLogger(__name__)

PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_TRANSFER = "transfer"
PAYMENT_METHOD_CHEQUE = "cheque"

VALID_PAYMENT_METHODS = (
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_TRANSFER,
    PAYMENT_METHOD_CHEQUE,
)


def _validate_amount(amount):
    if amount is None or isinstance(amount, bool):
        raise InvalidAmountError("Payment amount is required")
    try:
        value = to_decimal(amount)
    except ValueError:
        raise InvalidAmountError("Payment amount must be a number")
    if not value.is_finite() or value <= ZERO:
        raise InvalidAmountError("Payment amount must be positive")
    if not within_money_scale(value):
        raise InvalidAmountError(
            "Payment amount allows at most 4 decimal places",
            details={"amount": str(value)},
        )
    return quantize_money(value)


def recompute_balance(sale: Sale) -> None:
    """Derive paid_amount, remaining_amount and status from the ledger."""
    paid = sum((payment.amount for payment in sale.payments), ZERO)
    sale.paid_amount = quantize_money(paid)
    sale.remaining_amount = remaining_balance(sale.total, sale.paid_amount)
    sale.status = derive_payment_status(sale.total, sale.paid_amount)


def add_payment(
    sale_id: int,
    amount,
    method: str,
    notes: str | None = None,
    *,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Sale:
    """
    Record a payment against a sale.

    The sale row is locked for the duration so concurrent payments on the
    same sale serialize and cannot jointly overpay it.

    Returns:
        The updated Sale

    Raises:
        SaleNotFoundError, InvalidAmountError, InvalidPaymentMethodError,
        ExceedsBalanceError
    """
    def _op():
        value = _validate_amount(amount)
        if method not in VALID_PAYMENT_METHODS:
            raise InvalidPaymentMethodError(
                f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}",
                details={"method": method},
            )

        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFoundError(sale_id)

        remaining = remaining_balance(sale.total, sale.paid_amount)
        if value > remaining:
            raise ExceedsBalanceError(value, remaining)

        sale.payments.append(PaymentRecord(
            amount=value,
            method=method,
            date=now or utcnow(),
            notes=(notes or "").strip() or None,
            created_by_user_id=user_id,
        ))
        recompute_balance(sale)
        db.session.commit()

        logger.info(
            "Payment of %s (%s) recorded on sale %s: remaining=%s status=%s",
            value, method, sale.sale_number, sale.remaining_amount, sale.status,
        )
        return sale

    return run_with_retry(_op)


def list_payments(sale_id: int) -> list[PaymentRecord]:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if sale is None:
        raise SaleNotFoundError(sale_id)
    return list(sale.payments)


def get_payment_summary(sale_id: int) -> dict:
    """Totals and per-method breakdown for one sale's ledger."""
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if sale is None:
        raise SaleNotFoundError(sale_id)

    by_method: dict[str, object] = {}
    for payment in sale.payments:
        by_method[payment.method] = by_method.get(payment.method, ZERO) + payment.amount

    return {
        "sale_id": sale.id,
        "total": str(sale.total),
        "paid_amount": str(sale.paid_amount),
        "remaining_amount": str(sale.remaining_amount),
        "status": sale.status,
        "payment_count": len(sale.payments),
        "by_method": {key: str(value) for key, value in by_method.items()},
    }
