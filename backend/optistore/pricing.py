# Overview: Pure sale pricing and payment-status math shared by every sales path.

"""
Sale pricing

All sale totals are computed here and nowhere else. Functions in this module
are pure: they take plain values and return plain values, never touching the
database, so routes, services and tests share exactly one formula.

MONEY:
- Amounts are Decimal, quantized to 4 places (half-up) after each derived step.
- Percentages are plain Decimal percents (16 means 16%).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

MONEY_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"

VALID_PAYMENT_STATUSES = [
    PAYMENT_STATUS_UNPAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_PAID,
]


def to_decimal(value) -> Decimal:
    """
    Convert user/JSON input to Decimal.

    Floats go through str() so 15.99 stays 15.99 rather than its binary
    expansion. Booleans are rejected even though bool is an int subclass.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
    raise ValueError(f"not a number: {value!r}")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def within_money_scale(value: Decimal) -> bool:
    """True when value is finite and survives storage at 4 places unchanged."""
    if not value.is_finite():
        return False
    try:
        return value == quantize_money(value)
    except InvalidOperation:
        return False


@dataclass(frozen=True)
class PricedLine:
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PricedCart:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return quantize_money(Decimal(quantity) * unit_price)


def price_cart(
    lines: Iterable[tuple[int, Decimal]],
    discount_percent: Decimal,
    tax_rate_percent: Decimal,
) -> PricedCart:
    """
    Price (quantity, unit_price) pairs.

    subtotal = sum(quantity * unit_price)
    discount = subtotal * discount_percent / 100
    tax      = (subtotal - discount) * tax_rate_percent / 100
    total    = subtotal - discount + tax

    Callers validate ranges first; with discount_percent in [0, 100] the
    discount never exceeds the subtotal.
    """
    priced = tuple(
        PricedLine(quantity=qty, unit_price=price, total_price=line_total(qty, price))
        for qty, price in lines
    )
    subtotal = sum((line.total_price for line in priced), ZERO)
    discount = quantize_money(subtotal * discount_percent / HUNDRED)
    tax = quantize_money((subtotal - discount) * tax_rate_percent / HUNDRED)
    total = subtotal - discount + tax

    return PricedCart(
        lines=priced,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=total,
    )


def remaining_balance(total: Decimal, paid_amount: Decimal) -> Decimal:
    return max(ZERO, total - paid_amount)


def derive_payment_status(total: Decimal, paid_amount: Decimal) -> str:
    """
    PAYMENT STATUS:
    - paid:    nothing remains (paid_amount >= total), including zero-total sales
    - unpaid:  paid_amount == 0
    - partial: anything in between
    """
    if remaining_balance(total, paid_amount) == ZERO:
        return PAYMENT_STATUS_PAID
    if paid_amount == ZERO:
        return PAYMENT_STATUS_UNPAID
    return PAYMENT_STATUS_PARTIAL
