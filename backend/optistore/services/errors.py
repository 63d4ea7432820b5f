# Overview: Typed failures returned by the sales core (builder, ledger, reconciler).

"""
Sales error taxonomy

Every core operation either fully applies or not at all; these errors are
raised before any state is committed. Each carries a stable code so routes
can return a distinguishable error value per case.
"""

from __future__ import annotations


class SalesError(Exception):
    """Base class for sales-core failures."""
    code = "SALES_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class SaleError(SalesError):
    """Raised for sale operation errors."""
    code = "SALE_ERROR"


class EmptyCartError(SaleError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("A sale needs at least one item")


class UnknownProductError(SaleError):
    code = "UNKNOWN_PRODUCT"

    def __init__(self, product_id, product_type: str):
        super().__init__(
            f"Catalog entry {product_type}:{product_id} not found",
            details={"product_id": product_id, "product_type": product_type},
        )
        self.product_id = product_id
        self.product_type = product_type


class SaleValidationError(SaleError):
    code = "INVALID_SALE_INPUT"


class SaleNotFoundError(SaleError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id):
        super().__init__(f"Sale {sale_id} not found", details={"sale_id": sale_id})


class PaymentError(SalesError):
    """Raised for payment operation errors."""
    code = "PAYMENT_ERROR"


class InvalidAmountError(PaymentError):
    code = "INVALID_AMOUNT"


class InvalidPaymentMethodError(PaymentError):
    code = "INVALID_PAYMENT_METHOD"


class ExceedsBalanceError(PaymentError):
    code = "EXCEEDS_BALANCE"

    def __init__(self, amount, remaining):
        super().__init__(
            "Payment exceeds remaining balance",
            details={"amount": str(amount), "remaining_amount": str(remaining)},
        )
