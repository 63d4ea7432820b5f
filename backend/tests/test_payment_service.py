"""
Payment ledger tests.

Verifies:
- Payments append to the ledger and recompute paid/remaining/status
- Overpayment, non-positive amounts and unknown methods are rejected
- A rejected payment leaves the sale unchanged
"""

from decimal import Decimal

import pytest

from conftest import make_cart
from optistore.models import PaymentRecord
from optistore.services import payment_service, sales_service
from optistore.services.errors import (
    ExceedsBalanceError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    SaleNotFoundError,
)


@pytest.fixture
def sale(db_session, store, frame):
    """Two frames at 15.99 with 16% tax: total 37.0968, unpaid."""
    return sales_service.build_sale(store.id, make_cart((frame, 2)))


def _snapshot(sale_id):
    sale = sales_service.get_sale(sale_id)
    return (sale.paid_amount, sale.remaining_amount, sale.status, len(sale.payments))


# =============================================================================
# ACCEPTED PAYMENTS
# =============================================================================


class TestAddPayment:

    def test_partial_payment(self, sale):
        updated = payment_service.add_payment(sale.id, 20, "cash")

        assert updated.paid_amount == Decimal("20")
        assert updated.remaining_amount == Decimal("17.0968")
        assert updated.status == "partial"
        assert updated.payments[-1].method == "cash"

    def test_paying_the_remainder_marks_paid(self, sale):
        payment_service.add_payment(sale.id, "20", "cash")
        updated = payment_service.add_payment(sale.id, "17.0968", "card", "Balance")

        assert updated.paid_amount == Decimal("37.0968")
        assert updated.remaining_amount == Decimal("0")
        assert updated.status == "paid"
        assert [p.method for p in updated.payments] == ["cash", "card"]
        assert updated.payments[-1].notes == "Balance"

    def test_paid_amount_is_monotonic(self, sale):
        history = []
        for amount in ("5", "0.0968", "12", "10", "10"):
            updated = payment_service.add_payment(sale.id, amount, "transfer")
            history.append(updated.paid_amount)
            assert updated.remaining_amount == max(Decimal("0"), updated.total - updated.paid_amount)

        assert history == sorted(history)
        assert history[-1] == Decimal("37.0968")

    def test_balances_survive_reload(self, sale, db_session):
        payment_service.add_payment(sale.id, "10.0001", "card")
        sale_id = sale.id
        db_session.expire_all()

        stored = sales_service.get_sale(sale_id)
        assert stored.paid_amount == Decimal("10.0001")
        assert stored.payments[0].amount == Decimal("10.0001")
        assert stored.remaining_amount == stored.total - stored.paid_amount

    def test_status_matches_balances(self, sale):
        for amount in ("10", "27.0968"):
            updated = payment_service.add_payment(sale.id, amount, "cheque")
            assert (updated.status == "paid") == (updated.remaining_amount == 0)
            assert (updated.status == "unpaid") == (updated.paid_amount == 0)

    def test_payment_records_operator(self, sale, owner):
        payment_service.add_payment(sale.id, "10", "cash", user_id=owner.id)

        record = payment_service.list_payments(sale.id)[0]
        assert record.created_by_user_id == owner.id
        assert record.amount == Decimal("10")


# =============================================================================
# REJECTED PAYMENTS
# =============================================================================


class TestRejectedPayments:

    def test_payment_above_remaining_is_rejected(self, sale):
        payment_service.add_payment(sale.id, 20, "cash")
        before = _snapshot(sale.id)

        with pytest.raises(ExceedsBalanceError) as exc_info:
            payment_service.add_payment(sale.id, 20, "card")

        assert exc_info.value.code == "EXCEEDS_BALANCE"
        assert exc_info.value.details["remaining_amount"] == "17.0968"
        assert _snapshot(sale.id) == before

    def test_payment_on_paid_sale_is_rejected(self, sale):
        payment_service.add_payment(sale.id, "37.0968", "cash")

        with pytest.raises(ExceedsBalanceError):
            payment_service.add_payment(sale.id, "0.01", "cash")

    @pytest.mark.parametrize("amount", [0, -5, "-0.01", "abc", None, True, "NaN", "Infinity"])
    def test_invalid_amount(self, sale, amount):
        before = _snapshot(sale.id)

        with pytest.raises(InvalidAmountError):
            payment_service.add_payment(sale.id, amount, "cash")

        assert _snapshot(sale.id) == before

    @pytest.mark.parametrize("amount", ["0.00006", "10.00005", Decimal("1.23456")])
    def test_amount_finer_than_storage_is_rejected(self, sale, amount):
        before = _snapshot(sale.id)

        with pytest.raises(InvalidAmountError):
            payment_service.add_payment(sale.id, amount, "cash")

        assert _snapshot(sale.id) == before

    def test_invalid_method(self, sale):
        with pytest.raises(InvalidPaymentMethodError):
            payment_service.add_payment(sale.id, 10, "crypto")

        assert _snapshot(sale.id)[3] == 0

    def test_amount_is_checked_before_method(self, sale):
        with pytest.raises(InvalidAmountError):
            payment_service.add_payment(sale.id, 0, "crypto")

    def test_method_is_checked_before_balance(self, sale):
        with pytest.raises(InvalidPaymentMethodError):
            payment_service.add_payment(sale.id, 1000, "crypto")

    def test_unknown_sale(self, db_session):
        with pytest.raises(SaleNotFoundError):
            payment_service.add_payment(987654, 10, "cash")


# =============================================================================
# SUMMARY
# =============================================================================


class TestPaymentSummary:

    def test_breakdown_by_method(self, db_session, store, frame):
        sale = sales_service.build_sale(
            store.id, make_cart((frame, 2), initial_payment="10", method="card")
        )
        payment_service.add_payment(sale.id, "5", "cash")
        payment_service.add_payment(sale.id, "2.50", "cash")

        summary = payment_service.get_payment_summary(sale.id)

        assert summary["payment_count"] == 3
        assert Decimal(summary["by_method"]["card"]) == Decimal("10")
        assert Decimal(summary["by_method"]["cash"]) == Decimal("7.50")
        assert Decimal(summary["remaining_amount"]) == Decimal("19.5968")
        assert summary["status"] == "partial"

    def test_ledger_is_removed_with_the_sale(self, sale, db_session):
        payment_service.add_payment(sale.id, "10", "cash")
        sales_service.delete_sale(sale.id)

        assert db_session.query(PaymentRecord).count() == 0
