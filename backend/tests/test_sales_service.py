"""
Sale builder tests.

Verifies:
- Carts are priced with the store's tax rate and persisted atomically
- Empty carts and unknown catalog entries are rejected with no stock change
- Initial payments larger than the total are clamped
- Deleting a sale restores stock
"""

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import make_cart
from optistore.models import Sale, StockMovement
from optistore.services import catalog_service, sales_service, tax_service
from optistore.services.errors import (
    EmptyCartError,
    SaleNotFoundError,
    SaleValidationError,
    UnknownProductError,
)
from optistore.services.sales_service import CartInput, CartItemInput


# =============================================================================
# BUILD
# =============================================================================


class TestBuildSale:

    def test_prices_cart_with_store_tax(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 2)), created_by="Owner")

        assert sale.subtotal == Decimal("31.98")
        assert sale.discount == Decimal("0")
        assert sale.tax == Decimal("5.1168")
        assert sale.total == Decimal("37.0968")
        assert sale.tax_rate_percent == Decimal("16")
        assert sale.paid_amount == Decimal("0")
        assert sale.remaining_amount == Decimal("37.0968")
        assert sale.status == "unpaid"
        assert sale.payments == []

    def test_items_snapshot_name_and_price(self, db_session, store, frame, lens):
        sale = sales_service.build_sale(
            store.id, make_cart((frame, 1), (lens, 2, "22.50"))
        )

        assert [item.line_number for item in sale.items] == [1, 2]
        assert sale.items[0].product_name == "Ray-Ban Aviator"
        assert sale.items[0].product_type == "product"
        assert sale.items[1].product_type == "contact_lens"
        assert sale.items[1].unit_price == Decimal("22.50")
        assert sale.items[1].total_price == Decimal("45.00")

    def test_sale_numbers_are_sequential_per_store(self, db_session, store, frame):
        first = sales_service.build_sale(store.id, make_cart((frame, 1)))
        second = sales_service.build_sale(store.id, make_cart((frame, 1)))

        assert first.sale_number == f"S-{store.id:03d}-0001"
        assert second.sale_number == f"S-{store.id:03d}-0002"

    def test_walk_in_sale_has_no_client(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 1)))

        assert sale.client_id is None
        assert sale.client_name is None

    def test_client_identity_and_notes_are_kept(self, db_session, store, frame):
        cart = make_cart(
            (frame, 1),
            client_id="C-17",
            client_name="Amina Benali",
            client_email="amina@example.com",
            notes="Pick up Friday",
        )
        sale = sales_service.build_sale(store.id, cart)

        assert sale.client_name == "Amina Benali"
        assert sale.notes == "Pick up Friday"

    def test_created_at_uses_supplied_clock(self, db_session, store, frame):
        now = datetime(2026, 3, 14, 9, 30)
        sale = sales_service.build_sale(store.id, make_cart((frame, 1)), now=now)

        assert sale.created_at.replace(tzinfo=None) == now

    def test_blank_name_takes_catalog_name(self, db_session, store, frame):
        cart = CartInput(items=[CartItemInput(frame.id, "", "product", 1, Decimal("15.99"))])

        sale = sales_service.build_sale(store.id, cart)

        assert sale.items[0].product_name == "Ray-Ban Aviator"

    def test_stored_amounts_match_their_formulas(self, db_session, store, frame):
        sale = sales_service.build_sale(
            store.id, make_cart((frame, 3, "0.3333"), discount="2.5", initial_payment="0.5")
        )
        sale_id = sale.id
        db_session.expire_all()

        stored = sales_service.get_sale(sale_id)
        item = stored.items[0]
        assert item.total_price == item.quantity * item.unit_price
        assert stored.paid_amount == Decimal("0.5")
        assert stored.remaining_amount == stored.total - stored.paid_amount

    def test_tax_rate_change_does_not_touch_existing_sales(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 2)))
        tax_service.set_tax_rate_percent(store.id, "20")

        reloaded = sales_service.get_sale(sale.id)
        assert reloaded.tax_rate_percent == Decimal("16")
        assert reloaded.total == Decimal("37.0968")

        newer = sales_service.build_sale(store.id, make_cart((frame, 2)))
        assert newer.tax == Decimal("6.396")


# =============================================================================
# INITIAL PAYMENT
# =============================================================================


class TestInitialPayment:

    def test_partial_initial_payment(self, db_session, store, frame):
        sale = sales_service.build_sale(
            store.id, make_cart((frame, 2), initial_payment="20", method="card")
        )

        assert sale.paid_amount == Decimal("20")
        assert sale.remaining_amount == Decimal("17.0968")
        assert sale.status == "partial"
        assert len(sale.payments) == 1
        assert sale.payments[0].method == "card"
        assert sale.payments[0].notes == "Initial payment"

    def test_initial_payment_above_total_is_clamped(self, db_session, store, frame):
        sale = sales_service.build_sale(
            store.id, make_cart((frame, 2), initial_payment="100")
        )

        assert sale.paid_amount == Decimal("37.0968")
        assert sale.remaining_amount == Decimal("0")
        assert sale.status == "paid"
        assert sale.payments[0].amount == Decimal("37.0968")

    def test_zero_total_sale_is_paid(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 1), discount="100"))

        assert sale.total == Decimal("0")
        assert sale.status == "paid"
        assert sale.payments == []


# =============================================================================
# REJECTIONS
# =============================================================================


class TestBuildSaleRejections:

    def test_empty_cart_rejected_without_side_effects(self, db_session, store, frame):
        with pytest.raises(EmptyCartError):
            sales_service.build_sale(store.id, CartInput(items=[]))

        assert db_session.query(Sale).count() == 0
        assert db_session.query(StockMovement).count() == 0
        assert catalog_service.get_entry(store.id, frame.id, "product").stock == 5

    def test_unknown_product_rejects_whole_cart(self, db_session, store, frame):
        cart = CartInput(items=[
            CartItemInput(frame.id, frame.name, "product", 2, Decimal("15.99")),
            CartItemInput(999999, "Ghost", "product", 1, Decimal("10")),
        ])

        with pytest.raises(UnknownProductError) as exc_info:
            sales_service.build_sale(store.id, cart)

        assert exc_info.value.details == {"product_id": 999999, "product_type": "product"}
        assert db_session.query(Sale).count() == 0
        assert db_session.query(StockMovement).count() == 0
        assert catalog_service.get_entry(store.id, frame.id, "product").stock == 5

    def test_entry_of_another_store_is_unknown(self, db_session, store, other_store, frame):
        with pytest.raises(UnknownProductError):
            sales_service.build_sale(other_store.id, make_cart((frame, 1)))

    def test_rejected_sale_does_not_consume_a_number(self, db_session, store, frame):
        with pytest.raises(UnknownProductError):
            sales_service.build_sale(store.id, CartInput(items=[
                CartItemInput(424242, "Ghost", "product", 1, Decimal("10")),
            ]))

        sale = sales_service.build_sale(store.id, make_cart((frame, 1)))
        assert sale.sale_number.endswith("-0001")

    @pytest.mark.parametrize(
        "quantity,unit_price,discount,initial_payment,method",
        [
            (0, "10", "0", "0", "cash"),
            (-1, "10", "0", "0", "cash"),
            (1, "-5", "0", "0", "cash"),
            (1, "10", "101", "0", "cash"),
            (1, "10", "-1", "0", "cash"),
            (1, "10", "0", "-3", "cash"),
            (1, "10", "0", "0", "bitcoin"),
            (1, "0.33335", "0", "0", "cash"),
            (1, "10", "12.34567", "0", "cash"),
            (1, "10", "0", "10.00005", "cash"),
        ],
    )
    def test_invalid_input(self, db_session, store, frame, quantity, unit_price,
                           discount, initial_payment, method):
        cart = CartInput(
            items=[CartItemInput(frame.id, frame.name, "product", quantity, Decimal(unit_price))],
            discount_percent=Decimal(discount),
            initial_payment=Decimal(initial_payment),
            payment_method=method,
        )

        with pytest.raises(SaleValidationError):
            sales_service.build_sale(store.id, cart)

        assert catalog_service.get_entry(store.id, frame.id, "product").stock == 5


# =============================================================================
# PAYLOAD PARSING
# =============================================================================


class TestCartFromPayload:

    def test_parses_json_body(self):
        cart = CartInput.from_payload({
            "items": [{
                "product_id": 3,
                "product_type": "contact_lens",
                "product_name": "Acuvue",
                "quantity": 2,
                "unit_price": 22.5,
            }],
            "discount_percent": "10",
            "initial_payment": 5,
            "payment_method": "transfer",
            "client_name": "  Karim  ",
        })

        assert cart.items[0].unit_price == Decimal("22.5")
        assert cart.discount_percent == Decimal("10")
        assert cart.initial_payment == Decimal("5")
        assert cart.payment_method == "transfer"
        assert cart.client_name == "Karim"

    def test_defaults_to_cash_and_no_discount(self):
        cart = CartInput.from_payload({"items": []})

        assert cart.payment_method == "cash"
        assert cart.discount_percent == Decimal("0")
        assert cart.items == []

    def test_missing_item_keys(self):
        with pytest.raises(SaleValidationError) as exc_info:
            CartInput.from_payload({"items": [{"product_id": 1}]})

        assert exc_info.value.details["missing"] == ["product_type", "quantity", "unit_price"]

    def test_non_numeric_price(self):
        with pytest.raises(SaleValidationError):
            CartInput.from_payload({"items": [{
                "product_id": 1, "product_type": "product", "quantity": 1, "unit_price": "abc",
            }]})


# =============================================================================
# EDIT / DELETE
# =============================================================================


class TestSaleLifecycle:

    def test_delete_restores_stock(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 3)))
        assert catalog_service.get_entry(store.id, frame.id, "product").stock == 2

        sales_service.delete_sale(sale.id)

        assert catalog_service.get_entry(store.id, frame.id, "product").stock == 5
        assert db_session.query(Sale).count() == 0

    def test_delete_unknown_sale(self, db_session):
        with pytest.raises(SaleNotFoundError):
            sales_service.delete_sale(123456)

    def test_update_details_only(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 1)))

        updated = sales_service.update_sale_details(
            sale.id, {"client_name": "Nadia", "notes": "Prescription on file"}
        )

        assert updated.client_name == "Nadia"
        assert updated.notes == "Prescription on file"
        assert updated.total == sale.total

    def test_update_rejects_pricing_fields(self, db_session, store, frame):
        sale = sales_service.build_sale(store.id, make_cart((frame, 1)))

        with pytest.raises(SaleValidationError) as exc_info:
            sales_service.update_sale_details(sale.id, {"total": "1.00", "notes": "x"})

        assert exc_info.value.details == {"fields": ["total"]}
        assert sales_service.get_sale(sale.id).notes is None
