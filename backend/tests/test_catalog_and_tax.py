"""
Catalog and tax policy tests.

Verifies:
- tax rate validation and per-store defaults
- catalog payload validation through the model policy layer
- stock changes only through audited adjustments
- low-stock report includes oversold entries
"""

from decimal import Decimal

import pytest

from optistore.services import catalog_service, store_service, tax_service
from optistore.services.catalog_service import CatalogError
from optistore.services.store_service import StoreError
from optistore.validation import ValidationError


# =============================================================================
# TAX POLICY
# =============================================================================


class TestTaxPolicy:

    def test_new_store_uses_default_rate(self, store):
        assert tax_service.get_tax_rate_percent(store.id) == Decimal("16")

    def test_explicit_rate_on_creation(self, db_session, owner):
        store = store_service.create_store("Annex", owner_id=owner.id, tax_rate_percent="7.5")

        assert tax_service.get_tax_rate_percent(store.id) == Decimal("7.5")

    @pytest.mark.parametrize("rate", ["0", "20", "100", 5.5])
    def test_valid_rates(self, store, rate):
        tax_service.set_tax_rate_percent(store.id, rate)

        assert tax_service.get_tax_rate_percent(store.id) == Decimal(str(rate))

    @pytest.mark.parametrize("rate", ["-1", "100.01", "abc", None, "NaN", "7.12345"])
    def test_invalid_rates(self, store, rate):
        with pytest.raises(ValidationError):
            tax_service.set_tax_rate_percent(store.id, rate)

        assert tax_service.get_tax_rate_percent(store.id) == Decimal("16")

    def test_unknown_store(self, db_session):
        with pytest.raises(ValidationError):
            tax_service.get_tax_rate_percent(555555)

    def test_unknown_timezone_rejected(self, db_session, owner):
        with pytest.raises(StoreError):
            store_service.create_store("Nowhere", owner_id=owner.id, timezone="Mars/Olympus")


# =============================================================================
# CATALOG ENTRIES
# =============================================================================


class TestCatalogEntries:

    def test_create_product(self, store):
        entry = catalog_service.create_entry(store.id, "product", {
            "name": "Oakley Holbrook",
            "brand": "Oakley",
            "price": "129.90",
            "stock": 4,
            "attributes": {"frame_size": "55-18"},
        })

        data = entry.to_dict()
        assert data["product_type"] == "product"
        assert Decimal(data["price"]) == Decimal("129.90")
        assert data["stock_status"] == "in"
        assert data["attributes"] == {"frame_size": "55-18"}

    def test_create_contact_lens_requires_brand(self, store):
        with pytest.raises(ValidationError):
            catalog_service.create_entry(store.id, "contact_lens", {
                "name": "Biofinity",
                "category": "lentilles",
                "price": "30",
            })

    def test_contact_lens_category_is_checked(self, store):
        with pytest.raises(ValidationError):
            catalog_service.create_entry(store.id, "contact_lens", {
                "name": "Biofinity",
                "brand": "CooperVision",
                "category": "frames",
                "price": "30",
            })

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "X", "price": "-1"},
            {"name": "X", "price": "10", "stock": -2},
            {"name": "X", "price": "10", "stock": 1.5},
            {"name": "X", "price": "10", "unknown": 1},
            {"name": "", "price": "10"},
            {"price": "10"},
        ],
    )
    def test_invalid_product_payloads(self, store, payload):
        with pytest.raises(ValidationError):
            catalog_service.create_entry(store.id, "product", payload)

    def test_unknown_product_type(self, store):
        with pytest.raises(ValidationError):
            catalog_service.create_entry(store.id, "frame", {"name": "X", "price": "1"})

    def test_update_cannot_set_stock(self, store, frame):
        with pytest.raises(ValidationError):
            catalog_service.update_entry(store.id, "product", frame.id, {"stock": 99})

    def test_update_price(self, store, frame):
        entry = catalog_service.update_entry(store.id, "product", frame.id, {"price": "17.50"})

        assert entry.price == Decimal("17.50")

    def test_entries_are_store_scoped(self, store, other_store, frame):
        assert catalog_service.get_entry(other_store.id, frame.id, "product") is None
        with pytest.raises(CatalogError):
            catalog_service.update_entry(other_store.id, "product", frame.id, {"price": "1"})

    def test_search_by_name_or_brand(self, store, frame, lens):
        assert [e.id for e in catalog_service.list_entries(store.id, "product", search="ray")] == [frame.id]
        assert catalog_service.list_entries(store.id, "product", search="acuvue") == []


# =============================================================================
# STOCK
# =============================================================================


class TestStock:

    @pytest.mark.parametrize("delta", [0, 1.5, True, None])
    def test_manual_adjustment_requires_nonzero_integer(self, store, frame, delta):
        with pytest.raises(ValidationError):
            catalog_service.manual_adjust_stock(store.id, frame.id, "product", delta)

    def test_adjusting_missing_entry(self, store):
        with pytest.raises(CatalogError):
            catalog_service.manual_adjust_stock(store.id, 999, "product", 1)

    def test_low_stock_report(self, store, frame, lens):
        catalog_service.manual_adjust_stock(store.id, frame.id, "product", -7)
        catalog_service.manual_adjust_stock(store.id, lens.id, "contact_lens", -7)

        low = catalog_service.low_stock_entries(store.id)

        assert [(e.product_type, e.stock, e.stock_status()) for e in low] == [
            ("product", -2, "out"),
            ("contact_lens", 3, "low"),
        ]
