"""
CLI command tests.

Verifies:
- stores set-tax-rate writes through the tax policy and validates input
- stores list shows the current rate
"""

from decimal import Decimal

from optistore.services import tax_service


def test_set_tax_rate(app, db_session, store):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["stores", "set-tax-rate", str(store.id), "20"])

    assert result.exit_code == 0, result.output
    assert f"Store {store.id} tax rate is now" in result.output
    db_session.expire_all()
    assert tax_service.get_tax_rate_percent(store.id) == Decimal("20")


def test_set_tax_rate_rejects_invalid_rate(app, db_session, store):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["stores", "set-tax-rate", str(store.id), "150"])

    assert result.exit_code != 0
    assert "between 0 and 100" in result.output
    db_session.expire_all()
    assert tax_service.get_tax_rate_percent(store.id) == Decimal("16")


def test_list_stores(app, db_session, store):
    result = app.test_cli_runner().invoke(args=["stores", "list"])

    assert result.exit_code == 0
    assert "Optique Centre" in result.output
    assert "tax=16" in result.output
