"""
Pytest fixtures for OptiStore backend tests.

Provides test database setup, store/catalog fixtures, and an authenticated
test client.
"""

from decimal import Decimal

import pytest

from optistore import create_app
from optistore.extensions import db
from optistore.models import Product, ContactLens
from optistore.services import store_service
from optistore.services.auth_service import create_owner, create_employee
from optistore.services.sales_service import CartInput, CartItemInput


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEFAULT_TAX_RATE_PERCENT': '16',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def owner(db_session):
    return create_owner("owner", "owner@optistore.test", PASSWORD, "Store Owner")


@pytest.fixture(scope='function')
def other_owner(db_session):
    return create_owner("rival", "rival@optistore.test", PASSWORD, "Rival Owner")


@pytest.fixture(scope='function')
def store(db_session, owner):
    """Store with the default 16% tax rate."""
    return store_service.create_store("Optique Centre", owner_id=owner.id, code="OC1")


@pytest.fixture(scope='function')
def other_store(db_session, other_owner):
    return store_service.create_store("Rival Optics", owner_id=other_owner.id)


@pytest.fixture(scope='function')
def frame(db_session, store):
    product = Product(
        store_id=store.id,
        name="Ray-Ban Aviator",
        brand="Ray-Ban",
        category="sunglasses",
        price=Decimal("15.99"),
        cost=Decimal("8.00"),
        stock=5,
        min_stock=2,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def lens(db_session, store):
    entry = ContactLens(
        store_id=store.id,
        name="Acuvue Oasys",
        brand="Johnson & Johnson",
        category="lentilles",
        lens_type="weekly",
        price=Decimal("25.00"),
        stock=10,
        min_stock=3,
    )
    db_session.add(entry)
    db_session.commit()
    return entry


@pytest.fixture(scope='function')
def employee(db_session, owner, store):
    """Employee assigned to store who can view and create invoices only."""
    return create_employee(
        owner,
        "clerk",
        "clerk@optistore.test",
        PASSWORD,
        "Front Desk",
        permissions={"invoices": ["view", "create"], "inventory": ["view"]},
        assigned_store_ids=[store.id],
    )


def make_cart(*lines, discount="0", initial_payment="0", method="cash", **client) -> CartInput:
    """
    lines: (entry, quantity) or (entry, quantity, unit_price)
    """
    items = []
    for line in lines:
        entry, quantity = line[0], line[1]
        unit_price = Decimal(line[2]) if len(line) > 2 else Decimal(entry.price)
        items.append(CartItemInput(
            product_id=entry.id,
            product_name=entry.name,
            product_type=entry.product_type,
            quantity=quantity,
            unit_price=unit_price,
        ))
    return CartInput(
        items=items,
        discount_percent=Decimal(discount),
        initial_payment=Decimal(initial_payment),
        payment_method=method,
        **client,
    )


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.username))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, employee.username))
