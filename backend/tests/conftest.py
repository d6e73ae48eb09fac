"""
Pytest fixtures for storefront backend tests.

Provides test database setup, users with each role, catalog rows, auth
contexts for service calls and auth headers for the test client.
"""

from decimal import Decimal

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import Product, Warehouse
from storefront.services.auth_service import create_user
from storefront.services.permission_service import build_auth_context
from storefront.services.session_service import create_session


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE': Decimal("1.0"),
        'DEBIT_STOCK_ON_ORDER': False,
        'LOG_LEVEL': 'WARNING',
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

        app.config['DEBIT_STOCK_ON_ORDER'] = False

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(session, email, role):
    return create_user(
        session,
        email=email,
        password=TEST_PASSWORD,
        role=role,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        bcrypt_rounds=4,
    )


@pytest.fixture(scope='function')
def shopper(db_session):
    return _make_user(db_session, "shopper@example.com", "USER")


@pytest.fixture(scope='function')
def other_shopper(db_session):
    return _make_user(db_session, "other@example.com", "USER")


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin@example.com", "ADMIN")


@pytest.fixture(scope='function')
def shopper_ctx(shopper):
    return build_auth_context(shopper)


@pytest.fixture(scope='function')
def other_ctx(other_shopper):
    return build_auth_context(other_shopper)


@pytest.fixture(scope='function')
def admin_ctx(admin):
    return build_auth_context(admin)


@pytest.fixture(scope='function')
def warehouse(app, db_session):
    """Fulfillment warehouse; also wired in as the configured default."""
    wh = Warehouse(code="MAIN", name="Main Warehouse", is_active=True)
    db_session.add(wh)
    db_session.commit()
    app.config['DEFAULT_WAREHOUSE_ID'] = wh.id
    return wh


@pytest.fixture(scope='function')
def second_warehouse(db_session):
    wh = Warehouse(code="EAST", name="East Warehouse", is_active=True)
    db_session.add(wh)
    db_session.commit()
    return wh


@pytest.fixture(scope='function')
def product_a(db_session):
    """$10.00 product."""
    product = Product(sku="PROD-A-001", name="Product A", price_cents=1000, is_active=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session):
    """$5.00 product."""
    product = Product(sku="PROD-B-001", name="Product B", price_cents=500, is_active=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def inactive_product(db_session):
    product = Product(sku="PROD-OFF-001", name="Retired Product", price_cents=700, is_active=False)
    db_session.add(product)
    db_session.commit()
    return product


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def _headers_for(session, user) -> dict:
    _, token = create_session(session, user, user_agent="pytest", ip_address="127.0.0.1")
    return auth_headers(token)


@pytest.fixture(scope='function')
def shopper_headers(db_session, shopper):
    return _headers_for(db_session, shopper)


@pytest.fixture(scope='function')
def other_headers(db_session, other_shopper):
    return _headers_for(db_session, other_shopper)


@pytest.fixture(scope='function')
def admin_headers(db_session, admin):
    return _headers_for(db_session, admin)
