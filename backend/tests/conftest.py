"""
Pytest fixtures for store ledger tests.

Provides the application on an in-memory database, a per-test table wipe,
two independent tenants and product/customer factories.
"""

import pytest
from storeledger import create_app
from storeledger.extensions import db
from storeledger.models import Store
from storeledger.models.tenancy import PLAN_PREMIUM
from storeledger.services import customer_service, products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_CANCEL_CONFIRMED_ORDERS': False,
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store_a(db_session):
    """Create Store A (first tenant)."""
    store = Store(name="Store A", slug="store-a", phone="+998900000001", plan=PLAN_PREMIUM)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Create Store B (second tenant)."""
    store = Store(name="Store B", slug="store-b", phone="+998900000002", plan=PLAN_PREMIUM)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory creating a product through the catalog service (initial stock is logged)."""
    def _make(store, name="Product", selling_price=10000, stock=10, discount_percent=0, barcode=None):
        return products_service.create_product(store.id, {
            "name": name,
            "barcode": barcode,
            "selling_price": selling_price,
            "discount_percent": discount_percent,
            "stock_quantity": stock,
            "min_stock_alert": 0,
        })
    return _make


@pytest.fixture(scope='function')
def product_a(store_a, make_product):
    """Product in Store A: price 10000, stock 10."""
    return make_product(store_a, name="Product A", barcode="A-001")


@pytest.fixture(scope='function')
def product_b(store_b, make_product):
    """Product in Store B: price 20000, stock 10."""
    return make_product(store_b, name="Product B", selling_price=20000, barcode="B-001")


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(store, name="Customer", phone="+998901112233"):
        return customer_service.create_customer(store.id, name, phone)
    return _make


@pytest.fixture(scope='function')
def headers():
    """Helper to create the tenant headers the upstream auth layer would forward."""
    def _headers(store, actor=None) -> dict:
        result = {'X-Store-Id': str(store.id)}
        if actor:
            result['X-Actor'] = actor
        return result
    return _headers
