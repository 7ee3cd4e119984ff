"""
Pytest fixtures for shopledger backend tests.

Provides an in-memory database, two tenants for isolation tests, a product
factory that books initial stock through the ledger, and a test client.
"""

import pytest
from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Tenant, Product, InventoryMovement
from shopledger.models.inventory import MOVEMENT_IN
from shopledger.services import inventory_service
from shopledger.decorators import TENANT_HEADER, USER_HEADER


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'AUDIT_SINK': 'database',
    'AUDIT_ASYNC': False,
    'TX_RETRY_BACKOFF': 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
def tenant_a(db_session):
    """Create Tenant A (first tenant)."""
    tenant = Tenant(name="Acme Shop", slug="acme", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second tenant)."""
    tenant = Tenant(name="Beta Store", slug="beta", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def inactive_tenant(db_session):
    tenant = Tenant(name="Closed Shop", slug="closed", is_active=False)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: create a product at stock 0, then book the requested stock as an
    IN movement so stock and ledger agree from the start.
    """
    counter = {"n": 0}

    def _make(tenant, *, stock=0, price_cents=999, is_active=True, sku=None):
        counter["n"] += 1
        product = Product(
            tenant_id=tenant.id,
            sku=sku or f"SKU-{counter['n']:03d}",
            name=f"Product {counter['n']}",
            price_cents=price_cents,
            stock=0,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        if stock:
            inventory_service.create_movement(
                tenant_id=tenant.id,
                product_id=product.id,
                movement_type=MOVEMENT_IN,
                quantity=stock,
                comment="Initial stock",
            )
        return product

    return _make


@pytest.fixture(scope='function')
def product_a(make_product, tenant_a):
    """Product in Tenant A with 10 units at 9.99."""
    return make_product(tenant_a, stock=10, price_cents=999)


@pytest.fixture(scope='function')
def product_b(make_product, tenant_b):
    """Product in Tenant B with 5 units."""
    return make_product(tenant_b, stock=5, price_cents=2000)


def stock_of(product_id: int) -> int:
    """Read stock straight from the table, bypassing the identity map."""
    return db.session.query(Product.stock).filter(Product.id == product_id).scalar()


def movements_of(product_id: int) -> list:
    return (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.id)
        .all()
    )


def identity_headers(tenant_id: int, user_id: int | None = None) -> dict:
    """Headers the upstream gateway forwards after authentication."""
    headers = {TENANT_HEADER: str(tenant_id)}
    if user_id is not None:
        headers[USER_HEADER] = str(user_id)
    return headers
