"""
Pytest fixtures for rxledger backend tests.

Provides test database setup, tenant-scoped products, actors, and a test client.
"""

import pytest
from rxledger import create_app
from rxledger.extensions import db
from rxledger.models import Product
from rxledger.permissions import Actor, Role


TENANT_A = 1
TENANT_B = 2
OWNER_ID = 10
ATTENDANT_ID = 20


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 2,
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


@pytest.fixture
def make_product(db_session):
    """Factory for products with a given stock position."""
    def _make(
        *,
        name="Paracetamol 500mg",
        tenant_id=TENANT_A,
        unit_type="Tablets",
        units_per_pack=10,
        full_packs=2,
        loose_units=3,
        price_per_pack_cents=1000,
        status="active",
        min_stock_level=10,
        max_stock_level=100,
    ):
        product = Product(
            tenant_id=tenant_id,
            name=name,
            status=status,
            unit_type=unit_type,
            cost_per_pack_cents=0,
            selling_price_per_pack_cents=price_per_pack_cents,
            units_per_pack=units_per_pack,
            full_packs=full_packs,
            loose_units=loose_units,
            min_stock_level=min_stock_level,
            max_stock_level=max_stock_level,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def tablets(make_product):
    """10 tablets per pack, 2 packs + 3 loose = 23 units."""
    return make_product()


@pytest.fixture
def syrup(make_product):
    """Whole-unit bottles, one per pack."""
    return make_product(
        name="Cough Syrup 100ml",
        unit_type="Bottles",
        units_per_pack=1,
        full_packs=5,
        loose_units=0,
        price_per_pack_cents=450,
    )


@pytest.fixture
def owner():
    return Actor(id=OWNER_ID, role=Role.PHARMACY_OWNER, tenant_id=TENANT_A)


@pytest.fixture
def attendant():
    return Actor(id=ATTENDANT_ID, role=Role.ATTENDANT, tenant_id=TENANT_A)


def actor_headers(actor: Actor) -> dict:
    """Headers the identity gateway forwards for an authenticated actor."""
    return {
        'X-Actor-Id': str(actor.id),
        'X-Actor-Role': actor.role,
        'X-Tenant-Id': str(actor.tenant_id),
        'X-Actor-Override-Stock': 'true' if actor.override_stock else 'false',
    }
