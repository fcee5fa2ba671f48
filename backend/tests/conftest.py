"""
Pytest fixtures for quitanda backend tests.

Provides an in-memory database, per-test cleanup, a test client and small
factories for products, clients and sale requests.
"""

import pytest

from quitanda import create_app
from quitanda.extensions import db
from quitanda.services import clients_service, products_service
from quitanda.validation import SaleLineRequest, SaleRequest


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SALE_RETRY_ATTEMPTS': 1,
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
def make_product(db_session):
    """Factory: create a product whose opening stock is booked as an ENTRY."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        patch = {
            "name": f"Produto {counter['n']}",
            "price_cents": 1000,
            "quantity": 10,
            "min_quantity": 2,
        }
        patch.update(overrides)
        return products_service.create_product(db_session, patch)

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: create a client, optionally carrying an existing debt."""
    def _make(name="Maria da Silva", credit_limit_cents=10000, current_debt_cents=0, **overrides):
        customer = clients_service.create_client(
            db_session,
            {"name": name, "credit_limit_cents": credit_limit_cents, **overrides},
        )
        if current_debt_cents:
            customer.current_debt_cents = current_debt_cents
            db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def build_sale():
    """Factory: SaleRequest from (product_id, quantity[, discount_cents]) tuples."""
    def _build(items, payment_method="CASH", client_id=None, discount_cents=0, user_id=1):
        lines = tuple(
            SaleLineRequest(
                product_id=line[0],
                quantity=line[1],
                discount_cents=line[2] if len(line) > 2 else 0,
            )
            for line in items
        )
        return SaleRequest(
            user_id=user_id,
            payment_method=payment_method,
            items=lines,
            client_id=client_id,
            discount_cents=discount_cents,
        )

    return _build
