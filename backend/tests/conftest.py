"""
Pytest fixtures for cash ledger backend tests.

Provides the test app on in-memory SQLite, a wiped database per test, and
branch/sector/order/register fixtures.
"""

from decimal import Decimal

import pytest
from cashledger import create_app
from cashledger.extensions import db
from cashledger.models import Branch, Sector, Order
from cashledger.services import cash_session_service, register_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def branch(db_session):
    branch = Branch(name="Centro")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def other_branch(db_session):
    branch = Branch(name="Palermo")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def sector(db_session, branch):
    sector = Sector(branch_id=branch.id, name="Terraza", color="#22aa55")
    db_session.add(sector)
    db_session.commit()
    return sector


@pytest.fixture(scope='function')
def order(db_session, branch):
    order = Order(branch_id=branch.id, public_code="A-0001", order_type="DINE_IN")
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture(scope='function')
def register(db_session, branch):
    return register_service.create_register("Caja 1", branch.id)


@pytest.fixture(scope='function')
def open_session(register):
    """An OPEN session on `register` with a 100.00 float."""
    return cash_session_service.open_session(register.id, Decimal("100.00"), "cashier-1")
