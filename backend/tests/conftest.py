"""
Pytest fixtures for FarmSync backend tests.

Provides an in-memory entity store, a per-test wipe, a test client and
batch builders.
"""

import pytest
from sqlalchemy.pool import StaticPool

from farmsync import create_app
from farmsync.extensions import db


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        },
        'SYNC_TIMEOUT_SECONDS': 30,
        'SYNC_RETRY_ATTEMPTS': 3,
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


def make_product(name="Maize", **overrides) -> dict:
    product = {
        "name": name,
        "orderPrice": 10,
        "sellingPrice": 15,
        "reserveStock": 5,
        "marketStock": 20,
    }
    product.update(overrides)
    return product


def make_loan(loan_id="loan-1", **overrides) -> dict:
    loan = {
        "id": loan_id,
        "fullName": "Jane Wanjiru",
        "phoneNumber": "+254700000001",
        "nationalId": "12345678",
        "dateTaken": "2026-03-01T08:00:00.000Z",
        "datePaid": None,
        "totalAmount": 1500.5,
        "status": "pending",
        "products": [{"name": "Maize", "quantity": 2, "price": 750.25}],
        "reminders": [],
        "reminderSent": False,
        "lastReminderDate": None,
    }
    loan.update(overrides)
    return loan


def make_transaction(**overrides) -> dict:
    txn = {
        "date": "2026-03-01T10:00:00.000Z",
        "productId": "p-1",
        "productName": "Maize",
        "quantity": 3,
        "orderPrice": 10,
        "sellingPrice": 15,
        "profit": 15,
    }
    txn.update(overrides)
    return txn
