"""
Pytest fixtures for the workshop backend tests.

Provides the app on an in-memory database, a per-test clean database,
users of each role, a stocked part and bearer-token headers.
"""

from datetime import date, timedelta

import pytest
from autoshop import create_app
from autoshop.config import TestConfig
from autoshop.extensions import db
from autoshop.models import Part, User, Vehicle
from autoshop.services import session_service
from autoshop.services.auth_service import hash_password


PASSWORD = "Password123"


def future_weekday(days_ahead: int = 7) -> date:
    """First Monday-Friday on or after today + days_ahead."""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def future_weekend_day(days_ahead: int = 7) -> date:
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() != 5:
        day += timedelta(days=1)
    return day


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


def _make_user(session, email, role, password_hash, first_name="Test"):
    user = User(
        email=email,
        first_name=first_name,
        last_name=role.capitalize(),
        role=role,
        password_hash=password_hash,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def client_user(db_session, password_hash):
    return _make_user(db_session, "client@example.com", "client", password_hash, first_name="Ion")


@pytest.fixture(scope='function')
def other_client(db_session, password_hash):
    return _make_user(db_session, "other@example.com", "client", password_hash, first_name="Maria")


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user(db_session, "admin@example.com", "admin", password_hash)


@pytest.fixture(scope='function')
def manager_user(db_session, password_hash):
    return _make_user(db_session, "manager@example.com", "manager", password_hash)


@pytest.fixture(scope='function')
def vehicle(db_session, client_user):
    vehicle = Vehicle(
        user_id=client_user.id,
        vehicle_type="car",
        brand="Dacia",
        model="Logan",
        year=2018,
    )
    db_session.add(vehicle)
    db_session.commit()
    return vehicle


@pytest.fixture(scope='function')
def brake_pads(db_session):
    """Part with stock 10, price 20.00, minimum level 5."""
    part = Part(
        name="Brake pad set",
        part_number="BP-100",
        category="Brakes",
        price_cents=2000,
        stock_quantity=10,
        minimum_stock_level=5,
    )
    db_session.add(part)
    db_session.commit()
    return part


@pytest.fixture(scope='function')
def oil_filter(db_session):
    part = Part(
        name="Oil filter",
        part_number="OF-200",
        category="Engine",
        price_cents=1550,
        stock_quantity=6,
        minimum_stock_level=2,
    )
    db_session.add(part)
    db_session.commit()
    return part


def _auth_headers(user) -> dict:
    """Issue a session token for `user` and build the Authorization header."""
    _, token = session_service.create_session(user_id=user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def client_headers(client_user):
    return _auth_headers(client_user)


@pytest.fixture(scope='function')
def other_client_headers(other_client):
    return _auth_headers(other_client)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return _auth_headers(manager_user)


@pytest.fixture(scope='function')
def booking_day():
    return future_weekday()


@pytest.fixture(scope='function')
def weekend_day():
    return future_weekend_day()
