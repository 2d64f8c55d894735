"""
Pytest fixtures for storefront backend tests.

Provides an in-memory SQLite app with a frozen clock, a clean database per
test, user/admin/product factories and bearer-token helpers.
"""

from datetime import datetime

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.extensions import db
from storefront.models import Product, User, ROLE_ADMIN, ROLE_CUSTOMER
from storefront.services import token_service
from storefront.services.auth_service import hash_password
from storefront.time_utils import FrozenClock


DEFAULT_PASSWORD = "Password123!"
CLOCK_START = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture(scope='function')
def clock():
    return FrozenClock(CLOCK_START)


@pytest.fixture(scope='function')
def app(clock):
    """Create application for testing."""
    app = create_app({"CLOCK": clock}, config_object=TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Database session for the test; the schema is fresh per app."""
    yield db.session
    db.session.rollback()


def make_user(session, email: str, role: str = ROLE_CUSTOMER, password: str = DEFAULT_PASSWORD) -> User:
    user = User(email=email, password_hash=hash_password(password), role=role)
    session.add(user)
    session.commit()
    return user


def make_product(session, name: str = "Widget", price: int = 1000, stock: int = 10, description=None) -> Product:
    product = Product(name=name, description=description, price=price, stock=stock)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    return make_user(db_session, "alice@example.com")


@pytest.fixture(scope='function')
def other_customer(db_session):
    return make_user(db_session, "bob@example.com")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, "admin@example.com", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def product_factory(db_session):
    def _factory(**kwargs):
        return make_product(db_session, **kwargs)
    return _factory


@pytest.fixture(scope='function')
def product(product_factory):
    return product_factory(name="Product A", price=1000, stock=10)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(user: User) -> str:
    token, _ = token_service.issue_token(user)
    return token


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(token_for(customer))


@pytest.fixture(scope='function')
def other_headers(other_customer):
    return auth_headers(token_for(other_customer))


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_for(admin))


def add_to_cart(client, headers, product_id: str, quantity: int = 1):
    return client.post('/api/cart', json={'product_id': product_id, 'quantity': quantity}, headers=headers)


def checkout(client, headers):
    return client.post('/api/orders/checkout', headers=headers)
