"""
Concurrency tests against a file-backed SQLite database.

Each worker thread runs in its own app context (and therefore its own
session and connection), the way concurrent requests do in production.
"""

import threading

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.errors import EmptyCart, InsufficientStock, InvalidAdjustment, StorefrontError
from storefront.extensions import db
from storefront.models import CartItem, Order, Product, User
from storefront.services import cart_service, inventory_service, order_service
from storefront.services.auth_service import hash_password


@pytest.fixture
def file_app(tmp_path):
    app = create_app(
        {'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'storefront.sqlite3'}"},
        config_object=TestingConfig,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _seed(app, *, users: int, stock: int):
    with app.app_context():
        product = Product(name="Last unit", price=1500, stock=stock)
        db.session.add(product)
        users_created = []
        for i in range(users):
            user = User(email=f"buyer{i}@example.com", password_hash=hash_password("Password123!"))
            db.session.add(user)
            users_created.append(user)
        db.session.commit()
        return product.id, [u.id for u in users_created]


def _run_concurrently(app, fn, args_list):
    """Start every call at once; collect (result, error) per call."""
    barrier = threading.Barrier(len(args_list))
    results = [None] * len(args_list)

    def worker(index, args):
        with app.app_context():
            barrier.wait()
            try:
                results[index] = (fn(*args), None)
            except StorefrontError as exc:
                results[index] = (None, exc)

    threads = [threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(args_list)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


def test_last_unit_sold_once(file_app):
    product_id, user_ids = _seed(file_app, users=2, stock=1)
    with file_app.app_context():
        for user_id in user_ids:
            cart_service.add_to_cart(user_id, product_id, 1)

    results = _run_concurrently(
        file_app,
        lambda user_id: order_service.checkout(user_id).id,
        [(user_id,) for user_id in user_ids],
    )

    successes = [r for r, e in results if e is None]
    failures = [e for r, e in results if e is not None]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStock)

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == 0
        assert db.session.query(Order).count() == 1


def test_parallel_checkouts_never_oversell(file_app):
    product_id, user_ids = _seed(file_app, users=6, stock=4)
    with file_app.app_context():
        for user_id in user_ids:
            cart_service.add_to_cart(user_id, product_id, 1)

    results = _run_concurrently(
        file_app,
        lambda user_id: order_service.checkout(user_id).id,
        [(user_id,) for user_id in user_ids],
    )

    assert sum(1 for r, e in results if e is None) == 4
    assert all(isinstance(e, InsufficientStock) for r, e in results if e is not None)
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == 0


def test_same_cart_checked_out_once(file_app):
    product_id, (user_id,) = _seed(file_app, users=1, stock=10)
    with file_app.app_context():
        cart_service.add_to_cart(user_id, product_id, 2)

    results = _run_concurrently(
        file_app,
        lambda uid: order_service.checkout(uid).id,
        [(user_id,), (user_id,), (user_id,)],
    )

    assert sum(1 for r, e in results if e is None) == 1
    assert all(isinstance(e, EmptyCart) for r, e in results if e is not None)
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == 8
        assert db.session.query(CartItem).count() == 0


def test_concurrent_adjustments_stay_non_negative(file_app):
    product_id, _ = _seed(file_app, users=0, stock=5)

    results = _run_concurrently(
        file_app,
        lambda pid: inventory_service.adjust_stock(pid, -2).stock,
        [(product_id,)] * 4,
    )

    assert sum(1 for r, e in results if e is None) == 2
    assert all(isinstance(e, InvalidAdjustment) for r, e in results if e is not None)
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock == 1
