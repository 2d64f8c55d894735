# Overview: Service-layer operations for the shopping cart.

"""
Cart Service

Cart lines are advisory: nothing is reserved until checkout, which re-reads
stock under row locks. add_to_cart replaces the quantity rather than adding
to it so a retried request leaves the cart in the same state.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import InvalidInput, InvalidQuantity, NotFound
from ..extensions import db
from ..models import MAX_STOCK, CartItem, Product, User
from ..response import Pagination
from .audit_service import log_audit
from .concurrency import lock_for_update, run_with_retry


def validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity()
    if quantity > MAX_STOCK:
        raise InvalidQuantity(f"quantity must not exceed {MAX_STOCK}")
    return quantity


def ensure_user_and_product(user_id: str, product_id: str) -> None:
    """Raise NotFound if either side of a user/product link row is gone."""
    if not db.session.query(User.id).filter_by(id=user_id).first():
        raise NotFound("User not found")
    if not db.session.query(Product.id).filter_by(id=product_id).first():
        raise NotFound("Product not found")


def commit_link_row(user_id: str, product_id: str) -> None:
    """
    Commit a new user/product row.

    A foreign key failure means the user or product was deleted underneath
    us and becomes NotFound. Anything else is the unique race and is
    re-raised for run_with_retry.
    """
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        ensure_user_and_product(user_id, product_id)
        raise


def list_cart(user_id: str, pagination: Pagination) -> tuple[list[CartItem], int]:
    query = db.session.query(CartItem).filter(CartItem.user_id == user_id)
    total = query.count()
    items = (
        query.options(joinedload(CartItem.product))
        .order_by(CartItem.created_at.desc(), CartItem.id)
        .limit(pagination.per_page)
        .offset(pagination.offset)
        .all()
    )
    return items, total


def get_cart_lines(user_id: str, *, lock: bool = False) -> list[CartItem]:
    """
    Every line for the user in product id order.

    With lock=True the lines are re-read and held FOR UPDATE, so a second
    checkout of the same cart waits and then finds it empty.
    """
    query = (
        db.session.query(CartItem)
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.product_id)
    )
    if lock:
        query = lock_for_update(query.populate_existing())
    return query.all()


def add_to_cart(user_id: str, product_id, quantity) -> CartItem:
    """
    Upsert a cart line with replace semantics.

    Raises InvalidQuantity before touching the database, NotFound if the
    product or user does not exist. A concurrent insert of the same line
    trips the unique constraint and is retried as an update.
    """
    quantity = validate_quantity(quantity)
    if not isinstance(product_id, str) or not product_id:
        raise InvalidInput("product_id is required")

    def _op():
        product = db.session.query(Product.id).filter_by(id=product_id).first()
        if not product:
            raise NotFound("Product not found")

        item = db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
        if item:
            item.quantity = quantity
        else:
            item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            db.session.add(item)

        commit_link_row(user_id, product_id)
        return item

    item = run_with_retry(_op, retry_on=(IntegrityError,))
    log_audit(user_id, "cart_update", "cart_items", {"product_id": product_id, "quantity": quantity})
    return item


def remove_from_cart(user_id: str, product_id: str) -> None:
    """Raises NotFound when there is no such line, including on a repeat call."""
    def _op():
        deleted = (
            db.session.query(CartItem)
            .filter_by(user_id=user_id, product_id=product_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFound("Cart item not found")
        db.session.commit()

    run_with_retry(_op)
    log_audit(user_id, "cart_remove", "cart_items", {"product_id": product_id})


def clear_cart(user_id: str) -> int:
    """Delete every line for the user inside the caller's transaction."""
    return (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .delete(synchronize_session=False)
    )
