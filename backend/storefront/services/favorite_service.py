# Overview: Service-layer operations for favorites.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Favorite, Product
from ..response import Pagination
from .audit_service import log_audit
from .cart_service import commit_link_row
from .concurrency import run_with_retry


def list_favorites(user_id: str, pagination: Pagination) -> tuple[list[Product], int]:
    query = (
        db.session.query(Product)
        .join(Favorite, Favorite.product_id == Product.id)
        .filter(Favorite.user_id == user_id)
    )
    total = query.count()
    items = (
        query.order_by(Favorite.created_at.desc(), Favorite.id)
        .limit(pagination.per_page)
        .offset(pagination.offset)
        .all()
    )
    return items, total


def add_favorite(user_id: str, product_id) -> tuple[Favorite, bool]:
    """Returns (favorite, created); an existing favorite is returned as-is."""
    if not isinstance(product_id, str) or not product_id:
        raise InvalidInput("product_id is required")

    def _op():
        if not db.session.query(Product.id).filter_by(id=product_id).first():
            raise NotFound("Product not found")

        favorite = db.session.query(Favorite).filter_by(user_id=user_id, product_id=product_id).first()
        if favorite:
            return favorite, False

        favorite = Favorite(user_id=user_id, product_id=product_id)
        db.session.add(favorite)
        commit_link_row(user_id, product_id)
        return favorite, True

    favorite, created = run_with_retry(_op, retry_on=(IntegrityError,))
    if created:
        log_audit(user_id, "favorite_add", "favorites", {"product_id": product_id})
    return favorite, created


def remove_favorite(user_id: str, product_id: str) -> None:
    def _op():
        deleted = (
            db.session.query(Favorite)
            .filter_by(user_id=user_id, product_id=product_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFound("Favorite not found")
        db.session.commit()

    run_with_retry(_op)
    log_audit(user_id, "favorite_remove", "favorites", {"product_id": product_id})
