# Overview: Service-layer operations for inventory; the only code that writes Product.stock.

"""
Inventory Ledger Invariants (authoritative)

- Product.stock is never negative. Every writer re-reads and validates stock
  under a row lock; the CHECK constraint backs this up in the database.
- Rows are locked in ascending product id order so two transactions that
  touch overlapping products cannot deadlock.
- Locked reads use populate_existing() so a stale identity-map copy is never
  trusted for a stock decision.
- Helpers prefixed with an underscore run inside a caller's transaction and
  never commit; public functions own their transaction.
"""

from __future__ import annotations

from ..errors import InsufficientStock, InvalidAdjustment, InvalidInput, NotFound
from ..extensions import db
from ..models import MAX_STOCK, Product
from ..response import Pagination
from .audit_service import log_audit
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry


def _lock_products(product_ids) -> dict[str, Product]:
    """Lock the given products in stable id order; returns {id: Product}."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = (
        db.session.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id)
        .populate_existing()
    )
    products = lock_for_update(query).all()
    return {product.id: product for product in products}


def _reserve_stock(requested: dict[str, int]) -> dict[str, Product]:
    """
    Validate and decrement stock for {product_id: quantity}.

    All products are checked before any is written; the error names every
    short product so the caller can fix the whole cart at once.
    """
    products = _lock_products(requested.keys())

    missing = sorted(pid for pid in requested if pid not in products)
    if missing:
        raise NotFound("Product not found", details={"product_ids": missing})

    insufficient = []
    for product_id in sorted(requested):
        product = products[product_id]
        quantity = requested[product_id]
        if product.stock < quantity:
            insufficient.append({
                "product_id": product_id,
                "name": product.name,
                "requested": quantity,
                "available": product.stock,
            })

    if insufficient:
        names = ", ".join(item["product_id"] for item in insufficient)
        raise InsufficientStock(
            f"Insufficient stock for product {names}",
            details={"items": insufficient},
        )

    for product_id in sorted(requested):
        products[product_id].stock -= requested[product_id]

    return products


def _restore_stock(returned: dict[str, int]) -> dict[str, Product]:
    """Inverse of _reserve_stock, used when a pending order is cancelled."""
    products = _lock_products(returned.keys())
    for product_id in sorted(returned):
        product = products.get(product_id)
        if product is None:
            raise NotFound("Product not found", details={"product_ids": [product_id]})
        product.stock += returned[product_id]
    return products


def _validate_delta(delta) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput("delta must be an integer")
    if delta == 0:
        raise InvalidInput("delta must not be 0")
    if abs(delta) > MAX_STOCK:
        raise InvalidInput(f"delta must be between -{MAX_STOCK} and {MAX_STOCK}")
    return delta


def adjust_stock(product_id: str, delta, actor_user_id: str | None = None) -> Product:
    """
    Admin stock correction: stock += delta.

    Raises InvalidAdjustment (stock unchanged) if the result would be negative
    or above MAX_STOCK.
    """
    delta = _validate_delta(delta)

    def _op():
        begin_write_transaction()
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id).populate_existing()
        ).first()
        if not product:
            raise NotFound("Product not found")

        new_stock = product.stock + delta
        if new_stock < 0:
            raise InvalidAdjustment(
                "stock cannot be negative",
                details={"product_id": product.id, "stock": product.stock, "delta": delta},
            )
        if new_stock > MAX_STOCK:
            raise InvalidAdjustment(
                f"stock cannot exceed {MAX_STOCK}",
                details={"product_id": product.id, "stock": product.stock, "delta": delta},
            )

        product.stock = new_stock
        db.session.commit()
        return product

    product = run_with_retry(_op)
    log_audit(actor_user_id, "inventory_adjust", "products", {"product_id": product.id, "delta": delta})
    return product


def list_low_stock(threshold: int, pagination: Pagination) -> tuple[list[Product], int]:
    """Products with stock <= threshold, lowest stock first."""
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise InvalidInput("threshold must be a non-negative integer")

    query = db.session.query(Product).filter(Product.stock <= threshold)
    total = query.count()
    items = (
        query.order_by(Product.stock.asc(), Product.created_at.desc())
        .limit(pagination.per_page)
        .offset(pagination.offset)
        .all()
    )
    return items, total
