# Overview: Service-layer operations for the product catalog.

from __future__ import annotations

from sqlalchemy import func, or_

from ..errors import Conflict, InvalidInput, NotFound
from ..extensions import db
from ..models import MAX_STOCK, OrderItem, Product
from ..response import Pagination
from .audit_service import log_audit
from .concurrency import run_with_retry


SORT_COLUMNS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "name": Product.name,
}

MAX_PRICE = 999_999_999_999


def _non_negative_int(name: str, value, *, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer")
    if value < 0:
        raise InvalidInput(f"{name} must not be negative")
    if maximum is not None and value > maximum:
        raise InvalidInput(f"{name} must not exceed {maximum}")
    return value


def _clean_name(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("name is required")
    if len(value.strip()) > 255:
        raise InvalidInput("name must be at most 255 characters")
    return value.strip()


def _clean_description(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput("description must be a string")
    return value.strip() or None


def list_products(
    pagination: Pagination,
    *,
    q: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> tuple[list[Product], int]:
    query = db.session.query(Product)

    if q:
        pattern = f"%{q.lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(func.coalesce(Product.description, "")).like(pattern),
        ))
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    column = SORT_COLUMNS.get(sort_by or "created_at")
    if column is None:
        raise InvalidInput(f"sort_by must be one of: {', '.join(sorted(SORT_COLUMNS))}")
    sort_order = (sort_order or "desc").lower()
    if sort_order not in ("asc", "desc"):
        raise InvalidInput("sort_order must be 'asc' or 'desc'")

    total = query.count()
    ordering = column.asc() if sort_order == "asc" else column.desc()
    items = (
        query.order_by(ordering, Product.id)
        .limit(pagination.per_page)
        .offset(pagination.offset)
        .all()
    )
    return items, total


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def create_product(data: dict, actor_user_id: str | None = None) -> Product:
    """Initial stock may be set here; afterwards only inventory_service writes it."""
    product = Product(
        name=_clean_name(data.get("name")),
        description=_clean_description(data.get("description")),
        price=_non_negative_int("price", data.get("price"), maximum=MAX_PRICE),
        stock=_non_negative_int("stock", data.get("stock", 0), maximum=MAX_STOCK),
    )

    def _op():
        db.session.add(product)
        db.session.commit()
        return product

    product = run_with_retry(_op)
    log_audit(actor_user_id, "product_create", "products", {"product_id": product.id})
    return product


def update_product(product_id: str, data: dict, actor_user_id: str | None = None) -> Product:
    """
    Partial update of name/description/price.

    Price changes never reach existing order items; those carry their own
    snapshot.
    """
    if "stock" in data:
        raise InvalidInput(
            "stock cannot be set directly; use PATCH /api/admin/products/<id>/stock",
        )
    unknown = set(data) - {"name", "description", "price"}
    if unknown:
        raise InvalidInput(f"Unknown fields: {', '.join(sorted(unknown))}")

    patch = {}
    if "name" in data:
        patch["name"] = _clean_name(data["name"])
    if "description" in data:
        patch["description"] = _clean_description(data["description"])
    if "price" in data:
        patch["price"] = _non_negative_int("price", data["price"], maximum=MAX_PRICE)

    def _op():
        product = db.session.get(Product, product_id, populate_existing=True)
        if not product:
            raise NotFound("Product not found")
        for key, value in patch.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    product = run_with_retry(_op)
    log_audit(actor_user_id, "product_update", "products", {"product_id": product.id, "fields": sorted(patch)})
    return product


def delete_product(product_id: str, actor_user_id: str | None = None) -> None:
    """Cart lines and favorites cascade; products with order history stay."""
    def _op():
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFound("Product not found")
        if db.session.query(OrderItem.id).filter_by(product_id=product_id).first():
            raise Conflict(
                "Product has order history and cannot be deleted",
                details={"product_id": product_id},
            )
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)
    log_audit(actor_user_id, "product_delete", "products", {"product_id": product_id})
