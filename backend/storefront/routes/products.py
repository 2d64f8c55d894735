# Overview: Flask API routes for the product catalog; public reads, admin writes.

from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth
from ..errors import InvalidInput, StorefrontError
from ..response import error_response, internal_error, json_body, pagination_from_request, success
from ..services import product_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _optional_int_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer")


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params: q, min_price, max_price, sort_by (created_at|price|name),
    sort_order (asc|desc), page, per_page
    """
    try:
        pagination = pagination_from_request()
        items, total = product_service.list_products(
            pagination,
            q=request.args.get("q"),
            min_price=_optional_int_arg("min_price"),
            max_price=_optional_int_arg("max_price"),
            sort_by=request.args.get("sort_by"),
            sort_order=request.args.get("sort_order"),
        )
        return success("Products", {"items": [p.to_dict() for p in items]}, pagination.meta(total))

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return internal_error()


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = product_service.get_product(product_id)
        return success("Product", product.to_dict())
    except StorefrontError as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    try:
        product = product_service.create_product(json_body(), actor_user_id=g.identity.user_id)
        return success("Product created", product.to_dict(), status=201)

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error()


@products_bp.patch("/<product_id>")
@require_auth
@require_admin
def update_product_route(product_id: str):
    """Updates name/description/price. Stock goes through the admin stock endpoint."""
    try:
        product = product_service.update_product(product_id, json_body(), actor_user_id=g.identity.user_id)
        return success("Updated", product.to_dict())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error()


@products_bp.delete("/<product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: str):
    try:
        product_service.delete_product(product_id, actor_user_id=g.identity.user_id)
        return success("Deleted", {})

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return internal_error()
