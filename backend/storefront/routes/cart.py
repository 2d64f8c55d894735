# Overview: Flask API routes for the current user's cart.

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..errors import StorefrontError
from ..response import error_response, internal_error, json_body, pagination_from_request, success
from ..services import cart_service


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def list_cart_route():
    """Cart lines with a product snapshot; stock is not validated here."""
    try:
        pagination = pagination_from_request()
        items, total = cart_service.list_cart(g.identity.user_id, pagination)
        return success(
            "OK",
            {"items": [item.to_dict_with_product() for item in items]},
            pagination.meta(total),
        )

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cart")
        return internal_error()


@cart_bp.post("")
@require_auth
def add_to_cart_route():
    """
    Set the quantity of a product in the cart.

    Request body: {"product_id": "<uuid>", "quantity": 2}
    Repeating the call with another quantity replaces it.
    """
    try:
        data = json_body()
        item = cart_service.add_to_cart(g.identity.user_id, data.get("product_id"), data.get("quantity"))
        return success("OK", item.to_dict())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return internal_error()


@cart_bp.delete("/<product_id>")
@require_auth
def remove_from_cart_route(product_id: str):
    try:
        cart_service.remove_from_cart(g.identity.user_id, product_id)
        return success("Removed from cart", {})

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return internal_error()
