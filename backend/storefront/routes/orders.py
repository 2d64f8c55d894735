# Overview: Flask API routes for checkout, payment and the current user's orders.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import StorefrontError
from ..response import error_response, internal_error, pagination_from_request, success
from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Query params: status, sort_order (asc|desc, default desc), page, per_page"""
    try:
        pagination = pagination_from_request()
        orders, total = order_service.list_orders(
            g.identity.user_id,
            pagination,
            status=request.args.get("status"),
            sort_order=request.args.get("sort_order"),
        )
        return success("OK", {"items": [o.to_dict() for o in orders]}, pagination.meta(total))

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return internal_error()


@orders_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Convert the cart into a pending order.

    Returns:
        201: order with items
        400: EMPTY_CART
        409: INSUFFICIENT_STOCK (details.items names every short product) or CONFLICT
    """
    try:
        order = order_service.checkout(g.identity.user_id)
        return success("Checkout success", order.to_dict_with_items(), status=201)

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to checkout")
        return internal_error()


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id, g.identity)
        return success("OK", order.to_dict_with_items())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return internal_error()


@orders_bp.post("/<order_id>/pay")
@require_auth
def pay_order_route(order_id: str):
    """Record payment. Calling it again on a paid order returns the same order."""
    try:
        order = order_service.pay_order(order_id, g.identity)
        return success("Payment recorded", order.to_dict_with_items())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to pay order")
        return internal_error()
