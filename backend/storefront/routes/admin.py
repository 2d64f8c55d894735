# Overview: Flask API routes for admin order oversight and inventory control.

# backend/storefront/routes/admin.py
"""
Admin API routes

All routes require an authenticated identity with role "admin":
- Order listing and lookup across all users
- Order status changes validated by the order state machine
- Stock adjustments and low-stock report
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth
from ..errors import InvalidInput, StorefrontError
from ..response import error_response, internal_error, json_body, pagination_from_request, success
from ..services import inventory_service, order_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.get("/orders")
@require_auth
@require_admin
def list_all_orders_route():
    try:
        pagination = pagination_from_request()
        orders, total = order_service.list_all_orders(
            pagination,
            status=request.args.get("status"),
            sort_order=request.args.get("sort_order"),
        )
        return success("Orders", {"items": [o.to_dict() for o in orders]}, pagination.meta(total))

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return internal_error()


@admin_bp.get("/orders/<order_id>")
@require_auth
@require_admin
def get_order_admin_route(order_id: str):
    try:
        order = order_service.get_order(order_id, g.identity)
        return success("Order found", order.to_dict_with_items())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return internal_error()


@admin_bp.patch("/orders/<order_id>/status")
@require_auth
@require_admin
def update_order_status_route(order_id: str):
    """
    Request body: {"status": "cancelled"}

    Cancelling a pending order returns its stock.
    """
    try:
        data = json_body()
        status = data.get("status")
        if not isinstance(status, str) or not status:
            raise InvalidInput("status is required")

        order = order_service.set_status(order_id, status, actor_user_id=g.identity.user_id)
        return success("Order updated", order.to_dict())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return internal_error()


# =============================================================================
# INVENTORY
# =============================================================================

@admin_bp.patch("/products/<product_id>/stock")
@require_auth
@require_admin
def adjust_stock_route(product_id: str):
    """
    Request body: {"delta": -3}

    Returns 409 INVALID_ADJUSTMENT (stock unchanged) if stock would go negative.
    """
    try:
        data = json_body()
        product = inventory_service.adjust_stock(product_id, data.get("delta"), actor_user_id=g.identity.user_id)
        return success("Inventory updated", product.to_dict())

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return internal_error()


@admin_bp.get("/inventory/low-stock")
@require_auth
@require_admin
def low_stock_route():
    """Query params: threshold (default LOW_STOCK_THRESHOLD), page, per_page"""
    try:
        raw = request.args.get("threshold")
        if raw is None or raw == "":
            threshold = current_app.config["LOW_STOCK_THRESHOLD"]
        else:
            try:
                threshold = int(raw)
            except ValueError:
                raise InvalidInput("threshold must be an integer")

        pagination = pagination_from_request()
        items, total = inventory_service.list_low_stock(threshold, pagination)
        return success("Low stock", {"items": [p.to_dict() for p in items]}, pagination.meta(total))

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list low stock")
        return internal_error()
