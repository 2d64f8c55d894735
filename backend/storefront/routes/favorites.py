# Overview: Flask API routes for the current user's favorites.

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..errors import StorefrontError
from ..response import error_response, internal_error, json_body, pagination_from_request, success
from ..services import favorite_service


favorites_bp = Blueprint("favorites", __name__, url_prefix="/api/favorites")


@favorites_bp.get("")
@require_auth
def list_favorites_route():
    try:
        pagination = pagination_from_request()
        items, total = favorite_service.list_favorites(g.identity.user_id, pagination)
        return success("OK", {"items": [p.to_dict() for p in items]}, pagination.meta(total))

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list favorites")
        return internal_error()


@favorites_bp.post("")
@require_auth
def add_favorite_route():
    try:
        data = json_body()
        favorite, created = favorite_service.add_favorite(g.identity.user_id, data.get("product_id"))
        return success("Added to favorites", favorite.to_dict(), status=201 if created else 200)

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add favorite")
        return internal_error()


@favorites_bp.delete("/<product_id>")
@require_auth
def remove_favorite_route(product_id: str):
    try:
        favorite_service.remove_favorite(g.identity.user_id, product_id)
        return success("Removed from favorites", {})

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove favorite")
        return internal_error()
