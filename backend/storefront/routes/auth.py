# Overview: Flask API routes for registration and login; parses input and returns JSON responses.

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..errors import NotFound, StorefrontError
from ..extensions import db
from ..models import User
from ..response import error_response, internal_error, json_body, success
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create a customer account.

    Admin accounts are created with the CLI: flask users create --role admin
    """
    try:
        data = json_body()
        user = auth_service.register_user(data.get("email"), data.get("password"))
        return success("User created", user.to_dict(), status=201)

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return internal_error()


@auth_bp.post("/login")
def login_route():
    """Exchange email + password for a bearer token."""
    try:
        data = json_body()
        result = auth_service.login(data.get("email"), data.get("password"))
        return success("Logged in", result)

    except StorefrontError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return internal_error()


@auth_bp.get("/me")
@require_auth
def me_route():
    user = db.session.get(User, g.identity.user_id)
    if not user:
        return error_response(NotFound("User not found"))
    return success("OK", user.to_dict())
