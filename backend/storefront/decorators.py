# Overview: Request authentication and role decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .errors import Forbidden, Unauthorized
from .models import ROLE_ADMIN
from .response import error_response
from .services import token_service


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity (token_service.Identity: user_id, role, expires_at).

    Returns 401 if:
    - No Authorization header or not a Bearer scheme
    - Token malformed, signed with another key, or expired
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            token = token_service.token_from_header(request.headers.get("Authorization"))
            g.identity = token_service.verify_token(token)
        except Unauthorized as e:
            return error_response(e)

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require the authenticated identity to carry one of `roles`.

    Must be applied below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error_response(Unauthorized())

            identity = g.identity
            if identity.role not in roles:
                current_app.logger.info(
                    "role denied: user=%s role=%s path=%s required=%s",
                    identity.user_id, identity.role, request.path, ",".join(roles),
                )
                return error_response(Forbidden(
                    "Permission denied",
                    details={"required_roles": list(roles)},
                ))

            return f(*args, **kwargs)

        return decorated_function
    return decorator


require_admin = require_role(ROLE_ADMIN)
