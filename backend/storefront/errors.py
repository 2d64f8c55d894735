# Overview: Domain error taxonomy; every error carries a stable code and HTTP status.

"""
Storefront error hierarchy.

Services raise these; routes render them through response.error_response().
Ownership failures are reported as NotFound so callers cannot probe for
other users' orders or cart lines.
"""


class StorefrontError(Exception):
    """Base class for errors that map to a client-visible response."""
    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}


class Unauthorized(StorefrontError):
    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "Authentication required"


class Forbidden(StorefrontError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Forbidden"


class NotFound(StorefrontError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"


class InvalidInput(StorefrontError):
    code = "INVALID_INPUT"
    http_status = 400
    default_message = "Invalid input"


class InvalidQuantity(InvalidInput):
    code = "INVALID_QUANTITY"
    default_message = "quantity must be an integer greater than 0"


class EmptyCart(StorefrontError):
    code = "EMPTY_CART"
    http_status = 400
    default_message = "Cart is empty"


class InsufficientStock(StorefrontError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409
    default_message = "Insufficient stock"


class InvalidTransition(StorefrontError):
    code = "INVALID_TRANSITION"
    http_status = 409
    default_message = "Invalid order status transition"


class InvalidAdjustment(StorefrontError):
    code = "INVALID_ADJUSTMENT"
    http_status = 409
    default_message = "Stock cannot be negative"


class AlreadyExists(StorefrontError):
    code = "ALREADY_EXISTS"
    http_status = 409
    default_message = "Already exists"


class Conflict(StorefrontError):
    """Lock timeout, deadlock, or concurrent modification that outlived retries."""
    code = "CONFLICT"
    http_status = 409
    default_message = "Concurrent modification, please retry"


class ServiceUnavailable(StorefrontError):
    code = "SERVICE_UNAVAILABLE"
    http_status = 503
    default_message = "Server is busy, please retry"


class InternalError(StorefrontError):
    pass
