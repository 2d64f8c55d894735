# backend/storefront/__init__.py
import os
import uuid

from flask import Flask, g, request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ServiceUnavailable, StorefrontError
from .extensions import db, migrate
from .logging_config import configure_logging
from .response import error_response
from .services.concurrency import RequestLimiter


MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

LIMITER_EXEMPT_PATHS = {"/health"}

HTTP_ERROR_CODES = {
    400: "INVALID_INPUT",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "INVALID_INPUT",
    415: "INVALID_INPUT",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # Cascades on users/products rely on SQLite enforcing foreign keys.
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(app: Flask) -> dict:
    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        connect_args = dict(options.get("connect_args") or {})
        connect_args.setdefault("timeout", float(app.config["SQLITE_BUSY_TIMEOUT_SECONDS"]))
        options["connect_args"] = connect_args
    return options


def _http_error(exc: HTTPException):
    error = StorefrontError(exc.description)
    error.code = HTTP_ERROR_CODES.get(exc.code, "HTTP_ERROR")
    error.http_status = exc.code
    return error_response(error)


def create_app(config_overrides: dict | None = None, config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    if config_overrides:
        app.config.update(config_overrides)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options(app)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    limiter = RequestLimiter(
        int(app.config["MAX_INFLIGHT_REQUESTS"]),
        float(app.config["INFLIGHT_ACQUIRE_TIMEOUT_SECONDS"]),
    )
    app.extensions["request_limiter"] = limiter

    @app.before_request
    def assign_request_id():
        incoming = request.headers.get("X-Request-ID", "").strip()
        g.request_id = incoming[:64] if incoming else uuid.uuid4().hex

    @app.before_request
    def acquire_inflight_slot():
        if request.path in LIMITER_EXEMPT_PATHS:
            return None
        try:
            limiter.acquire()
        except ServiceUnavailable as e:
            app.logger.warning("Concurrency cap reached: %s %s", request.method, request.path)
            return error_response(e)
        g.holds_inflight_slot = True
        return None

    @app.teardown_request
    def release_inflight_slot(exc):
        # Anything the service did not commit is discarded here.
        if exc is not None:
            db.session.rollback()
        if g.pop("holds_inflight_slot", False):
            limiter.release()

    @app.after_request
    def add_response_headers(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id

        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-Request-ID"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,PATCH,OPTIONS"
        return response

    app.register_error_handler(HTTPException, _http_error)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.cart import cart_bp
    from .routes.favorites import favorites_bp
    from .routes.orders import orders_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(favorites_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(admin_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
