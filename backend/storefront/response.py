# Overview: Response envelope and pagination helpers shared by all blueprints.

from __future__ import annotations

from dataclasses import dataclass

from flask import g, jsonify, request

from .errors import InvalidInput, StorefrontError, InternalError


DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class Pagination:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def meta(self, total: int) -> dict:
        return {"page": self.page, "per_page": self.per_page, "total": total}


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def pagination_from_request() -> Pagination:
    """page defaults to 1, per_page to 20 and is clamped to 1..100."""
    page = max(_int_arg("page", 1), 1)
    per_page = min(max(_int_arg("per_page", DEFAULT_PER_PAGE), 1), MAX_PER_PAGE)
    return Pagination(page=page, per_page=per_page)


def success(message: str, data=None, meta: dict | None = None, status: int = 200):
    return jsonify({"message": message, "data": data, "meta": meta}), status


def error_response(exc: StorefrontError):
    body = {
        "message": exc.message,
        "data": None,
        "error": {"code": exc.code, "details": exc.details},
        "request_id": getattr(g, "request_id", None),
    }
    return jsonify(body), exc.http_status


def internal_error():
    return error_response(InternalError())
