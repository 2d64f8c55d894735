# backend/storefront/routes/system.py
"""Health endpoint; exempt from the inbound concurrency cap."""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..response import success
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health_route():
    database = check_database_health()
    status = "ok" if database["status"] == "healthy" else "degraded"
    data = {
        "status": status,
        "time": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return success("Health check", data, status=200 if status == "ok" else 503)
