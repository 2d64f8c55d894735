# backend/storefront/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return float(value)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # PostgreSQL in production; local SQLite file by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///storefront.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Access tokens (HS256 JWT)
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_HOURS = _env_int("JWT_EXPIRES_HOURS", 24)

    # bcrypt cost factor
    BCRYPT_LOG_ROUNDS = _env_int("BCRYPT_LOG_ROUNDS", 12)

    # Inbound concurrency cap; protects the connection pool
    MAX_INFLIGHT_REQUESTS = _env_int("MAX_INFLIGHT_REQUESTS", 64)
    INFLIGHT_ACQUIRE_TIMEOUT_SECONDS = _env_float("INFLIGHT_ACQUIRE_TIMEOUT_SECONDS", 2.0)

    # Bounded waits for row locks
    TRANSACTION_LOCK_TIMEOUT_MS = _env_int("TRANSACTION_LOCK_TIMEOUT_MS", 5000)
    SQLITE_BUSY_TIMEOUT_SECONDS = _env_float("SQLITE_BUSY_TIMEOUT_SECONDS", 5.0)
    DB_RETRY_ATTEMPTS = _env_int("DB_RETRY_ATTEMPTS", 3)

    LOW_STOCK_THRESHOLD = _env_int("LOW_STOCK_THRESHOLD", 5)

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Callable returning a UTC-naive datetime; None means the system clock
    CLOCK = None


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET = "test-jwt-secret"
    BCRYPT_LOG_ROUNDS = 4
    SQLITE_BUSY_TIMEOUT_SECONDS = 10.0
    LOG_LEVEL = "WARNING"
