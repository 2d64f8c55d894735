# Overview: Transaction, row-locking, retry and inbound request limiting helpers.

from __future__ import annotations

import logging
import threading
import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import Conflict, ServiceUnavailable
from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    takes the database write lock up front there instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start a write transaction with a bounded lock wait.

    PostgreSQL: lock_timeout/statement_timeout are scoped to this transaction.
    SQLite: BEGIN IMMEDIATE serializes writers; the busy timeout bounds the wait.
    """
    dialect = db.engine.dialect.name
    if dialect == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        timeout_ms = int(current_app.config.get("TRANSACTION_LOCK_TIMEOUT_MS", 5000))
        db.session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
        db.session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms * 2}"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05, retry_on: tuple = ()):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Any exception rolls the session back so no partial write survives.
    OperationalError (lock timeout, deadlock, busy database), StaleDataError
    (version mismatch) and anything listed in retry_on are retried with
    exponential backoff; once attempts run out they surface as Conflict.
    """
    if attempts is None:
        attempts = int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))
    retryable = (OperationalError, StaleDataError) + tuple(retry_on)

    for attempt in range(attempts):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.warning("Giving up after %d attempts: %s", attempts, exc.__class__.__name__)
                raise Conflict() from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    raise Conflict()


class RequestLimiter:
    """
    Caps simultaneous in-flight requests for one process.

    acquire() waits up to `timeout` seconds for a slot and raises
    ServiceUnavailable when none frees up.
    """

    def __init__(self, max_inflight: int, timeout: float):
        self.max_inflight = max_inflight
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(max_inflight)

    def acquire(self) -> None:
        if not self._slots.acquire(timeout=self.timeout):
            raise ServiceUnavailable()

    def release(self) -> None:
        self._slots.release()
