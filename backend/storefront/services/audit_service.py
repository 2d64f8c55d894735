# Overview: Best-effort audit trail written after the business transaction commits.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog
from .concurrency import begin_write_transaction


def log_audit(
    user_id: str | None,
    action: str,
    resource: str | None = None,
    metadata: dict | None = None,
) -> AuditLog | None:
    """
    Append an audit row in its own transaction.

    Called after the business commit, so a failure here cannot undo or
    block the user's change; it is logged and the request carries on.
    """
    entry = AuditLog(user_id=user_id, action=action, resource=resource, metadata_json=metadata)
    try:
        begin_write_transaction()
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("audit log failed: action=%s resource=%s", action, resource, exc_info=True)
        return None


def list_audit_logs(*, user_id: str | None = None, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    query = db.session.query(AuditLog)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if action is not None:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
