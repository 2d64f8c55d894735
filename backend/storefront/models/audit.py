from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .auth import new_id


class AuditLog(db.Model):
    """Append-only record of user-visible mutations."""
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    # No FK: audit rows outlive the users they mention
    user_id = db.Column(db.String(36), nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(64), nullable=True)
    metadata_json = db.Column("metadata", db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "resource": self.resource,
            "metadata": self.metadata_json,
            "created_at": to_utc_z(self.created_at),
        }
