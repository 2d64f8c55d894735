from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"
VALID_ROLES = {ROLE_CUSTOMER, ROLE_ADMIN}


def new_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    """
    Storefront account.

    A single role tag drives access control; there is no role table.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('customer', 'admin')", name="ck_users_role"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    cart_items = db.relationship("CartItem", backref="user", cascade="save-update, merge, delete", passive_deletes=True, lazy=True)
    favorites = db.relationship("Favorite", backref="user", cascade="save-update, merge, delete", passive_deletes=True, lazy=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
