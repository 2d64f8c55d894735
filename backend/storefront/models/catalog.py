from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .auth import new_id


# Ceiling of the 32-bit stock/quantity columns
MAX_STOCK = 2_147_483_647
# Ceiling of the 64-bit money columns
MAX_AMOUNT = 9_223_372_036_854_775_807


class Product(db.Model):
    """
    Catalog product.

    price is stored in minor currency units (cents).
    stock is written only by the inventory service; every write happens
    under a row lock and the CHECK constraint backs the non-negative rule.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_stock", "stock"),
        db.Index("ix_products_created_at", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.BigInteger, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    cart_items = db.relationship("CartItem", backref="product", cascade="save-update, merge, delete", passive_deletes=True, lazy=True)
    favorites = db.relationship("Favorite", backref="product", cascade="save-update, merge, delete", passive_deletes=True, lazy=True)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Favorite(db.Model):
    """Presence record: user likes product."""
    __tablename__ = "favorites"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_favorites_user_product"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "created_at": to_utc_z(self.created_at),
        }
