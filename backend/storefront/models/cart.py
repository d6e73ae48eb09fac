from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class CartLine(db.Model):
    """
    One product in a user's cart.

    A (user, product) pair has at most one row; re-adding a product bumps
    the quantity. Lines with saved_for_later=True are parked: they never
    count towards totals and are never consumed by checkout.
    """
    __tablename__ = "shopping_carts"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_shopping_carts_user_product"),
        db.Index("ix_shopping_carts_user_saved", "user_id", "saved_for_later"),
        db.CheckConstraint("quantity >= 1", name="ck_shopping_carts_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    saved_for_later = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "saved_for_later": self.saved_for_later,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
