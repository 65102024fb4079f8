from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from storefront.time_utils import to_utc_z


class Cart(db.Model):
    """
    One mutable cart per user (enforced by uq_carts_user).

    Lines reference the live product; prices shown here are current catalog
    prices, not a snapshot. Snapshots only happen when an order is written.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_carts_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("cart", uselist=False, lazy=True))
    items = db.relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy=True,
    )

    def find_item(self, product_id: int) -> "CartItem | None":
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def subtotal(self) -> Decimal:
        return sum((item.product.price * item.quantity for item in self.items), Decimal("0.00"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "item_count": sum(item.quantity for item in self.items),
            "subtotal": float(self.subtotal),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartItem(db.Model):
    __tablename__ = "cart_items"
    __table_args__ = (
        # Quantities accumulate on one line per product
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    cart = db.relationship("Cart", back_populates="items")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_dict() if self.product else None,
        }
