from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)

FULFILLMENT_PROCESSING = "processing"
FULFILLMENT_SHIPPED = "shipped"
FULFILLMENT_DELIVERED = "delivered"
FULFILLMENT_CANCELLED = "cancelled"
FULFILLMENT_STATUSES = (
    FULFILLMENT_PROCESSING,
    FULFILLMENT_SHIPPED,
    FULFILLMENT_DELIVERED,
    FULFILLMENT_CANCELLED,
)

SHIPPING_FIELDS = ("street", "city", "state", "zip_code", "country")


class Order(db.Model):
    """
    Order header with two independent status axes.

    Items are snapshotted at creation (see OrderItem). After creation only
    payment_status and fulfillment_status change.

    checkout_session_id is the idempotency key for payment confirmations:
    a redelivered provider event for the same session finds this row
    instead of creating a second order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("checkout_session_id", name="uq_orders_checkout_session"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)

    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING, index=True)
    fulfillment_status = db.Column(db.String(16), nullable=False, default=FULFILLMENT_PROCESSING, index=True)

    # External provider references (payment intent id / checkout session id)
    payment_reference = db.Column(db.String(255), nullable=True)
    checkout_session_id = db.Column(db.String(255), nullable=True)

    shipping_street = db.Column(db.String(255), nullable=True)
    shipping_city = db.Column(db.String(120), nullable=True)
    shipping_state = db.Column(db.String(120), nullable=True)
    shipping_zip_code = db.Column(db.String(32), nullable=True)
    shipping_country = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )

    @property
    def shipping_address(self) -> dict | None:
        address = {field: getattr(self, f"shipping_{field}") for field in SHIPPING_FIELDS}
        if all(v is None for v in address.values()):
            return None
        return address

    def to_dict(self, include_customer: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "total_amount": float(self.total_amount),
            "payment_status": self.payment_status,
            "fulfillment_status": self.fulfillment_status,
            "payment_reference": self.payment_reference,
            "checkout_session_id": self.checkout_session_id,
            "shipping_address": self.shipping_address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_customer and self.user is not None:
            data["customer"] = {"id": self.user.id, "name": self.user.name, "email": self.user.email}
        return data


class OrderItem(db.Model):
    """
    Point-in-time copy of a purchased line.

    name, price and image are copied from the product when the order is
    written and never re-joined, so deleting or repricing a product does
    not rewrite order history. product_id is kept for reference only and is
    nulled if the product is deleted.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    image = db.Column(db.String(500), nullable=True)

    order = db.relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "price": float(self.price),
            "quantity": self.quantity,
            "image": self.image,
            "line_total": float(self.line_total),
        }
