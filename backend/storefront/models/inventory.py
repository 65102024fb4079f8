from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog entry with its on-hand stock counter.

    Stock is a mutable integer column (never negative). It is changed by
    admin edits, inventory adjustments, and order creation; order creation
    decrements it with a conditional UPDATE so concurrent checkouts cannot
    oversell.

    version_id gives optimistic locking for ORM-level edits: two admins
    saving the same product concurrently produce a StaleDataError that the
    concurrency helpers retry.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=False)

    # Two-decimal currency amount; line items sent to the payment provider are cents
    price = db.Column(db.Numeric(10, 2), nullable=False)

    category = db.Column(db.String(64), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    image = db.Column(db.String(500), nullable=False)
    images = db.Column(db.JSON, nullable=False, default=list)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "category": self.category,
            "stock": self.stock,
            "image": self.image,
            "images": list(self.images or []),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
