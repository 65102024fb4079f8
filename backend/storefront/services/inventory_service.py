# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/storefront/services/inventory_service.py
"""
Inventory levels and manual stock adjustments (admin only).

On-hand quantity is the Product.stock column. Order creation decrements it
(see order_service); this module covers the admin side: reviewing levels
and nudging them up or down after a recount or delivery.

Adjustments are relative and clamp at zero: stock 12 adjusted by -20
becomes 0, not -8.
"""

from flask import current_app

from ..extensions import db
from ..models import Product
from ..validation import ValidationError, enforce_rules_stock_adjustment, parse_int
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_admin
from .products_service import ProductNotFoundError


STATUS_OUT_OF_STOCK = "out_of_stock"
STATUS_LOW_STOCK = "low_stock"
STATUS_IN_STOCK = "in_stock"


def stock_status(stock: int, low_threshold: int) -> str:
    if stock <= 0:
        return STATUS_OUT_OF_STOCK
    if stock < low_threshold:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


def _level(product: Product, low_threshold: int) -> dict:
    return {
        "product_id": product.id,
        "name": product.name,
        "category": product.category,
        "image": product.image,
        "stock": product.stock,
        "status": stock_status(product.stock, low_threshold),
    }


def list_stock_levels(identity) -> list[dict]:
    """Every product with its stock and a status label, lowest stock first."""
    require_admin(identity)
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    products = db.session.query(Product).order_by(Product.stock.asc(), Product.name.asc()).all()
    return [_level(p, threshold) for p in products]


def adjust_stock(identity, product_id: int, delta) -> dict:
    """
    Apply a relative stock change, clamped at zero.

    Raises:
        PermissionDeniedError: caller is not an admin
        ValidationError: delta missing, non-integer or zero
        ProductNotFoundError: no such product
    """
    require_admin(identity)
    if delta is None:
        raise ValidationError("delta is required")
    delta = parse_int(delta, "delta")
    enforce_rules_stock_adjustment(delta)

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFoundError("Product not found")
        before = product.stock
        product.stock = max(0, before + delta)
        db.session.commit()
        current_app.logger.info(
            "Stock for product %s adjusted %+d by user %s: %d -> %d",
            product.id, delta, identity.user_id, before, product.stock,
        )
        return _level(product, current_app.config["LOW_STOCK_THRESHOLD"])

    return run_with_retry(_op)
