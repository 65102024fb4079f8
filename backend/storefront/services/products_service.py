# backend/storefront/services/products_service.py
"""
Catalog Service

Public reads (list, get, categories) need no identity. Writes take the
caller's Identity and check the admin role here, at the service boundary,
before touching the database.
"""
from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Product, CartItem, OrderItem
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_product,
    validate_payload,
)
from .concurrency import run_with_retry
from .permission_service import require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "category", "stock", "image", "images"},
    required_on_create={"name", "description", "price", "category", "stock", "image"},
)


class ProductNotFoundError(NotFoundError):
    pass


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_products(
    search: str | None = None,
    category: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
) -> list[Product]:
    """
    Filtered catalog listing, newest first. No pagination.

    Every filter is optional and they combine with AND:
    - search: case-insensitive substring of name OR description
    - category: exact match
    - min_price / max_price: inclusive bounds
    """
    query = db.session.query(Product)

    if search:
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(db.or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.description.ilike(pattern, escape="\\"),
        ))

    if category:
        query = query.filter(Product.category == category)

    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().order_by(Product.category.asc()).all()
    return [row[0] for row in rows]


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def create_product(identity, payload: dict) -> Product:
    """
    Create a product. Admin only.

    Raises:
        PermissionDeniedError: caller is not an admin
        ValidationError: missing required field, unknown field, bad value
    """
    require_admin(identity)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    patch.setdefault("images", [])

    product = Product(**patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(identity, product_id: int, payload: dict) -> Product:
    """Partial update. Admin only. Only supplied fields change."""
    require_admin(identity)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = get_product(product_id)
        for k, v in patch.items():
            setattr(product, k, v)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(identity, product_id: int) -> None:
    """
    Hard-delete a product. Admin only.

    Carts display the live product, so lines pointing at it are removed in
    the same transaction. Order items keep their snapshot; only their
    product reference is cleared.
    """
    require_admin(identity)

    product = get_product(product_id)

    db.session.query(CartItem).filter(CartItem.product_id == product.id).delete(
        synchronize_session=False
    )
    db.session.query(OrderItem).filter(OrderItem.product_id == product.id).update(
        {OrderItem.product_id: None}, synchronize_session=False
    )
    db.session.delete(product)
    db.session.commit()
