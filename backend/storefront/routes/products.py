# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Catalog routes.

Reads are public. Writes require an admin token; the products service
checks the role again before writing.
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError, NotFoundError, parse_amount
from ..decorators import require_auth, require_admin
from ..responses import success, failure

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _optional_amount(name: str):
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    return parse_amount(raw, name)


@products_bp.get("")
def list_products_route():
    """
    List products, newest first.

    Query params (all optional, combined with AND):
    - search: case-insensitive substring of name or description
    - category: exact category
    - min_price / max_price: inclusive price bounds
    """
    try:
        products = products_service.list_products(
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            min_price=_optional_amount("min_price"),
            max_price=_optional_amount("max_price"),
        )
    except ValidationError as e:
        return failure(str(e), 400)

    return success([p.to_dict() for p in products])


@products_bp.get("/categories")
def list_categories_route():
    return success(products_service.list_categories())


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    return success(product.to_dict())


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a product.

    Required: name, description, price, category, stock, image.
    Optional: images (list of URLs).
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = products_service.create_product(g.identity, payload)
    except ValidationError as e:
        return failure(str(e), 400)
    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return failure("Internal server error", 500)

    return success(product.to_dict(), 201)


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """Partial update: only the supplied fields change."""
    payload = request.get_json(silent=True) or {}

    try:
        product = products_service.update_product(g.identity, product_id, payload)
    except ValidationError as e:
        return failure(str(e), 400)
    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return failure("Internal server error", 500)

    return success(product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.identity, product_id)
    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return failure("Internal server error", 500)

    return success(message="Product deleted successfully")
