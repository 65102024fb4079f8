# backend/storefront/routes/inventory.py
"""
Inventory management routes. Admin only.

- GET  /api/inventory                      stock levels with status labels
- POST /api/inventory/<product_id>/adjust  {"delta": 10} or {"delta": -10}
"""
from flask import Blueprint, request, g, current_app

from ..services import inventory_service
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError, NotFoundError, json_object
from ..decorators import require_auth, require_admin
from ..responses import success, failure


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_admin
def list_inventory_route():
    try:
        return success(inventory_service.list_stock_levels(g.identity))
    except PermissionDeniedError as e:
        return failure(str(e), 403)


@inventory_bp.post("/<int:product_id>/adjust")
@require_auth
@require_admin
def adjust_inventory_route(product_id: int):
    """
    Relative stock change, clamped at zero.

    Returns the product's new level.
    """
    try:
        payload = json_object(request.get_json(silent=True))
        level = inventory_service.adjust_stock(g.identity, product_id, payload.get("delta"))
    except ValidationError as e:
        return failure(str(e), 400)
    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return failure("Internal server error", 500)

    return success(level)
