# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

"""
Cart routes. Every route works on the caller's own cart only.

POST body:
{
    "product_id": 12,
    "quantity": 2,          (optional for increment, required for set)
    "action": "increment"   (increment | set | remove; default increment)
}
"""

from flask import Blueprint, request, g, current_app

from ..services import cart_service
from ..services.cart_service import CartError
from ..validation import ValidationError, NotFoundError, json_object
from ..decorators import require_auth
from ..responses import success, failure


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    try:
        cart = cart_service.get_cart(g.identity)
        return success(cart.to_dict())
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return failure("Internal server error", 500)


@cart_bp.post("")
@require_auth
def update_cart_route():
    try:
        data = json_object(request.get_json(silent=True))
        product_id = data.get("product_id", data.get("productId"))
        cart = cart_service.update_cart(
            g.identity,
            product_id=product_id,
            quantity=data.get("quantity"),
            mode=data.get("action"),
        )
        return success(cart.to_dict())

    except (CartError, ValidationError) as e:
        return failure(str(e), 400)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to update cart")
        return failure("Internal server error", 500)


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    try:
        cart = cart_service.clear_cart(g.identity)
        return success(cart.to_dict(), message="Cart cleared successfully")
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return failure("Internal server error", 500)
