# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""
Order routes.

- GET  /api/orders        customers: own orders; admins: all orders
- POST /api/orders        create a pending order from explicit lines
- GET  /api/orders/<id>   owner or admin
- PUT  /api/orders/<id>   admin: set payment_status and/or fulfillment_status
"""

from flask import Blueprint, request, g, current_app

from ..services import order_service
from ..services.order_service import OrderError
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError, NotFoundError, json_object
from ..decorators import require_auth, require_admin
from ..responses import success, failure


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    try:
        orders = order_service.list_orders(g.identity)
        include_customer = g.identity.is_admin
        return success([o.to_dict(include_customer=include_customer) for o in orders])
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return failure("Internal server error", 500)


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "shipping_address": {"street", "city", "state", "zip_code", "country"}  (optional)
    }

    Returns:
        201: order created, stock decremented, cart cleared
        400: invalid items or insufficient stock (nothing changed)
        404: unknown product (nothing changed)
    """
    try:
        data = json_object(request.get_json(silent=True))
        order = order_service.create_order_from_items(
            g.identity,
            data.get("items"),
            data.get("shipping_address", data.get("shippingAddress")),
        )
        current_app.logger.info("Order %s created by user %s", order.id, g.identity.user_id)
        return success(order.to_dict(), 201)

    except (OrderError, ValidationError) as e:
        return failure(str(e), 400)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return failure("Internal server error", 500)


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(g.identity, order_id)
        return success(order.to_dict(include_customer=True))

    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return failure("Internal server error", 500)


@orders_bp.put("/<int:order_id>")
@require_auth
@require_admin
def update_order_route(order_id: int):
    """Request body: {"payment_status"?, "fulfillment_status"?}"""
    try:
        data = json_object(request.get_json(silent=True))
        order = order_service.update_order_status(
            g.identity,
            order_id,
            payment_status=data.get("payment_status"),
            fulfillment_status=data.get("fulfillment_status"),
        )
        current_app.logger.info(
            "Order %s status set to payment=%s fulfillment=%s by user %s",
            order.id, order.payment_status, order.fulfillment_status, g.identity.user_id,
        )
        return success(order.to_dict(include_customer=True))

    except ValidationError as e:
        return failure(str(e), 400)
    except PermissionDeniedError as e:
        return failure(str(e), 403)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return failure("Internal server error", 500)
