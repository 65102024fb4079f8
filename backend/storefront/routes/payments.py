# Overview: Flask API routes for checkout and payment webhooks; parses input and returns JSON responses.

# backend/storefront/routes/payments.py
"""
Payment API Routes

- POST /api/payment/create-session: start a hosted checkout for the
  caller's cart; the client redirects to the returned url
- POST /api/payment/webhook: provider callback, authenticated by the
  signature over the raw body, never by a user token

SECURITY:
- The webhook reads request.get_data() before any JSON parsing; the
  signature covers the exact bytes the provider sent
"""

from flask import Blueprint, request, g, current_app

from ..services import checkout_service
from ..services.checkout_service import CheckoutError
from ..services.order_service import InsufficientStockError
from ..services.payment_gateway import (
    PaymentGatewayError,
    WebhookSignatureError,
    get_gateway,
)
from ..decorators import require_auth
from ..responses import success, failure


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payment")

SIGNATURE_HEADER = "Stripe-Signature"


@payments_bp.post("/create-session")
@require_auth
def create_session_route():
    """
    Returns:
        200: {"session_id", "url", "amount_total"}
        400: cart is empty
        502: payment provider refused the session
    """
    try:
        result = checkout_service.begin_checkout(g.identity)
        return success(result.to_dict())

    except CheckoutError as e:
        return failure(str(e), 400)
    except PaymentGatewayError as e:
        current_app.logger.error("Payment provider rejected checkout session: %s", e)
        return failure("Payment provider error", 502)
    except Exception:
        current_app.logger.exception("Failed to create checkout session")
        return failure("Internal server error", 500)


@payments_bp.post("/webhook")
def webhook_route():
    """
    Apply a provider event.

    Returns:
        200: event applied, replayed, or ignored
        400: missing or invalid signature
        409: paid cart could not be fulfilled from stock; the provider will
             redeliver and the payment needs manual reconciliation
    """
    payload = request.get_data()
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        return failure("No signature", 400)

    try:
        event = get_gateway().parse_webhook(payload, signature)
    except WebhookSignatureError as e:
        current_app.logger.warning("Webhook signature verification failed: %s", e)
        return failure(f"Webhook Error: {e}", 400)

    try:
        order = checkout_service.handle_payment_event(event)
    except InsufficientStockError as e:
        current_app.logger.error(
            "Paid checkout session %s could not be fulfilled: %s", event.session_id, e
        )
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to process payment webhook")
        return failure("Internal server error", 500)

    return success({"received": True, "order_id": order.id if order else None})
