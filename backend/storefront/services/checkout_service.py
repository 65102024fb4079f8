# Overview: Service-layer operations for checkout; bridges carts, the payment gateway and orders.

"""
Checkout Orchestrator

Flow:
1. begin_checkout: the customer's cart becomes a hosted checkout session.
   Line items mirror the cart at cent granularity and the session carries
   {user_id, cart_id} as opaque metadata.
2. The provider collects payment and calls the webhook out-of-band.
3. handle_payment_event: the cart named in the metadata is converted into
   a paid order through order_service.create_order_from_payment.

The provider's checkout session id is the idempotency key for step 3, so
redelivered events never create a second order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..models import Order
from ..validation import ValidationError, parse_int
from .cart_service import get_or_create_cart
from .order_service import create_order_from_payment
from .payment_gateway import (
    EVENT_CHECKOUT_COMPLETED,
    CheckoutLineItem,
    PaymentEvent,
    get_gateway,
)


class CheckoutError(ValueError):
    """Raised when a checkout cannot start (400)."""
    pass


@dataclass(frozen=True)
class CheckoutResult:
    session_id: str
    url: str
    amount_total: Decimal

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "url": self.url,
            "amount_total": float(self.amount_total),
        }


def to_cents(amount: Decimal) -> int:
    """Convert a currency amount to integer cents, rounding half-up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def begin_checkout(identity) -> CheckoutResult:
    """
    Start a hosted checkout for the caller's cart.

    Raises:
        CheckoutError: cart is empty
        PaymentGatewayError: provider refused to create the session
    """
    cart = get_or_create_cart(identity.user_id)
    if not cart.items:
        raise CheckoutError("Cart is empty")

    line_items = [
        CheckoutLineItem(
            name=item.product.name,
            description=item.product.description,
            image=item.product.image,
            unit_amount_cents=to_cents(item.product.price),
            quantity=item.quantity,
        )
        for item in cart.items
    ]

    public_url = current_app.config["PUBLIC_URL"].rstrip("/")
    session = get_gateway().create_checkout_session(
        line_items=line_items,
        currency=current_app.config["CURRENCY"],
        success_url=f"{public_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{public_url}/cart",
        metadata={"user_id": str(identity.user_id), "cart_id": str(cart.id)},
    )

    current_app.logger.info(
        "Checkout session %s started for user %s (cart %s, %d lines)",
        session.id, identity.user_id, cart.id, len(line_items),
    )
    return CheckoutResult(session_id=session.id, url=session.url, amount_total=cart.subtotal)


def handle_payment_event(event: PaymentEvent) -> Order | None:
    """
    Apply a verified provider event.

    Only checkout.session.completed does anything; other event types are
    acknowledged and ignored. Returns the order for the session (new or
    previously recorded), or None when there was nothing to convert.

    Raises:
        InsufficientStockError: stock ran out after payment was taken
    """
    if event.type != EVENT_CHECKOUT_COMPLETED:
        current_app.logger.info("Ignoring payment event type %s", event.type)
        return None

    try:
        user_id = parse_int(event.metadata.get("user_id"), "user_id")
        cart_id = parse_int(event.metadata.get("cart_id"), "cart_id")
    except ValidationError:
        current_app.logger.warning(
            "Checkout session %s completed without usable metadata: %r",
            event.session_id, event.metadata,
        )
        return None

    if not event.session_id:
        current_app.logger.warning("Completed checkout event without a session id")
        return None

    order = create_order_from_payment(
        user_id,
        cart_id,
        payment_reference=event.payment_reference,
        checkout_session_id=event.session_id,
    )
    if order is None:
        current_app.logger.info(
            "Checkout session %s: cart %s empty or missing, nothing to record",
            event.session_id, cart_id,
        )
    else:
        current_app.logger.info("Checkout session %s recorded as order %s", event.session_id, order.id)
    return order
