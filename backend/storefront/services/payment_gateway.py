# Overview: Payment provider port with Stripe and fake adapters.

"""
Payment gateway port (abstract interface).

The checkout service talks to this interface only, so the hosted provider
can be swapped without touching order logic:
- StripeGateway: production, Stripe Checkout via the stripe-python SDK
- FakeGateway: development and tests; no network, HMAC-signed webhooks

Select with the PAYMENT_GATEWAY config value ("stripe" or "fake").
"""

from __future__ import annotations

import hashlib
import hmac
import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import stripe
from flask import current_app


EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"

# Oldest fake sessions are forgotten past this many
MAX_FAKE_SESSIONS = 256


class PaymentGatewayError(Exception):
    """Raised when the provider rejects or fails a request."""
    pass


class WebhookSignatureError(Exception):
    """Raised when a webhook payload fails signature verification."""
    pass


@dataclass(frozen=True)
class CheckoutLineItem:
    name: str
    unit_amount_cents: int
    quantity: int
    description: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


@dataclass(frozen=True)
class PaymentEvent:
    """Provider-neutral view of a verified webhook event."""
    type: str
    session_id: str | None
    payment_reference: str | None
    metadata: dict = field(default_factory=dict)


def _event_from_payload(payload: bytes | str) -> PaymentEvent:
    try:
        data = json.loads(payload)
        obj = data["data"]["object"]
        event_type = data["type"]
    except (ValueError, KeyError, TypeError) as exc:
        raise WebhookSignatureError(f"Malformed webhook payload: {exc}") from exc
    if not isinstance(obj, dict) or not isinstance(obj.get("metadata") or {}, dict):
        raise WebhookSignatureError("Malformed webhook payload: data.object is not an object")

    return PaymentEvent(
        type=event_type,
        session_id=obj.get("id"),
        payment_reference=obj.get("payment_intent"),
        metadata=dict(obj.get("metadata") or {}),
    )


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_session(
        self,
        *,
        line_items: list[CheckoutLineItem],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Create a hosted checkout session and return where to redirect."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent:
        """Verify the provider signature over the raw body and decode the event."""
        ...


class StripeGateway(PaymentGateway):
    """Stripe Checkout adapter."""

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_checkout_session(self, *, line_items, currency, success_url, cancel_url, metadata):
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": item.name,
                                "description": item.description or None,
                                "images": [item.image] if item.image else [],
                            },
                            "unit_amount": item.unit_amount_cents,
                        },
                        "quantity": item.quantity,
                    }
                    for item in line_items
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            raise PaymentGatewayError(str(exc)) from exc

        return CheckoutSession(id=session.id, url=session.url)

    def parse_webhook(self, payload, signature):
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError(str(exc)) from exc
        return _event_from_payload(payload)


class FakeGateway(PaymentGateway):
    """
    Local stand-in for the hosted checkout.

    The most recent sessions are kept in memory for inspection. Webhooks
    are signed as "sha256=<hex HMAC of the raw body>" with the configured
    secret; use sign() to produce a valid header when simulating the
    provider.
    """

    def __init__(self, webhook_secret: str, base_url: str = "http://localhost:3000") -> None:
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.sessions: dict[str, dict] = {}

    def create_checkout_session(self, *, line_items, currency, success_url, cancel_url, metadata):
        session_id = f"cs_fake_{uuid.uuid4().hex[:16]}"
        if len(self.sessions) >= MAX_FAKE_SESSIONS:
            self.sessions.pop(next(iter(self.sessions)))
        self.sessions[session_id] = {
            "line_items": list(line_items),
            "currency": currency,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": dict(metadata),
            "amount_total": sum(i.unit_amount_cents * i.quantity for i in line_items),
        }
        return CheckoutSession(id=session_id, url=f"{self.base_url}/fake-checkout/{session_id}")

    def sign(self, payload: bytes | str) -> str:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        digest = hmac.new(self.webhook_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        return f"sha256={digest}"

    def parse_webhook(self, payload, signature):
        if not hmac.compare_digest(self.sign(payload), signature or ""):
            raise WebhookSignatureError("Signature mismatch")
        return _event_from_payload(payload)


def build_gateway(config) -> PaymentGateway:
    kind = config.get("PAYMENT_GATEWAY", "stripe")
    if kind == "stripe":
        return StripeGateway(
            api_key=config.get("STRIPE_SECRET_KEY", ""),
            webhook_secret=config.get("STRIPE_WEBHOOK_SECRET", ""),
        )
    if kind == "fake":
        return FakeGateway(
            webhook_secret=config.get("STRIPE_WEBHOOK_SECRET") or config["SECRET_KEY"],
            base_url=config.get("PUBLIC_URL", "http://localhost:3000"),
        )
    raise ValueError(f"Unknown PAYMENT_GATEWAY: {kind}")


def get_gateway() -> PaymentGateway:
    return current_app.extensions["payment_gateway"]
