"""
Hosted checkout and payment webhook tests (fake gateway).

Verifies:
- A checkout session mirrors the cart in cents with opaque metadata
- A signed checkout.session.completed event converts the cart into a paid order
- Replayed events do not create a second order or decrement stock twice
- Unsigned or badly signed webhooks are rejected before anything is read
"""

from decimal import Decimal

import pytest

from storefront.models import Order, Product
from storefront.services.checkout_service import to_cents
from storefront.services.payment_gateway import (
    MAX_FAKE_SESSIONS,
    FakeGateway,
    StripeGateway,
    WebhookSignatureError,
    build_gateway,
    get_gateway,
)

from conftest import completed_session_payload, post_webhook


@pytest.fixture
def filled_cart(client, customer_headers, product_a, product_b):
    """Cart with product A (10.00 x 2) and product B (5.00 x 1)."""
    client.post("/api/cart", json={"product_id": product_a.id, "quantity": 2}, headers=customer_headers)
    resp = client.post("/api/cart", json={"product_id": product_b.id, "quantity": 1}, headers=customer_headers)
    return resp.json["data"]


@pytest.fixture
def checkout_session(client, customer_headers, filled_cart):
    resp = client.post("/api/payment/create-session", headers=customer_headers)
    assert resp.status_code == 200
    return resp.json["data"]


class TestCreateSession:

    def test_session_totals_cart(self, checkout_session):
        assert checkout_session["amount_total"] == 25.0
        assert checkout_session["session_id"].startswith("cs_fake_")
        assert checkout_session["url"].endswith(checkout_session["session_id"])

    def test_session_line_items_in_cents(self, checkout_session, customer, filled_cart):
        recorded = get_gateway().sessions[checkout_session["session_id"]]
        assert [(i.name, i.unit_amount_cents, i.quantity) for i in recorded["line_items"]] == [
            ("Product A", 1000, 2),
            ("Product B", 500, 1),
        ]
        assert recorded["amount_total"] == 2500
        assert recorded["currency"] == "usd"
        assert recorded["metadata"] == {"user_id": str(customer.id), "cart_id": str(filled_cart["id"])}
        assert recorded["success_url"] == "http://shop.test/checkout/success?session_id={CHECKOUT_SESSION_ID}"
        assert recorded["cancel_url"] == "http://shop.test/cart"

    def test_session_does_not_touch_stock_or_cart(self, client, db_session, customer_headers, checkout_session, product_a):
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 10
        assert db_session.query(Order).count() == 0
        resp = client.get("/api/cart", headers=customer_headers)
        assert len(resp.json["data"]["items"]) == 2

    def test_empty_cart_rejected(self, client, customer_headers):
        resp = client.post("/api/payment/create-session", headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cart is empty"


class TestWebhook:

    def _complete(self, client, customer, filled_cart, checkout_session, **kwargs):
        payload = completed_session_payload(
            checkout_session["session_id"], customer.id, filled_cart["id"], **kwargs
        )
        return post_webhook(client, payload)

    def test_completed_session_creates_paid_order(
        self, client, db_session, customer, customer_headers, filled_cart, checkout_session, product_a, product_b
    ):
        resp = self._complete(client, customer, filled_cart, checkout_session)
        assert resp.status_code == 200
        assert resp.json["data"]["received"] is True
        order_id = resp.json["data"]["order_id"]

        order = db_session.get(Order, order_id)
        assert order.user_id == customer.id
        assert order.payment_status == "paid"
        assert order.fulfillment_status == "processing"
        assert order.total_amount == Decimal("25.00")
        assert order.checkout_session_id == checkout_session["session_id"]
        assert order.payment_reference == "pi_test_123"
        assert len(order.items) == 2

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 8
        assert db_session.get(Product, product_b.id).stock == 2

        cart = client.get("/api/cart", headers=customer_headers).json["data"]
        assert cart["items"] == []

        orders = client.get("/api/orders", headers=customer_headers).json["data"]
        assert [o["id"] for o in orders] == [order_id]

    def test_replay_is_idempotent(
        self, client, db_session, customer, filled_cart, checkout_session, product_a
    ):
        first = self._complete(client, customer, filled_cart, checkout_session)
        second = self._complete(client, customer, filled_cart, checkout_session)

        assert second.status_code == 200
        assert second.json["data"]["order_id"] == first.json["data"]["order_id"]
        assert db_session.query(Order).count() == 1
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 8

    def test_missing_signature(self, client, customer, filled_cart, checkout_session):
        payload = completed_session_payload(checkout_session["session_id"], customer.id, filled_cart["id"])
        resp = client.post("/api/payment/webhook", data=payload, headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.json["error"] == "No signature"

    def test_bad_signature(self, client, db_session, customer, filled_cart, checkout_session):
        payload = completed_session_payload(checkout_session["session_id"], customer.id, filled_cart["id"])
        resp = post_webhook(client, payload, signature="sha256=deadbeef")
        assert resp.status_code == 400
        assert resp.json["error"].startswith("Webhook Error:")
        assert db_session.query(Order).count() == 0

    def test_signature_covers_exact_body(self, client, db_session, customer, filled_cart, checkout_session):
        payload = completed_session_payload(checkout_session["session_id"], customer.id, filled_cart["id"])
        signature = get_gateway().sign(payload)
        tampered = payload.replace(b"pi_test_123", b"pi_forged_99")
        resp = post_webhook(client, tampered, signature=signature)
        assert resp.status_code == 400

    def test_other_event_types_acknowledged(self, client, db_session):
        payload = b'{"type": "payment_intent.created", "data": {"object": {"id": "pi_1"}}}'
        resp = post_webhook(client, payload)
        assert resp.status_code == 200
        assert resp.json["data"] == {"received": True, "order_id": None}
        assert db_session.query(Order).count() == 0

    def test_signed_event_with_non_object_body(self, client, db_session):
        payload = b'{"type": "checkout.session.completed", "data": {"object": ["cs_1"]}}'
        resp = post_webhook(client, payload)
        assert resp.status_code == 400
        assert resp.json["error"].startswith("Webhook Error:")
        assert db_session.query(Order).count() == 0

    def test_out_of_range_metadata_ids_ignored(self, client, db_session):
        payload = completed_session_payload("cs_huge", 10 ** 20, 10 ** 20)
        resp = post_webhook(client, payload)
        assert resp.status_code == 200
        assert resp.json["data"]["order_id"] is None
        assert db_session.query(Order).count() == 0

    def test_already_empty_cart_records_nothing(self, client, customer, customer_headers, filled_cart, checkout_session):
        client.delete("/api/cart", headers=customer_headers)
        resp = self._complete(client, customer, filled_cart, checkout_session)
        assert resp.status_code == 200
        assert resp.json["data"]["order_id"] is None

    def test_cart_of_another_user_ignored(self, client, other_customer, filled_cart, checkout_session):
        resp = self._complete(client, other_customer, filled_cart, checkout_session)
        assert resp.status_code == 200
        assert resp.json["data"]["order_id"] is None

    def test_out_of_stock_after_payment(
        self, client, db_session, admin_headers, customer, filled_cart, checkout_session, product_b
    ):
        client.post(f"/api/inventory/{product_b.id}/adjust", json={"delta": -3}, headers=admin_headers)

        resp = self._complete(client, customer, filled_cart, checkout_session)
        assert resp.status_code == 409
        assert db_session.query(Order).count() == 0


class TestGatewayUnits:

    def test_to_cents_rounds_half_up(self):
        assert to_cents(Decimal("10.00")) == 1000
        assert to_cents(Decimal("0.005")) == 1
        assert to_cents(Decimal("19.994")) == 1999

    def test_fake_gateway_signatures(self):
        gateway = FakeGateway(webhook_secret="s3cret")
        payload = b'{"type": "x", "data": {"object": {"id": "cs_1"}}}'
        event = gateway.parse_webhook(payload, gateway.sign(payload))
        assert event.type == "x"
        assert event.session_id == "cs_1"
        with pytest.raises(WebhookSignatureError):
            FakeGateway(webhook_secret="other").parse_webhook(payload, gateway.sign(payload))

    def test_malformed_payload(self):
        gateway = FakeGateway(webhook_secret="s3cret")
        with pytest.raises(WebhookSignatureError):
            gateway.parse_webhook(b"not json", gateway.sign(b"not json"))

    @pytest.mark.parametrize(
        "payload",
        [
            b'{"type": "x", "data": {"object": "cs_1"}}',
            b'{"type": "x", "data": {"object": {"id": "cs_1", "metadata": ["user_id"]}}}',
            b'["type", "data"]',
        ],
    )
    def test_event_body_must_be_objects(self, payload):
        gateway = FakeGateway(webhook_secret="s3cret")
        with pytest.raises(WebhookSignatureError):
            gateway.parse_webhook(payload, gateway.sign(payload))

    def test_fake_gateway_forgets_oldest_sessions(self):
        gateway = FakeGateway(webhook_secret="s3cret")
        ids = [
            gateway.create_checkout_session(
                line_items=[], currency="usd", success_url="s", cancel_url="c", metadata={},
            ).id
            for _ in range(MAX_FAKE_SESSIONS + 5)
        ]
        assert len(gateway.sessions) == MAX_FAKE_SESSIONS
        assert ids[0] not in gateway.sessions
        assert ids[-1] in gateway.sessions

    def test_build_gateway(self):
        assert isinstance(build_gateway({"PAYMENT_GATEWAY": "fake", "SECRET_KEY": "k"}), FakeGateway)
        stripe_gateway = build_gateway({"PAYMENT_GATEWAY": "stripe", "STRIPE_SECRET_KEY": "sk_test"})
        assert isinstance(stripe_gateway, StripeGateway)
        with pytest.raises(ValueError):
            build_gateway({"PAYMENT_GATEWAY": "cash"})

    def test_stripe_gateway_rejects_bad_signature(self):
        gateway = StripeGateway(api_key="sk_test", webhook_secret="whsec_test")
        with pytest.raises(WebhookSignatureError):
            gateway.parse_webhook(b'{"type": "x"}', "t=1,v1=deadbeef")
