"""
Cart tests: one cart per user, line accumulation, set/remove, clearing.
"""

import pytest

from storefront.models import Cart
from storefront.services import cart_service
from storefront.services.token_service import identity_for


def _add(client, headers, product_id, quantity=None, action=None):
    body = {"product_id": product_id}
    if quantity is not None:
        body["quantity"] = quantity
    if action is not None:
        body["action"] = action
    return client.post("/api/cart", json=body, headers=headers)


class TestCartReads:

    def test_empty_cart_created_on_first_read(self, client, db_session, customer, customer_headers):
        resp = client.get("/api/cart", headers=customer_headers)
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["items"] == []
        assert data["item_count"] == 0
        assert data["subtotal"] == 0
        assert db_session.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_one_cart_per_user(self, client, db_session, customer, customer_headers):
        client.get("/api/cart", headers=customer_headers)
        client.get("/api/cart", headers=customer_headers)
        assert db_session.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_carts_are_private(self, client, customer_headers, other_headers, product_a):
        _add(client, customer_headers, product_a.id, 2)
        resp = client.get("/api/cart", headers=other_headers)
        assert resp.json["data"]["items"] == []


class TestCartUpdates:

    def test_add_defaults_to_one(self, client, customer_headers, product_a):
        resp = _add(client, customer_headers, product_a.id)
        assert resp.status_code == 200
        items = resp.json["data"]["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 1
        assert items[0]["product"]["name"] == "Product A"

    def test_add_accumulates_on_one_line(self, client, customer_headers, product_a):
        _add(client, customer_headers, product_a.id, 2)
        resp = _add(client, customer_headers, product_a.id, 3)
        items = resp.json["data"]["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 5

    def test_camel_case_product_id(self, client, customer_headers, product_a):
        resp = client.post("/api/cart", json={"productId": product_a.id, "quantity": 1}, headers=customer_headers)
        assert resp.status_code == 200

    def test_subtotal_uses_live_prices(self, client, db_session, customer_headers, product_a, product_b):
        _add(client, customer_headers, product_a.id, 2)
        resp = _add(client, customer_headers, product_b.id, 1)
        data = resp.json["data"]
        assert data["subtotal"] == 25.0
        assert data["item_count"] == 3

    def test_no_stock_check_when_adding(self, client, customer_headers, product_b):
        resp = _add(client, customer_headers, product_b.id, 50)
        assert resp.status_code == 200
        assert resp.json["data"]["items"][0]["quantity"] == 50

    def test_set_quantity(self, client, customer_headers, product_a):
        _add(client, customer_headers, product_a.id, 4)
        resp = _add(client, customer_headers, product_a.id, 2, action="set")
        assert resp.json["data"]["items"][0]["quantity"] == 2

    def test_set_to_zero_removes_line(self, client, customer_headers, product_a):
        _add(client, customer_headers, product_a.id, 4)
        resp = _add(client, customer_headers, product_a.id, 0, action="set")
        assert resp.json["data"]["items"] == []

    def test_negative_increment_below_zero_removes_line(self, client, customer_headers, product_a):
        _add(client, customer_headers, product_a.id, 2)
        resp = _add(client, customer_headers, product_a.id, -5)
        assert resp.json["data"]["items"] == []

    def test_remove(self, client, customer_headers, product_a, product_b):
        _add(client, customer_headers, product_a.id, 1)
        _add(client, customer_headers, product_b.id, 1)
        resp = _add(client, customer_headers, product_a.id, action="remove")
        names = [i["product"]["name"] for i in resp.json["data"]["items"]]
        assert names == ["Product B"]

    def test_remove_absent_line_is_noop(self, client, customer_headers, product_a):
        resp = _add(client, customer_headers, product_a.id, action="remove")
        assert resp.status_code == 200
        assert resp.json["data"]["items"] == []

    def test_unknown_product(self, client, customer_headers, db_session):
        resp = _add(client, customer_headers, 9999, 1)
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"product_id": "abc"},
            {"product_id": 1, "quantity": 1.5},
            {"product_id": 1, "action": "explode"},
            {"product_id": 1, "action": "set"},
            {"product_id": 10 ** 20},
            {"product_id": 1, "quantity": 10 ** 20},
        ],
    )
    def test_invalid_input(self, client, customer_headers, product_a, body):
        resp = client.post("/api/cart", json=body, headers=customer_headers)
        assert resp.status_code == 400

    def test_non_object_body(self, client, customer_headers, product_a):
        resp = client.post("/api/cart", json=[product_a.id], headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid JSON payload"


class TestCartClear:

    def test_clear(self, client, customer_headers, product_a, product_b):
        _add(client, customer_headers, product_a.id, 1)
        _add(client, customer_headers, product_b.id, 1)
        resp = client.delete("/api/cart", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["message"] == "Cart cleared successfully"
        assert resp.json["data"]["items"] == []

    def test_clear_empty_cart(self, client, customer_headers):
        resp = client.delete("/api/cart", headers=customer_headers)
        assert resp.status_code == 200


class TestCartService:

    def test_update_cart_service(self, db_session, customer, product_a):
        identity = identity_for(customer)
        cart = cart_service.update_cart(identity, product_a.id, 3)
        assert cart.user_id == customer.id
        assert cart.find_item(product_a.id).quantity == 3

        cart_service.clear_cart(identity)
        assert cart_service.get_cart(identity).items == []
