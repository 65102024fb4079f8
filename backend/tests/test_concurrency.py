"""
Concurrency tests for order creation.

Verifies:
- A checkout that loses the stock race between read and update fails
  cleanly and rolls back every earlier decrement
- A duplicate payment confirmation that trips the unique session constraint
  returns the order that won
- Lock timeouts and version conflicts are retried, other errors are not
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from storefront.models import Cart, Order, Product, PAYMENT_PAID
from storefront.services import cart_service, order_service
from storefront.services.concurrency import run_with_retry
from storefront.services.order_service import InsufficientStockError
from storefront.services.token_service import identity_for


def _locked():
    return OperationalError("UPDATE products", {}, Exception("database is locked"))


class TestLostStockRace:

    def test_guarded_update_touching_no_rows(self, db_session, customer, product_a, monkeypatch):
        monkeypatch.setattr(order_service, "conditional_update", lambda query, values: 0)

        with pytest.raises(InsufficientStockError):
            order_service.create_order_from_items(
                identity_for(customer), [{"product_id": product_a.id, "quantity": 1}]
            )

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 10
        assert db_session.query(Order).count() == 0

    def test_later_line_losing_rolls_back_earlier_decrement(
        self, db_session, customer, product_a, product_b, monkeypatch
    ):
        real_update = order_service.conditional_update
        calls = []

        def _second_line_loses(query, values):
            calls.append(values)
            if len(calls) == 2:
                return 0
            return real_update(query, values)

        monkeypatch.setattr(order_service, "conditional_update", _second_line_loses)

        with pytest.raises(InsufficientStockError):
            order_service.create_order_from_items(
                identity_for(customer),
                [
                    {"product_id": product_a.id, "quantity": 2},
                    {"product_id": product_b.id, "quantity": 1},
                ],
            )

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 10
        assert db_session.get(Product, product_b.id).stock == 3
        assert db_session.query(Order).count() == 0


class TestDuplicateConfirmation:

    def test_unique_session_conflict_returns_existing_order(
        self, db_session, customer, product_a, monkeypatch
    ):
        cart = cart_service.update_cart(identity_for(customer), product_id=product_a.id, quantity=2)
        cart_id = cart.id

        # Another worker committed this session after our lookup ran
        winner = Order(
            user_id=customer.id,
            total_amount=Decimal("20.00"),
            payment_status=PAYMENT_PAID,
            checkout_session_id="cs_race",
        )
        db_session.add(winner)
        db_session.commit()
        winner_id = winner.id

        real_find = order_service.find_order_by_checkout_session
        lookups = []

        def _first_lookup_misses(checkout_session_id):
            lookups.append(checkout_session_id)
            if len(lookups) == 1:
                return None
            return real_find(checkout_session_id)

        monkeypatch.setattr(order_service, "find_order_by_checkout_session", _first_lookup_misses)

        order = order_service.create_order_from_payment(
            customer.id, cart_id, payment_reference="pi_dup", checkout_session_id="cs_race"
        )

        assert order.id == winner_id
        assert len(lookups) == 2
        assert db_session.query(Order).count() == 1

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 10
        assert len(db_session.get(Cart, cart_id).items) == 1


class TestRetry:

    def test_order_retried_after_lock_timeout(self, db_session, customer, product_a, monkeypatch):
        real_update = order_service.conditional_update
        calls = []

        def _locked_once(query, values):
            calls.append(values)
            if len(calls) == 1:
                raise _locked()
            return real_update(query, values)

        monkeypatch.setattr(order_service, "conditional_update", _locked_once)

        order = order_service.create_order_from_items(
            identity_for(customer), [{"product_id": product_a.id, "quantity": 3}]
        )

        assert len(calls) == 2
        assert db_session.query(Order).count() == 1
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock == 7
        assert db_session.get(Order, order.id).items[0].quantity == 3

    def test_retries_until_success(self, db_session):
        calls = []

        def _flaky():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "done"

        assert run_with_retry(_flaky, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_after_last_attempt(self, db_session):
        calls = []

        def _always_locked():
            calls.append(1)
            raise _locked()

        with pytest.raises(OperationalError):
            run_with_retry(_always_locked, attempts=3, backoff_base=0)
        assert len(calls) == 3

    def test_other_errors_not_retried(self, db_session):
        calls = []

        def _broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            run_with_retry(_broken, attempts=3, backoff_base=0)
        assert len(calls) == 1
