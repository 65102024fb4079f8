# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Ledger Service

Orders are written by two paths that share one implementation:
- create_order_from_items: a customer posts explicit lines (payment pending)
- create_order_from_payment: the payment webhook converts a cart (paid)

INVARIANTS:
- All-or-nothing: stock decrements, the order row, its item snapshot and
  the cart clear are one DB transaction. Any failing line rolls back every
  earlier decrement; no partial order is ever persisted.
- Stock never goes negative: each decrement is a conditional
  UPDATE ... WHERE stock >= qty. Two concurrent checkouts for the last unit
  cannot both succeed; the loser gets InsufficientStockError.
- Item snapshots copy name/price/image at order time.
- Payment confirmations are idempotent on checkout_session_id (unique).
- After creation only payment_status / fulfillment_status change. Status
  transitions are not forward-only checked; admins may set any valid value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Cart,
    Order,
    OrderItem,
    Product,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    FULFILLMENT_PROCESSING,
    FULFILLMENT_STATUSES,
    SHIPPING_FIELDS,
)
from ..validation import NotFoundError, ValidationError, parse_int
from .cart_service import empty_cart
from .concurrency import conditional_update, lock_for_update, run_with_retry
from .permission_service import PermissionDeniedError, require_admin, require_owner_or_admin
from .products_service import ProductNotFoundError


class OrderError(ValueError):
    """Raised for order operation errors (400)."""
    pass


class InsufficientStockError(OrderError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int


# =============================================================================
# INPUT PARSING
# =============================================================================

def parse_order_lines(items) -> list[OrderLine]:
    """
    Validate requested lines and merge repeats of the same product.

    Accepts {"product_id": 1, "quantity": 2} (or "product" for the product id).
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("No items in order")

    merged: dict[int, int] = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        product_ref = raw.get("product_id", raw.get("product"))
        if product_ref is None:
            raise ValidationError("Each item requires product_id")
        product_id = parse_int(product_ref, "product_id")
        quantity = parse_int(raw.get("quantity", 1), "quantity")
        if quantity < 1:
            raise ValidationError("quantity must be >= 1")
        merged[product_id] = merged.get(product_id, 0) + quantity

    return [OrderLine(product_id=pid, quantity=qty) for pid, qty in merged.items()]


def parse_shipping_address(address) -> dict:
    """Map an optional address object onto Order.shipping_* columns."""
    if address is None:
        return {}
    if not isinstance(address, dict):
        raise ValidationError("shipping_address must be an object")

    # camelCase zipCode is what storefront clients historically sent
    if "zipCode" in address and "zip_code" not in address:
        address = {**address, "zip_code": address["zipCode"]}
        address.pop("zipCode")

    unknown = set(address) - set(SHIPPING_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown shipping fields: {', '.join(sorted(unknown))}")

    columns = Order.__table__.c
    values = {}
    for field in SHIPPING_FIELDS:
        value = address.get(field)
        if value is None:
            continue
        value = str(value).strip()
        limit = columns[f"shipping_{field}"].type.length
        if limit and len(value) > limit:
            raise ValidationError(f"{field} exceeds max length {limit}")
        values[f"shipping_{field}"] = value or None
    return values


# =============================================================================
# ORDER CREATION
# =============================================================================

def _reserve_lines(lines: list[OrderLine]) -> tuple[Decimal, list[OrderItem]]:
    """
    Decrement stock for every line and build the item snapshot.

    Must run inside the caller's transaction; raising leaves the rollback to
    the caller.
    """
    total = Decimal("0.00")
    snapshot: list[OrderItem] = []

    for line in lines:
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if product is None:
            raise ProductNotFoundError(f"Product not found: {line.product_id}")
        if product.stock < line.quantity:
            raise InsufficientStockError(f"Insufficient stock for {product.name}")

        updated = conditional_update(
            db.session.query(Product).filter(
                Product.id == product.id,
                Product.stock >= line.quantity,
            ),
            {
                Product.stock: Product.stock - line.quantity,
                Product.version_id: Product.version_id + 1,
            },
        )
        if updated == 0:
            # Lost the race to a concurrent order between read and update
            raise InsufficientStockError(f"Insufficient stock for {product.name}")

        total += product.price * line.quantity
        snapshot.append(OrderItem(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=line.quantity,
            image=product.image,
        ))

    return total, snapshot


def create_order_from_items(identity, items, shipping_address=None) -> Order:
    """
    Create a pending order from explicit lines and clear the caller's cart.

    Raises:
        ValidationError: malformed items or address
        ProductNotFoundError: a line references a missing product
        InsufficientStockError: a line asks for more than is on hand
    """
    lines = parse_order_lines(items)
    shipping = parse_shipping_address(shipping_address)

    def _op():
        try:
            total, snapshot = _reserve_lines(lines)
            order = Order(
                user_id=identity.user_id,
                total_amount=total,
                payment_status=PAYMENT_PENDING,
                fulfillment_status=FULFILLMENT_PROCESSING,
                items=snapshot,
                **shipping,
            )
            db.session.add(order)

            cart = db.session.query(Cart).filter_by(user_id=identity.user_id).first()
            if cart is not None:
                empty_cart(cart)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    return run_with_retry(_op)


def find_order_by_checkout_session(checkout_session_id: str) -> Order | None:
    return db.session.query(Order).filter_by(checkout_session_id=checkout_session_id).first()


def create_order_from_payment(
    user_id: int,
    cart_id: int,
    *,
    payment_reference: str | None,
    checkout_session_id: str,
) -> Order | None:
    """
    Convert a paid cart into a paid order.

    Idempotent on checkout_session_id: a replayed confirmation returns the
    order created the first time and changes nothing. A cart that is
    missing or already empty yields None.

    Raises:
        InsufficientStockError: stock ran out between checkout and payment;
            nothing is written and the caller must reconcile the payment
    """
    def _op():
        existing = find_order_by_checkout_session(checkout_session_id)
        if existing is not None:
            return existing

        cart = db.session.get(Cart, cart_id)
        if cart is None or cart.user_id != user_id or not cart.items:
            return None

        lines = [OrderLine(product_id=item.product_id, quantity=item.quantity) for item in cart.items]
        try:
            total, snapshot = _reserve_lines(lines)
            order = Order(
                user_id=user_id,
                total_amount=total,
                payment_status=PAYMENT_PAID,
                fulfillment_status=FULFILLMENT_PROCESSING,
                payment_reference=payment_reference,
                checkout_session_id=checkout_session_id,
                items=snapshot,
            )
            db.session.add(order)
            empty_cart(cart)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    try:
        return run_with_retry(_op)
    except IntegrityError:
        # Concurrent delivery of the same event won the unique constraint
        db.session.rollback()
        existing = find_order_by_checkout_session(checkout_session_id)
        if existing is None:
            raise
        return existing


# =============================================================================
# ORDER QUERIES
# =============================================================================

def list_orders(identity) -> list[Order]:
    """Admins see every order, customers their own; newest first."""
    query = db.session.query(Order)
    if not identity.is_admin:
        query = query.filter(Order.user_id == identity.user_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(identity, order_id: int) -> Order:
    """
    Fetch one order for its owner or an admin.

    Non-admins get PermissionDeniedError for both foreign and missing
    orders, so order ids cannot be probed. Admins get OrderNotFoundError
    for missing ids.
    """
    order = db.session.get(Order, order_id)
    if order is None:
        if not identity.is_admin:
            raise PermissionDeniedError("Access denied")
        raise OrderNotFoundError("Order not found")

    require_owner_or_admin(identity, order.user_id)
    return order


def update_order_status(
    identity,
    order_id: int,
    payment_status: str | None = None,
    fulfillment_status: str | None = None,
) -> Order:
    """
    Set either status axis. Admin only.

    Values are validated against their enums; the transition itself is not
    (delivered -> processing is accepted).
    """
    require_admin(identity)

    if payment_status is None and fulfillment_status is None:
        raise ValidationError("payment_status or fulfillment_status required")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    if fulfillment_status is not None and fulfillment_status not in FULFILLMENT_STATUSES:
        raise ValidationError(
            f"fulfillment_status must be one of: {', '.join(FULFILLMENT_STATUSES)}"
        )

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError("Order not found")

    if payment_status is not None:
        order.payment_status = payment_status
    if fulfillment_status is not None:
        order.fulfillment_status = fulfillment_status
    db.session.commit()
    return order
