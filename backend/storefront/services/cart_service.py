# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart Service

Each user has exactly one cart, created lazily the first time it is read
or written. Every operation here takes the caller's Identity and only ever
touches that identity's cart.

Line rules:
- one line per product; adding an existing product accumulates quantity
- a line whose quantity would drop to <= 0 is removed, never stored
- no stock check happens here; stock is checked when an order is created
"""

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem
from ..validation import ValidationError, parse_int
from storefront.time_utils import utcnow
from .concurrency import run_with_retry
from .products_service import get_product


MODE_INCREMENT = "increment"
MODE_SET = "set"
MODE_REMOVE = "remove"
VALID_MODES = (MODE_INCREMENT, MODE_SET, MODE_REMOVE)


class CartError(ValueError):
    """Raised for invalid cart operations (400)."""
    pass


def get_or_create_cart(user_id: int) -> Cart:
    cart = db.session.query(Cart).filter_by(user_id=user_id).first()
    if cart is not None:
        return cart

    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it between our read and insert
        db.session.rollback()
        cart = db.session.query(Cart).filter_by(user_id=user_id).one()
    return cart


def get_cart(identity) -> Cart:
    return get_or_create_cart(identity.user_id)


def get_cart_by_id(cart_id: int) -> Cart | None:
    return db.session.get(Cart, cart_id)


def update_cart(identity, product_id, quantity=None, mode: str | None = None) -> Cart:
    """
    Add to, set, or remove a line in the caller's cart.

    Modes:
    - increment (default): add `quantity` (default 1) to the line
    - set: make the line exactly `quantity` (required)
    - remove: drop the line regardless of quantity

    Returns the full cart with product details resolved.

    Raises:
        CartError: unknown mode
        ValidationError: non-integer product_id/quantity, or set without quantity
        ProductNotFoundError: product does not exist
    """
    mode = mode or MODE_INCREMENT
    if mode not in VALID_MODES:
        raise CartError(f"action must be one of: {', '.join(VALID_MODES)}")

    if product_id is None:
        raise ValidationError("productId is required")
    product_id = parse_int(product_id, "productId")
    if quantity is not None:
        quantity = parse_int(quantity, "quantity")
    if mode == MODE_SET and quantity is None:
        raise ValidationError("quantity is required for set")

    # 404 before we touch the cart
    get_product(product_id)

    def _op():
        cart = get_or_create_cart(identity.user_id)
        item = cart.find_item(product_id)

        if mode == MODE_REMOVE:
            if item is not None:
                cart.items.remove(item)
        else:
            step = 1 if quantity is None else quantity
            if mode == MODE_SET:
                new_quantity = quantity
            elif item is not None:
                new_quantity = item.quantity + step
            else:
                new_quantity = step

            if new_quantity <= 0:
                if item is not None:
                    cart.items.remove(item)
            elif item is not None:
                item.quantity = new_quantity
            else:
                cart.items.append(CartItem(product_id=product_id, quantity=new_quantity))

        cart.updated_at = utcnow()
        db.session.commit()
        return cart

    try:
        return run_with_retry(_op)
    except IntegrityError:
        # A concurrent request inserted the same line first; apply on top of it
        db.session.rollback()
        return run_with_retry(_op)


def clear_cart(identity) -> Cart:
    cart = get_or_create_cart(identity.user_id)
    empty_cart(cart)
    db.session.commit()
    return cart


def empty_cart(cart: Cart) -> None:
    """Remove every line without committing; callers own the transaction."""
    cart.items.clear()
    cart.updated_at = utcnow()
