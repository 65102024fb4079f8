from .auth import User, ROLE_USER, ROLE_ADMIN, VALID_ROLES
from .inventory import Product
from .carts import Cart, CartItem
from .orders import (
    Order,
    OrderItem,
    PAYMENT_PENDING,
    PAYMENT_PAID,
    PAYMENT_FAILED,
    PAYMENT_STATUSES,
    FULFILLMENT_PROCESSING,
    FULFILLMENT_SHIPPED,
    FULFILLMENT_DELIVERED,
    FULFILLMENT_CANCELLED,
    FULFILLMENT_STATUSES,
    SHIPPING_FIELDS,
)

__all__ = [
    'User', 'ROLE_USER', 'ROLE_ADMIN', 'VALID_ROLES',
    'Product',
    'Cart', 'CartItem',
    'Order', 'OrderItem',
    'PAYMENT_PENDING', 'PAYMENT_PAID', 'PAYMENT_FAILED', 'PAYMENT_STATUSES',
    'FULFILLMENT_PROCESSING', 'FULFILLMENT_SHIPPED', 'FULFILLMENT_DELIVERED',
    'FULFILLMENT_CANCELLED', 'FULFILLMENT_STATUSES',
    'SHIPPING_FIELDS',
]
