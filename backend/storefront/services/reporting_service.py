# Overview: Aggregate figures for the admin dashboard.

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Order, Product, PAYMENT_PAID, FULFILLMENT_PROCESSING
from .permission_service import require_admin


def dashboard_stats(identity) -> dict:
    """
    Headline numbers for the admin console.

    Revenue counts paid orders only; pending_orders counts orders still in
    the processing fulfillment stage regardless of payment.
    """
    require_admin(identity)

    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    total_orders = db.session.query(func.count(Order.id)).scalar() or 0
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.payment_status == PAYMENT_PAID)
        .scalar()
    )
    pending_orders = (
        db.session.query(func.count(Order.id))
        .filter(Order.fulfillment_status == FULFILLMENT_PROCESSING)
        .scalar()
        or 0
    )

    return {
        "total_products": int(total_products),
        "total_orders": int(total_orders),
        "total_revenue": float(Decimal(str(revenue)).quantize(Decimal("0.01"))),
        "pending_orders": int(pending_orders),
    }
