# backend/storefront/routes/system.py
"""
System health and version endpoints.

Not wrapped in the {success, data} envelope: load balancers and uptime
checks read the status code and top-level "status" field directly.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, User, Order
from ..services.payment_gateway import FakeGateway, StripeGateway, get_gateway
from storefront.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        user_count = db.session.query(User).count()
        order_count = db.session.query(Order).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "users": user_count,
                "orders": order_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_payment_gateway_health() -> dict:
    """
    Report which gateway is wired and whether it has credentials.

    No network call is made; a missing Stripe key is "degraded" because the
    catalog and cart still work without checkout.
    """
    gateway = get_gateway()
    if isinstance(gateway, FakeGateway):
        return {"status": "healthy", "details": {"gateway": "fake"}}
    if isinstance(gateway, StripeGateway):
        missing = [
            name for name, value in (
                ("STRIPE_SECRET_KEY", gateway.api_key),
                ("STRIPE_WEBHOOK_SECRET", gateway.webhook_secret),
            ) if not value
        ]
        if missing:
            return {
                "status": "degraded",
                "warning": f"Missing configuration: {', '.join(missing)}",
                "details": {"gateway": "stripe"},
            }
        return {"status": "healthy", "details": {"gateway": "stripe"}}
    return {"status": "degraded", "warning": "Unknown gateway"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    gateway_health = check_payment_gateway_health()

    all_checks = [database_health, gateway_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "payment_gateway": gateway_health,
        }
    }, http_status
