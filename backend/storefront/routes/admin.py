# Overview: Flask API routes for the admin console dashboard.

from flask import Blueprint, g

from ..services import reporting_service
from ..services.permission_service import PermissionDeniedError
from ..decorators import require_auth, require_admin
from ..responses import success, failure


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/stats")
@require_auth
@require_admin
def dashboard_stats_route():
    """Product/order counts, paid revenue and orders awaiting fulfillment."""
    try:
        return success(reporting_service.dashboard_stats(g.identity))
    except PermissionDeniedError as e:
        return failure(str(e), 403)
