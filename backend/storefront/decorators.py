# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, g

from .responses import failure
from .services import token_service


def current_identity():
    return getattr(g, "identity", None)


def require_auth(f):
    """
    Require a valid bearer token and establish the request identity.

    Sets g.identity (token_service.Identity). Routes pass it explicitly into
    service calls; services never read g themselves.

    Returns 401 if:
    - No Authorization header, or not a Bearer header
    - Token invalid, tampered with, or expired (indistinguishable)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = token_service.extract_bearer_token(request.headers.get("Authorization"))
        if not token:
            return failure("Not authenticated", 401)

        identity = token_service.verify_token(token)
        if identity is None:
            return failure("Invalid or expired token", 401)

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Reject non-admin callers with 403 before the route body runs.

    Must be stacked under @require_auth. Services repeat the check, so this
    is an early exit rather than the only gate.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = current_identity()
        if identity is None:
            return failure("Not authenticated", 401)
        if not identity.is_admin:
            return failure("Access denied. Admin only.", 403)
        return f(*args, **kwargs)

    return decorated_function
