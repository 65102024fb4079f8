# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- Register and login both return a signed bearer token
- Logout is acknowledgement only: tokens are stateless and the client
  discards its copy
- /me resolves the token back to the stored account
"""

from flask import Blueprint, request, current_app, g

from ..services import auth_service
from ..services import token_service
from ..services.auth_service import (
    AuthenticationError,
    PasswordValidationError,
    RoleMismatchError,
)
from ..models import ROLE_USER
from ..validation import ValidationError, ConflictError, json_object
from ..decorators import require_auth
from ..responses import success, failure


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user) -> dict:
    token = token_service.issue_token(token_service.identity_for(user))
    return {"user": user.to_dict(), "token": token}


@auth_bp.post("/register")
def register_route():
    """
    Create an account and log it in.

    Request body: {"name", "email", "password", "role"?}
    """
    try:
        data = json_object(request.get_json(silent=True))
        user = auth_service.register_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or ROLE_USER,
        )
        return success(_session_payload(user), 201)

    except (ValidationError, PasswordValidationError) as e:
        return failure(str(e), 400)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return failure("Internal server error", 500)


@auth_bp.post("/login")
def login_route():
    """
    Verify credentials for the requested role and issue a token.

    Request body: {"email", "password", "role"?}  (role defaults to "user";
    the admin console logs in with role "admin")
    """
    try:
        data = json_object(request.get_json(silent=True))
        email = data.get("email")
        password = data.get("password")
        role = data.get("role") or ROLE_USER

        if not email or not password:
            return failure("Please provide email and password", 400)

        user = auth_service.authenticate(email, password, role)
        current_app.logger.info("User %s logged in as %s", user.id, role)
        return success(_session_payload(user), 200)

    except ValidationError as e:
        return failure(str(e), 400)
    except AuthenticationError as e:
        return failure(str(e), 401)
    except RoleMismatchError as e:
        return failure(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return failure("Internal server error", 500)


@auth_bp.post("/logout")
def logout_route():
    return success(message="Logged out successfully")


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        user = auth_service.get_user(g.identity.user_id)
        if user is None:
            return failure("User not found", 404)
        return success({"user": user.to_dict()})

    except Exception:
        current_app.logger.exception("Failed to resolve current user")
        return failure("Internal server error", 500)
