# Overview: Service-layer operations for bearer tokens; no database work.

"""
Signed Bearer Token Service

Tokens are stateless: an itsdangerous timestamp-signed payload carrying the
user id, email and role, signed with the app SECRET_KEY. Validity is a
fixed TOKEN_MAX_AGE (7 days by default) from issue time.

There is no server-side revocation. Logging out means the client discards
the token; a leaked token stays valid until it expires. Rotating SECRET_KEY
invalidates every outstanding token at once.
"""

from dataclasses import dataclass

from flask import current_app
from itsdangerous import BadData, URLSafeTimedSerializer

from ..models import User, ROLE_ADMIN, VALID_ROLES


TOKEN_SALT = "storefront.auth.token"


@dataclass(frozen=True)
class Identity:
    """
    Request-scoped caller identity.

    Built from a verified token and passed explicitly into every service
    call; services never read a global "current user".
    """
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {"id": self.user_id, "email": self.email, "role": self.role}


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(identity: Identity) -> str:
    return _serializer().dumps({
        "uid": identity.user_id,
        "email": identity.email,
        "role": identity.role,
    })


def verify_token(token: str) -> Identity | None:
    """
    Return the Identity for a valid token, None otherwise.

    Expired, tampered and malformed tokens all produce None; callers get no
    hint about which check failed.
    """
    max_age = current_app.config["TOKEN_MAX_AGE"]
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except BadData:
        return None

    if not isinstance(payload, dict):
        return None
    user_id = payload.get("uid")
    email = payload.get("email")
    role = payload.get("role")
    if not isinstance(user_id, int) or not isinstance(email, str) or role not in VALID_ROLES:
        return None

    return Identity(user_id=user_id, email=email, role=role)


def extract_bearer_token(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None
