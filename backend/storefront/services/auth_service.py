# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Account registration and password authentication.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Emails are stripped and lower-cased before storage and lookup
- Bearer tokens are issued separately (see token_service.py)
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_USER, VALID_ROLES
from ..validation import ConflictError, ValidationError
from storefront.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Raised when email/password do not match an account."""
    pass


class RoleMismatchError(Exception):
    """Raised when valid credentials are presented for the wrong role."""
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _require_text(value, field: str) -> str:
    """Reject JSON numbers, lists and objects where a string is expected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def validate_password_strength(password: str) -> None:
    """Raises PasswordValidationError if the password is too weak."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing. The cost factor is
    configurable so the test suite can run with a cheap one.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes). bcrypt.checkpw() compares in constant time.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def register_user(name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    """
    Create a new account.

    Self-registration as admin only takes effect when ALLOW_ADMIN_REGISTRATION
    is enabled; otherwise the account silently becomes a regular user.
    Admins are normally created with `flask users create --role admin`.

    Raises:
        ValidationError: missing or non-string name/email/password, or unknown role
        PasswordValidationError: weak password
        ConflictError: email already registered
    """
    name = _require_text(name, "name").strip()
    email = normalize_email(_require_text(email, "email"))
    password = _require_text(password, "password")
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")
    if "@" not in email:
        raise ValidationError("email is not valid")
    if not isinstance(role, str) or role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    if role == ROLE_ADMIN and not current_app.config.get("ALLOW_ADMIN_REGISTRATION", False):
        role = ROLE_USER

    return create_user(name=name, email=email, password=password, role=role)


def create_user(*, name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    """Insert a user row; shared by registration and the CLI."""
    email = normalize_email(email)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("User already exists with this email")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str, role: str = ROLE_USER) -> User:
    """
    Authenticate by email and password, then require the requested role.

    The storefront and admin console log in through the same endpoint; the
    caller states which side it is logging into and an account of the other
    role is refused even with the right password.

    Raises:
        ValidationError: email, password or role is not a string
        AuthenticationError: unknown email or wrong password
        RoleMismatchError: credentials valid but account role differs
    """
    email = _require_text(email, "email")
    password = _require_text(password, "password")
    if not isinstance(role, str):
        raise ValidationError("role must be a string")

    user = db.session.query(User).filter(User.email == normalize_email(email)).first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    if user.role != role:
        raise RoleMismatchError(f"Access denied. This account is not registered as {role}")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
