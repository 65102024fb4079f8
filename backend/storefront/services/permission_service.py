# Overview: Role and ownership checks applied at the service boundary.

"""
Permission checks.

Admin screens are not protected by hiding them in the client: every admin
operation calls require_admin() with the caller's Identity, and order reads
call require_owner_or_admin(). Route decorators exist too, but the service
check is the one that always runs.
"""


class PermissionDeniedError(Exception):
    """Raised when the caller's role or ownership does not allow an action."""
    pass


def require_admin(identity) -> None:
    if identity is None or not identity.is_admin:
        raise PermissionDeniedError("Access denied. Admin only.")


def require_owner_or_admin(identity, owner_user_id: int | None) -> None:
    if identity is None:
        raise PermissionDeniedError("Access denied")
    if identity.is_admin:
        return
    if owner_user_id is None or owner_user_id != identity.user_id:
        raise PermissionDeniedError("Access denied")
