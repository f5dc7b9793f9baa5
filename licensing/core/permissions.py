# licensing/core/permissions.py
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from .constants import Permission
from .exceptions import PermissionDenied


def has_permission(claims, permission):
    """Check whether the token claims grant a permission"""
    if claims.get("platform_admin", False):
        return True

    perm_value = permission.value if isinstance(permission, Permission) else str(permission)
    return perm_value in (claims.get("permissions") or [])


def require_permission(permission, tenant_scoped=False):
    """
    Require a valid JWT carrying ``permission``.

    With ``tenant_scoped`` the ``tenant_id`` view argument must match the
    token's ``tenant_id`` claim; platform admins may act on any tenant.
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt()

            if not has_permission(claims, permission):
                raise PermissionDenied(
                    f"User does not have required permission: {getattr(permission, 'value', permission)}"
                )

            if tenant_scoped and not claims.get("platform_admin", False):
                if claims.get("tenant_id") != kwargs.get("tenant_id"):
                    raise PermissionDenied("Token is not valid for this tenant")

            g.actor_id = get_jwt_identity()
            return f(*args, **kwargs)

        return decorated_function

    return decorator
