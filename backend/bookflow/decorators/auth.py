from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request
from bookflow.domain import UserRole
from bookflow.exceptions import PermissionDenied
from bookflow.services.identity import current_actor


def require_roles(*roles: UserRole):
    """Verify the JWT, expose the caller as ``g.actor`` and gate on role (no roles = any signed-in user)."""
    allowed = {UserRole(r) for r in roles}

    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            actor = current_actor()
            if allowed and actor.role not in allowed:
                raise PermissionDenied('Role not allowed', role=actor.role.value, action=fn.__name__)
            g.actor = actor
            return fn(*args, **kwargs)
        return wrapper
    return outer
