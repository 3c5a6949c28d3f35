from functools import wraps
from flask import current_app, g, jsonify, request

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"


def role_names(user) -> set:
    return {r.name for r in user.roles} if user else set()


def require_roles(*names: str):
    """401 without a session, 403 when the user holds none of ``names``."""
    wanted = set(names)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            if not wanted & role_names(user):
                current_app.logger.info("Forbidden %s %s for user %s", request.method, request.path, user.id)
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator


# one staff role; every /admin endpoint is behind it
admin_required = require_roles(ROLE_ADMIN)
