# Overview: Request identity and role decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g


ROLE_MANAGER = "MANAGER"
ROLE_ADMIN = "ADMIN"

# Roles allowed to close a business day
CLOSING_ROLES = (ROLE_MANAGER, ROLE_ADMIN)


def _is_authenticated() -> bool:
    return bool(getattr(g, "current_user_id", None))


def require_auth(f):
    """
    Require an authenticated caller.

    Identity is asserted by the upstream gateway in two headers (names come
    from AUTH_USER_HEADER / AUTH_ROLE_HEADER). Sets:
    - g.current_user_id: caller identity, used as the default cashier
    - g.current_role: upper-cased role name, may be None

    SECURITY: Returns 401 if the identity header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get(current_app.config["AUTH_USER_HEADER"]) or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        role = (request.headers.get(current_app.config["AUTH_ROLE_HEADER"]) or "").strip().upper()

        g.current_user_id = user_id
        g.current_role = role or None

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require one of the given roles. Must be stacked under @require_auth.

    Returns 403 with the roles that would have been accepted.
    """
    allowed = {role.upper() for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_role not in allowed:
                current_app.logger.warning(
                    "Role %s denied for %s %s (user %s)",
                    g.current_role, request.method, request.path, g.current_user_id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
