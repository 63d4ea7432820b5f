# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service, store_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the authenticated User.
    Returns 401 for a missing header or an invalid, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

        token = auth_header.split(" ", 1)[1]
        user = session_service.validate_session(token)

        if not user:
            return jsonify({"error": "Invalid or expired token", "code": "INVALID_TOKEN"}), 401

        g.current_user = user
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_permission(area: str, action: str):
    """Require an (area, action) capability. Use below @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

            if not permission_service.has_permission(g.current_user, area, action):
                return jsonify({
                    "error": "Permission denied",
                    "code": "PERMISSION_DENIED",
                    "required_permission": f"{area}:{action}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_store_access(f):
    """
    Resolve the store_id URL parameter and check the user may work in it.

    Sets g.store. Missing stores and stores of another owner both answer
    404 so store ids are not enumerable.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

        store = store_service.get_store(kwargs.get("store_id"))
        if store is None or not permission_service.can_access_store(g.current_user, store):
            return jsonify({"error": "Store not found", "code": "STORE_NOT_FOUND"}), 404

        g.store = store
        return f(*args, **kwargs)

    return decorated_function
