# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .services import session_service
from .services.permission_service import build_auth_context


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'auth')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and resolve the caller's capabilities.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.auth: AuthContext handed to every service call

    Returns 401 if the Authorization header is missing, the token is unknown,
    expired or revoked, or the user has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

        user = session_service.validate_session(db.session, token)
        if not user:
            return jsonify({"error": "Unauthorized", "message": "Invalid or expired token"}), 401

        g.current_user = user
        g.auth = build_auth_context(
            user,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission (use after @require_auth)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

            if not g.auth.can(permission_code):
                return jsonify({
                    "error": "Forbidden",
                    "message": "Permission denied",
                    "details": {"required_permission": permission_code},
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
