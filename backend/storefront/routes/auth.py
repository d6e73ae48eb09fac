# Overview: Flask API routes for login, logout and the current user.

# backend/storefront/routes/auth.py
"""
Authentication API routes.

Accounts are provisioned by administrators (CLI: flask users create);
there is no self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import auth_service
from ..services import session_service
from ..services.permission_service import get_user_permissions
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    The token must be sent as `Authorization: Bearer <token>` on protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return jsonify({"error": "ValidationFailed", "message": "email and password required"}), 400

    try:
        user = auth_service.authenticate(db.session, email, password)
        if not user:
            current_app.logger.info("Failed login for %s from %s", email, request.remote_addr)
            return jsonify({"error": "Unauthorized", "message": "Invalid credentials"}), 401

        _, token = session_service.create_session(
            db.session,
            user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Error", "message": "Internal server error"}), 500

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "permissions": sorted(get_user_permissions(user)),
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(db.session, bearer_token(), reason="Logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(g.auth.permissions),
    }), 200
