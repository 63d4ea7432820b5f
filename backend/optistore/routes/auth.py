# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/optistore/routes/auth.py
"""
Authentication API routes

Self-registration is disabled: owners are created with the CLI
(flask users create-owner), employees by their owner through
POST /api/auth/employees.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError, UserError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)

        if not user:
            current_app.logger.info("Failed login for %s", username)
            return jsonify({"error": "Invalid credentials", "code": "INVALID_CREDENTIALS"}), 401

        session, token = session_service.create_session(user.id)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not session_service.revoke_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/employees")
@require_auth
def create_employee_route():
    """
    Owner creates an employee account.

    Body: username, email, password, name, permissions {area: [actions]},
    assigned_store_ids [int].
    """
    if not g.current_user.is_owner:
        return jsonify({"error": "Only owners can create employees", "code": "PERMISSION_DENIED"}), 403

    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_employee(
            g.current_user,
            data.get("username"),
            data.get("email"),
            data.get("password"),
            data.get("name"),
            permissions=data.get("permissions"),
            assigned_store_ids=data.get("assigned_store_ids"),
        )
        return jsonify({"user": user.to_dict()}), 201

    except (PasswordValidationError, UserError, ValueError) as e:
        return jsonify({"error": str(e), "code": "INVALID_USER"}), 400
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500
