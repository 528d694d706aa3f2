# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/facturflow/routes/auth.py
"""
Authentication API routes

- Self-registration with password strength validation
- Token-based sessions (Authorization: Bearer <token>)
- Logout revokes the presented token
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import auth_service, session_service
from .responses import DOMAIN_ERRORS, error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/register")
def register_route():
    """
    Create an account and open a session.

    Body: name, email, password, confirm_password
    Returns 201 with user + token, 400 on invalid data, 409 on duplicate email.
    """
    try:
        user = auth_service.register(request.get_json(silent=True))
        return jsonify({**_session_payload(user), "message": "Account created"}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """Authenticate with email + password; returns user info and session token."""
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        return jsonify({**_session_payload(user), "message": "Login successful"}), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token, reason="Logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
