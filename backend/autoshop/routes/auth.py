# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/autoshop/routes/auth.py
"""
Authentication API routes

Login hands out an opaque bearer token; every protected route expects it in
the Authorization header.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "email": "client@example.com",
        "password": "secret123"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"success": False, "message": "Email and password are required"}), 400

        user = auth_service.authenticate(email, password)

        if not user:
            return jsonify({"success": False, "message": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        current_app.logger.info("User %s logged in", user.id)
        return jsonify({
            "success": True,
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token = request.headers.get("Authorization", "").split(" ", 1)[1]
        session_service.revoke_session(token)
        return jsonify({"success": True, "message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "user": g.current_user.to_dict()}), 200
