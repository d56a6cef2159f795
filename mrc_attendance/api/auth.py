"""Authentication API."""
from flask import Blueprint, request, g
from flask_jwt_extended import jwt_required, get_jwt_identity
from mrc_attendance import limiter
from mrc_attendance.services.auth_service import AuthService
from mrc_attendance.utils.decorators import login_user_required
from mrc_attendance.utils.helpers import success_response, error_response

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Email and password login."""
    data = request.get_json(silent=True)

    if not isinstance(data, dict):
        return error_response("Request body must be JSON", 400)

    result = AuthService.login(
        str(data.get("email") or "").strip(),
        str(data.get("password") or "")
    )
    return success_response(data=result, message="Login successful")

@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    """Exchange a refresh token for a new access token."""
    result = AuthService.refresh_token(get_jwt_identity())
    return success_response(data=result, message="Token refreshed")

@auth_bp.route("/me", methods=["GET"])
@jwt_required()
@login_user_required
def me():
    """Current user profile."""
    return success_response(data=g.current_user.to_dict())
