"""Authentication API."""
from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from campus_attendance import db, limiter
from campus_attendance.services.auth_service import AuthService
from campus_attendance.utils.decorators import current_identity, login_required
from campus_attendance.utils.helpers import success_response, error_response

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Login with email or username."""
    data = request.get_json(silent=True)

    if not data:
        return error_response("Request body must be JSON", 400)

    login_value = (data.get("login") or data.get("email") or data.get("username") or "").strip()
    password = data.get("password", "")

    if not login_value or not password:
        return error_response("Login and password are required", 400)

    result, error = AuthService(db.session).login(login_value, password)

    if error:
        return error_response(error, 401, code="AUTHENTICATION_ERROR")

    return success_response(data=result, message="Login successful")

@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    """Issue a fresh access token from a refresh token."""
    service = AuthService(db.session)
    user = service.get_user(int(get_jwt_identity()))
    if not user or not user.is_active:
        return error_response("User not found or inactive", 401, code="AUTHENTICATION_ERROR")

    tokens = service.issue_tokens(user)
    return success_response(data={"access_token": tokens["access_token"]})

@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    """Current user profile."""
    identity = current_identity()
    user = AuthService(db.session).get_user(identity.user_id)
    return success_response(data=user.to_dict())
