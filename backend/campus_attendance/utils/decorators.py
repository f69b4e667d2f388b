"""Custom decorators for authentication and authorization."""
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from campus_attendance import db
from campus_attendance.models.user import INSTRUCTOR_LEVEL, LAB_MANAGER_LEVEL, ADMIN_LEVEL
from campus_attendance.services.auth_service import AuthService
from campus_attendance.utils.errors import AuthenticationError
from campus_attendance.utils.helpers import error_response

def _resolve_identity():
    g.identity = AuthService(db.session).resolve_identity(get_jwt_identity(), get_jwt())
    return g.identity

def current_identity():
    """Identity of the caller, resolved once per request."""
    if 'identity' not in g:
        return _resolve_identity()
    return g.identity

def login_required(f):
    """Require a valid bearer token that maps to an active user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        try:
            _resolve_identity()
        except AuthenticationError as e:
            return error_response(e.message, 401, code=e.code)
        return f(*args, **kwargs)
    return decorated_function

def role_level_required(min_level: int, label: str):
    """Require at least ``min_level`` on the caller's role."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            try:
                identity = _resolve_identity()
            except AuthenticationError as e:
                return error_response(e.message, 401, code=e.code)

            if identity.role_level < min_level:
                return error_response(f"{label} access required", 403, code='AUTHORIZATION_ERROR')

            return f(*args, **kwargs)
        return decorated_function
    return decorator

instructor_required = role_level_required(INSTRUCTOR_LEVEL, 'Instructor')
lab_manager_required = role_level_required(LAB_MANAGER_LEVEL, 'Lab manager')
admin_required = role_level_required(ADMIN_LEVEL, 'Admin')
