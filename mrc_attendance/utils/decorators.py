"""Custom decorators for authorization."""
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity
from mrc_attendance.models.user import User
from mrc_attendance.utils.helpers import error_response

def _load_current_user():
    user = User.get_by_uid(get_jwt_identity())
    if user is not None and user.is_active:
        g.current_user = user
        return user
    return None

def login_user_required(f):
    """Decorator to require an active account behind the JWT."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _load_current_user() is None:
            return error_response("User not found", 404)

        return f(*args, **kwargs)
    return decorated_function

def manager_required(f):
    """Decorator to require recruiter role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_manager():
            return error_response("Manager access required", 403)

        return f(*args, **kwargs)
    return decorated_function

def admin_required(f):
    """Decorator to require admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_admin():
            return error_response("Admin access required", 403)

        return f(*args, **kwargs)
    return decorated_function
