"""Authentication service for user management."""
from flask_jwt_extended import create_access_token, create_refresh_token
from mrc_attendance.models.user import User
from mrc_attendance.utils.errors import AuthenticationError, BadRequestError
from mrc_attendance.utils.helpers import utcnow
from mrc_attendance.utils.validators import Validator

class AuthService:
    @staticmethod
    def login(email: str, password: str) -> dict:
        """Authenticate user and return tokens."""
        if not email or not password:
            raise BadRequestError("Email and password are required")

        if not Validator.validate_email(email):
            raise BadRequestError("Invalid email format")

        user = User.query.filter_by(email=email.lower().strip()).first()

        if not user or not user.check_password(password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login = utcnow()
        user.save()

        return {
            "access_token": create_access_token(identity=user.uid),
            "refresh_token": create_refresh_token(identity=user.uid),
            "user": user.to_dict()
        }

    @staticmethod
    def refresh_token(uid: str) -> dict:
        """Generate new access token."""
        user = User.get_by_uid(uid)
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return {
            "access_token": create_access_token(identity=user.uid),
            "user": user.to_dict()
        }
