"""Application exceptions mapped to HTTP responses."""

class AttendanceError(Exception):
    """Base error carrying the HTTP status it is reported with."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class BadRequestError(AttendanceError):
    status_code = 400
    default_message = "Invalid payload"

class ExpiredTokenError(BadRequestError):
    """Token timestamp is outside the validity window (either side)."""
    default_message = "QR expired"

class InvalidSignatureError(AttendanceError):
    status_code = 401
    default_message = "Invalid signature"

class AuthenticationError(AttendanceError):
    status_code = 401
    default_message = "Invalid email or password"

class ForbiddenError(AttendanceError):
    status_code = 403
    default_message = "Access denied"

class NotFoundError(AttendanceError):
    status_code = 404
    default_message = "Not found"

class ConfigurationError(AttendanceError):
    """Operator-fixable deployment problem, never a per-request condition."""
    status_code = 500
    default_message = "Signing secret not configured"
