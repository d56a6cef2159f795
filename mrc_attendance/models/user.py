"""User model for authentication and authorization."""
import secrets
from enum import Enum
from werkzeug.security import generate_password_hash, check_password_hash
from mrc_attendance import db
from mrc_attendance.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    CAANG = 'caang'
    MEMBER = 'member'
    RECRUITER = 'recruiter'
    ADMIN = 'admin'
    SUPER_ADMIN = 'super_admin'

def generate_uid() -> str:
    return secrets.token_urlsafe(20)

class User(BaseModel):
    """Club member or staff account."""

    __tablename__ = 'users'

    # Public identity, used as attendance userId and JWT subject
    uid = db.Column(db.String(64), unique=True, nullable=False, index=True, default=generate_uid)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.CAANG)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    def is_manager(self) -> bool:
        """Recruiters and admins manage activity attendance."""
        return self.role in (UserRole.RECRUITER, UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @classmethod
    def get_by_uid(cls, uid: str) -> 'User':
        return cls.query.filter_by(uid=uid).first()

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        default_exclude = ['password_hash']
        exclude = (exclude or []) + default_exclude

        result = super().to_dict(exclude=exclude)
        result['role'] = self.role.value if self.role else None

        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
