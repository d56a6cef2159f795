"""Attendance record model."""
from enum import Enum
from mrc_attendance import db
from mrc_attendance.models.base import BaseModel
from mrc_attendance.utils.helpers import utcnow, to_iso
from mrc_attendance.utils.validators import MAX_ID_LENGTH

SCANNER_IDENTITY = 'admin-scan-api'

class AttendanceStatus(Enum):
    """Attendance status enumeration."""
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    PERMISSION = 'permission'
    SICK = 'sick'
    INVALID = 'invalid'

class AttendanceRecord(BaseModel):
    """Attendance of one user at one activity."""

    __tablename__ = 'attendance'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'activity_id', name='uq_attendance_user_activity'),
    )

    user_id = db.Column(db.String(MAX_ID_LENGTH), nullable=False, index=True)
    activity_id = db.Column(db.String(MAX_ID_LENGTH), nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)

    # When the scan (or manual edit) was accepted
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    verified_by = db.Column(db.String(MAX_ID_LENGTH), nullable=False, default=SCANNER_IDENTITY)
    notes = db.Column(db.Text, nullable=True)

    @classmethod
    def find(cls, user_id: str, activity_id: str) -> 'AttendanceRecord':
        return cls.query.filter_by(user_id=user_id, activity_id=activity_id).first()

    def to_dict(self, exclude: list = None) -> dict:
        """Wire format used by the scanner and admin clients."""
        return {
            'id': self.id,
            'userId': self.user_id,
            'activityId': self.activity_id,
            'status': self.status.value if self.status else None,
            'timestamp': to_iso(self.timestamp) if self.timestamp else None,
            'verifiedBy': self.verified_by,
            'notes': self.notes,
            'createdAt': to_iso(self.created_at) if self.created_at else None,
            'updatedAt': to_iso(self.updated_at) if self.updated_at else None
        }

    def __repr__(self):
        return f'<AttendanceRecord {self.user_id}-{self.activity_id}>'
