"""Attendance record upsert, administration and reporting."""
import io
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pandas as pd
from flask import current_app
from sqlalchemy.exc import IntegrityError

from mrc_attendance import db
from mrc_attendance.models.attendance import AttendanceRecord, AttendanceStatus, SCANNER_IDENTITY
from mrc_attendance.models.user import User
from mrc_attendance.services.qr_service import QRService
from mrc_attendance.utils.errors import BadRequestError, NotFoundError
from mrc_attendance.utils.helpers import utcnow
from mrc_attendance.utils.validators import MAX_ID_LENGTH

class ScanOutcome(Enum):
    """Result of a validated scan."""
    ALREADY_PRESENT = 'already_present'
    UPDATED = 'updated_to_present'
    CREATED = 'created'

    @property
    def status_code(self) -> int:
        return 201 if self is ScanOutcome.CREATED else 200

def parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        allowed = ', '.join(status.value for status in AttendanceStatus)
        raise BadRequestError(f"Invalid status. Allowed: {allowed}") from None

class AttendanceService:
    """Service for attendance records."""

    @staticmethod
    def validate_scan(
        payload,
        secret: Optional[str],
        validity_seconds: int,
        now: Optional[datetime] = None
    ) -> Tuple[ScanOutcome, AttendanceRecord]:
        """Verify a scanned token and mark its user present at its activity."""
        now = now or utcnow()
        user_id, activity_id = QRService.verify_token(payload, secret, validity_seconds, now)
        return AttendanceService.mark_present(user_id, activity_id, now)

    @staticmethod
    def mark_present(
        user_id: str,
        activity_id: str,
        now: Optional[datetime] = None
    ) -> Tuple[ScanOutcome, AttendanceRecord]:
        """
        Upsert the (user, activity) record to present.

        A record already present is left untouched. When a concurrent
        scan inserts the record first, the unique constraint rejects this
        insert and the stored record is used instead.
        """
        now = now or utcnow()
        record = AttendanceRecord.find(user_id, activity_id)

        if record is None:
            record = AttendanceRecord(
                user_id=user_id,
                activity_id=activity_id,
                status=AttendanceStatus.PRESENT,
                timestamp=now,
                verified_by=SCANNER_IDENTITY,
                created_at=now,
                updated_at=now
            )
            db.session.add(record)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                record = AttendanceRecord.find(user_id, activity_id)
                if record is None:
                    raise
                current_app.logger.info(
                    'Concurrent scan already stored attendance for %s at %s', user_id, activity_id
                )
            else:
                return ScanOutcome.CREATED, record

        if record.status == AttendanceStatus.PRESENT:
            return ScanOutcome.ALREADY_PRESENT, record

        record.status = AttendanceStatus.PRESENT
        record.verified_by = SCANNER_IDENTITY
        record.updated_at = now
        db.session.commit()

        return ScanOutcome.UPDATED, record

    @staticmethod
    def set_status(
        activity_id: str,
        user_id: str,
        status: str,
        verified_by: str,
        notes: Optional[str] = None
    ) -> Tuple[AttendanceRecord, bool]:
        """Manually set a status. Returns (record, created)."""
        if len(user_id) > MAX_ID_LENGTH or len(activity_id) > MAX_ID_LENGTH:
            raise BadRequestError(f"Ids must be at most {MAX_ID_LENGTH} characters")

        if notes is not None and not isinstance(notes, str):
            raise BadRequestError("Notes must be a string")

        new_status = parse_status(status)
        now = utcnow()
        notes = (notes or '').strip() or f"Set by admin: {new_status.value}"

        record = AttendanceRecord.find(user_id, activity_id)
        created = record is None

        if created:
            record = AttendanceRecord(
                user_id=user_id,
                activity_id=activity_id,
                timestamp=now,
                created_at=now
            )
            db.session.add(record)

        record.status = new_status
        record.verified_by = verified_by
        record.notes = notes
        record.updated_at = now
        db.session.commit()

        return record, created

    @staticmethod
    def delete_record(activity_id: str, user_id: str) -> None:
        record = AttendanceRecord.find(user_id, activity_id)
        if record is None:
            raise NotFoundError("Attendance record not found")
        record.delete()

    @staticmethod
    def list_for_activity(activity_id: str, status: Optional[str] = None) -> List[Dict]:
        """Records of an activity with the attendee's name and email when known."""
        query = db.session.query(
            AttendanceRecord, User.name, User.email
        ).outerjoin(
            User, User.uid == AttendanceRecord.user_id
        ).filter(
            AttendanceRecord.activity_id == activity_id
        )

        if status:
            query = query.filter(AttendanceRecord.status == parse_status(status))

        results = []
        for record, name, email in query.order_by(AttendanceRecord.timestamp).all():
            item = record.to_dict()
            item['name'] = name
            item['email'] = email
            results.append(item)
        return results

    @staticmethod
    def summarize(activity_id: str) -> Dict:
        counts = {status.value: 0 for status in AttendanceStatus}

        rows = db.session.query(
            AttendanceRecord.status, db.func.count(AttendanceRecord.id)
        ).filter(
            AttendanceRecord.activity_id == activity_id
        ).group_by(AttendanceRecord.status).all()

        for status, count in rows:
            counts[status.value] = count

        total = sum(counts.values())
        attended = counts['present'] + counts['late']
        attendance_rate = (attended / total * 100) if total > 0 else 0

        return {
            'activityId': activity_id,
            'total': total,
            'counts': counts,
            'attendance_rate': round(attendance_rate, 2)
        }

    @staticmethod
    def export_excel(activity_id: str) -> io.BytesIO:
        """Workbook with a Summary sheet and an Attendance sheet."""
        summary = AttendanceService.summarize(activity_id)
        records = AttendanceService.list_for_activity(activity_id)

        summary_row = {'activityId': activity_id, 'total': summary['total']}
        summary_row.update(summary['counts'])
        summary_row['attendance_rate'] = summary['attendance_rate']

        columns = ['userId', 'name', 'email', 'status', 'timestamp', 'verifiedBy', 'notes', 'updatedAt']

        excel_buffer = io.BytesIO()
        with pd.ExcelWriter(excel_buffer, engine='openpyxl') as writer:
            pd.DataFrame([summary_row]).to_excel(writer, sheet_name='Summary', index=False)
            pd.DataFrame(records, columns=columns).to_excel(writer, sheet_name='Attendance', index=False)

        excel_buffer.seek(0)
        return excel_buffer
