"""Scan validation endpoint."""
import hashlib
import hmac
import json
from datetime import datetime, timedelta

import pytest

from mrc_attendance import db
from mrc_attendance.models.attendance import AttendanceRecord, AttendanceStatus, SCANNER_IDENTITY
from mrc_attendance.services import attendance_service
from mrc_attendance.services.attendance_service import AttendanceService, ScanOutcome
from mrc_attendance.services.qr_service import QRService
from mrc_attendance.utils.errors import ExpiredTokenError
from mrc_attendance.utils.helpers import utcnow

URL = '/api/validate-scan'

def signed(user_id='u1', activity_id='a1', issued_at=None, secret='s3cret'):
    return QRService.issue_token(user_id, activity_id, secret, now=issued_at or utcnow())

@pytest.fixture
def scan(client, recruiter, auth_headers):
    """Post a payload as a recruiter operating the scanner."""
    headers = auth_headers(recruiter)

    def _scan(payload=None, **kwargs):
        if payload is not None:
            kwargs['json'] = payload
        return client.post(URL, headers=headers, **kwargs)
    return _scan

def records_for(user_id, activity_id):
    db.session.expire_all()
    return AttendanceRecord.query.filter_by(user_id=user_id, activity_id=activity_id).all()

def test_end_to_end_example(scan, monkeypatch):
    """Token from 00:00:00 scanned two minutes later creates the record."""
    timestamp = '2025-01-01T00:00:00.000Z'
    signature = hmac.new(
        b's3cret', f'u1|a1|{timestamp}'.encode(), hashlib.sha256
    ).hexdigest()
    monkeypatch.setattr(attendance_service, 'utcnow', lambda: datetime(2025, 1, 1, 0, 2, 0))

    response = scan({
        'userId': 'u1',
        'activityId': 'a1',
        'timestamp': timestamp,
        'signature': signature
    })

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['ok'] is True
    assert data['message'] == 'created'

    records = records_for('u1', 'a1')
    assert len(records) == 1
    assert records[0].status == AttendanceStatus.PRESENT
    assert records[0].verified_by == SCANNER_IDENTITY
    assert data['data']['userId'] == 'u1'
    assert data['data']['status'] == 'present'

def test_second_scan_is_idempotent(scan):
    token = signed()

    first = scan(token)
    assert first.status_code == 201
    updated_at = records_for('u1', 'a1')[0].updated_at

    second = scan(token)
    assert second.status_code == 200
    assert json.loads(second.data)['message'] == 'already_present'

    records = records_for('u1', 'a1')
    assert len(records) == 1
    assert records[0].updated_at == updated_at

def test_non_present_record_is_updated(scan):
    AttendanceRecord(
        user_id='u1',
        activity_id='a1',
        status=AttendanceStatus.ABSENT,
        verified_by='admin-uid'
    ).save()

    response = scan(signed())

    assert response.status_code == 200
    assert json.loads(response.data)['message'] == 'updated_to_present'
    records = records_for('u1', 'a1')
    assert len(records) == 1
    assert records[0].status == AttendanceStatus.PRESENT
    assert records[0].verified_by == SCANNER_IDENTITY

def test_scans_are_per_activity(scan):
    assert scan(signed(activity_id='a1')).status_code == 201
    assert scan(signed(activity_id='a2')).status_code == 201
    assert AttendanceRecord.query.filter_by(user_id='u1').count() == 2

@pytest.mark.parametrize('missing', ['userId', 'activityId', 'timestamp', 'signature'])
def test_missing_field_rejected_before_any_work(scan, monkeypatch, missing):
    def fail(*args, **kwargs):
        raise AssertionError('must not be called')

    monkeypatch.setattr(QRService, 'verify_signature', staticmethod(fail))
    monkeypatch.setattr(AttendanceRecord, 'find', classmethod(fail))

    payload = signed()
    del payload[missing]
    response = scan(payload)

    assert response.status_code == 400
    assert json.loads(response.data) == {'error': 'Invalid payload'}

def test_non_json_body_rejected(scan):
    response = scan(data='userId=u1', content_type='text/plain')
    assert response.status_code == 400

def test_wrong_secret_is_unauthorized(scan):
    response = scan(signed(secret='not-the-secret'))
    assert response.status_code == 401
    assert json.loads(response.data) == {'error': 'Invalid signature'}
    assert records_for('u1', 'a1') == []

def test_tampered_user_is_unauthorized(scan):
    token = signed()
    token['userId'] = 'u2'
    assert scan(token).status_code == 401

def test_expired_token(scan):
    response = scan(signed(issued_at=utcnow() - timedelta(seconds=301)))
    assert response.status_code == 400
    assert json.loads(response.data) == {'error': 'QR expired'}
    assert records_for('u1', 'a1') == []

def test_future_token_treated_as_expired(scan):
    response = scan(signed(issued_at=utcnow() + timedelta(seconds=30)))
    assert response.status_code == 400
    assert json.loads(response.data) == {'error': 'QR expired'}

def test_validity_window_from_config(app, scan):
    app.config['QR_VALIDITY_SECONDS'] = 60
    response = scan(signed(issued_at=utcnow() - timedelta(seconds=90)))
    assert response.status_code == 400

def test_missing_secret_is_server_error(app, scan):
    token = signed()
    app.config['SIGNING_SECRET'] = None

    response = scan(token)

    assert response.status_code == 500
    assert json.loads(response.data) == {'error': 'Signing secret not configured'}

def test_unexpected_error_is_not_leaked(scan, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError('connection refused to db-host:5432')

    monkeypatch.setattr(AttendanceService, 'mark_present', staticmethod(broken))

    response = scan(signed())

    assert response.status_code == 500
    assert json.loads(response.data) == {'error': 'Internal server error'}

def test_scanner_requires_token(client):
    response = client.post(URL, json=signed())
    assert response.status_code == 401
    assert records_for('u1', 'a1') == []

def test_caang_cannot_check_themselves_in(client, caang, auth_headers):
    token = signed(user_id=caang.uid)

    response = client.post(URL, json=token, headers=auth_headers(caang))

    assert response.status_code == 403
    assert records_for(caang.uid, 'a1') == []

def test_admin_can_scan(client, admin, auth_headers):
    response = client.post(URL, json=signed(), headers=auth_headers(admin))
    assert response.status_code == 201

def test_overlong_user_id_rejected(scan):
    response = scan(signed(user_id='u' * 65))
    assert response.status_code == 400
    assert json.loads(response.data) == {'error': 'Invalid payload'}

class TestValidateScanService:
    """Service-level checks with a fixed clock."""

    issued = datetime(2025, 1, 1)

    def token(self):
        return QRService.issue_token('u1', 'a1', 's3cret', now=self.issued)

    def validate(self, seconds_later):
        return AttendanceService.validate_scan(
            self.token(), 's3cret', 300, now=self.issued + timedelta(seconds=seconds_later)
        )

    def test_accepted_at_window_end(self, app):
        outcome, record = self.validate(300)
        assert outcome is ScanOutcome.CREATED
        assert outcome.status_code == 201
        assert record.timestamp == self.issued + timedelta(seconds=300)

    def test_rejected_after_window(self, app):
        with pytest.raises(ExpiredTokenError):
            self.validate(301)
        assert AttendanceRecord.query.count() == 0

    def test_create_then_update(self, app):
        outcome, record = self.validate(10)
        assert outcome is ScanOutcome.CREATED

        record.update(status=AttendanceStatus.PERMISSION)

        outcome, record = self.validate(20)
        assert outcome is ScanOutcome.UPDATED
        assert outcome.status_code == 200
        assert record.status == AttendanceStatus.PRESENT

    def test_concurrent_insert_uses_stored_record(self, app, monkeypatch):
        """A scan losing the insert race reports the winner's record."""
        AttendanceRecord(user_id='u1', activity_id='a1', status=AttendanceStatus.PRESENT).save()

        real_find = AttendanceRecord.find.__func__
        calls = []

        def stale_first_lookup(cls, user_id, activity_id):
            calls.append((user_id, activity_id))
            if len(calls) == 1:
                return None
            return real_find(cls, user_id, activity_id)

        monkeypatch.setattr(AttendanceRecord, 'find', classmethod(stale_first_lookup))

        outcome, record = AttendanceService.mark_present('u1', 'a1')

        assert outcome is ScanOutcome.ALREADY_PRESENT
        assert len(calls) == 2
        monkeypatch.undo()
        assert AttendanceRecord.query.filter_by(user_id='u1', activity_id='a1').count() == 1
