"""QR attendance API endpoints."""
from flask import Blueprint, request, current_app, g
from flask_jwt_extended import jwt_required
from mrc_attendance import db, limiter
from mrc_attendance.services.attendance_service import AttendanceService
from mrc_attendance.services.qr_service import QRService
from mrc_attendance.utils.decorators import login_user_required, manager_required
from mrc_attendance.utils.errors import AttendanceError, ForbiddenError
from mrc_attendance.utils.helpers import success_response, error_response
from mrc_attendance.utils.validators import Validator

qr_bp = Blueprint('qr', __name__)

@qr_bp.route('/sign-qr', methods=['POST'])
@jwt_required()
@login_user_required
@limiter.limit("30 per minute")
def sign_qr():
    """Mint a signed attendance token and its QR image."""
    try:
        data = request.get_json(silent=True)
        fields = Validator.require_fields(
            data, ['userId', 'activityId'], message="userId and activityId required"
        )

        user = g.current_user
        if fields['userId'] != user.uid and not user.is_admin():
            raise ForbiddenError("You can only sign QR codes for yourself")

        payload = QRService.issue_token(
            fields['userId'],
            fields['activityId'],
            current_app.config.get('SIGNING_SECRET')
        )
        qr_image = QRService.render_qr_image(payload)

    except AttendanceError as e:
        if e.status_code >= 500:
            current_app.logger.error('sign-qr rejected: %s', e.message)
        return error_response(e.message, e.status_code)
    except Exception:
        current_app.logger.exception('sign-qr error')
        return error_response("Internal server error", 500)

    return success_response(
        data={
            'payload': payload,
            'qrImage': qr_image,
            'expiresIn': current_app.config.get('QR_VALIDITY_SECONDS', 300)
        },
        message="signed"
    )

@qr_bp.route('/validate-scan', methods=['POST'])
@jwt_required()
@manager_required
@limiter.limit("120 per minute")
def validate_scan():
    """Validate a scanned attendance QR and mark the attendee present."""
    try:
        outcome, record = AttendanceService.validate_scan(
            request.get_json(silent=True),
            current_app.config.get('SIGNING_SECRET'),
            current_app.config.get('QR_VALIDITY_SECONDS', 300)
        )

    except AttendanceError as e:
        if e.status_code >= 500:
            current_app.logger.error('validate-scan rejected: %s', e.message)
        else:
            current_app.logger.warning('validate-scan rejected: %s', e.message)
        return error_response(e.message, e.status_code)
    except Exception:
        db.session.rollback()
        current_app.logger.exception('validate-scan error')
        return error_response("Internal server error", 500)

    current_app.logger.info(
        'Scan %s: user=%s activity=%s', outcome.value, record.user_id, record.activity_id
    )
    return success_response(
        data=record.to_dict(),
        message=outcome.value,
        status_code=outcome.status_code
    )
