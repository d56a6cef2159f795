"""Attendance administration endpoints."""
from flask import Blueprint, request, send_file, g, current_app
from flask_jwt_extended import jwt_required
from mrc_attendance.services.attendance_service import AttendanceService
from mrc_attendance.utils.decorators import admin_required, manager_required
from mrc_attendance.utils.helpers import success_response, error_response, utcnow

attendance_bp = Blueprint('attendance', __name__)

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/activities/<activity_id>', methods=['GET'])
@jwt_required()
@manager_required
def list_attendance(activity_id):
    """List attendance records of an activity, optionally by status."""
    records = AttendanceService.list_for_activity(activity_id, request.args.get('status'))
    return success_response(data=records, message=f"{len(records)} records")

@attendance_bp.route('/activities/<activity_id>/summary', methods=['GET'])
@jwt_required()
@manager_required
def attendance_summary(activity_id):
    return success_response(data=AttendanceService.summarize(activity_id))

@attendance_bp.route('/activities/<activity_id>/users/<user_id>', methods=['PUT'])
@jwt_required()
@manager_required
def set_attendance_status(activity_id, user_id):
    """Manually set the attendance status of a user."""
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or not data.get('status'):
        return error_response("Status is required", 400)

    record, created = AttendanceService.set_status(
        activity_id,
        user_id,
        data['status'],
        verified_by=g.current_user.uid,
        notes=data.get('notes')
    )

    current_app.logger.info(
        'Attendance of %s at %s set to %s by %s',
        user_id, activity_id, record.status.value, g.current_user.uid
    )
    return success_response(
        data=record.to_dict(),
        message="created" if created else "updated",
        status_code=201 if created else 200
    )

@attendance_bp.route('/activities/<activity_id>/users/<user_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_attendance(activity_id, user_id):
    AttendanceService.delete_record(activity_id, user_id)
    current_app.logger.info(
        'Attendance of %s at %s deleted by %s', user_id, activity_id, g.current_user.uid
    )
    return success_response(message="deleted")

@attendance_bp.route('/activities/<activity_id>/export', methods=['GET'])
@jwt_required()
@manager_required
def export_attendance(activity_id):
    """Export an activity's attendance as Excel."""
    excel_buffer = AttendanceService.export_excel(activity_id)

    return send_file(
        excel_buffer,
        as_attachment=True,
        download_name=f"attendance_{activity_id}_{utcnow().strftime('%Y%m%d')}.xlsx",
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
