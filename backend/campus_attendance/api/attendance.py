"""Attendance API: verify and mark scans."""
from flask import Blueprint, current_app, request
from campus_attendance import db, limiter
from campus_attendance.services.attendance_service import build_attendance_service
from campus_attendance.services.identity import OriginMetadata, RegisteredAttendee
from campus_attendance.utils.decorators import current_identity, login_required
from campus_attendance.utils.helpers import success_response, error_response

attendance_bp = Blueprint('attendance', __name__)

def _attendance_service():
    return build_attendance_service(db.session, current_app.config)

def _origin() -> OriginMetadata:
    return OriginMetadata(
        ip_address=request.remote_addr,
        device_info=request.headers.get('User-Agent'),
    )

def _outcome_response(outcome):
    if not outcome.accepted:
        return error_response(
            outcome.reason, 400, code=outcome.rejection.code, data=outcome.to_dict()
        )
    message = 'Check-in recorded' if outcome.type == 'checkin' else 'Check-out recorded'
    return success_response(
        data=outcome.to_dict(),
        message=message,
        status_code=201 if outcome.type == 'checkin' else 200
    )

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/verify', methods=['POST'])
@login_required
def verify_code():
    """Read-only check of a scanned code."""
    data = request.get_json(silent=True) or {}
    if not data.get('qr_code'):
        return error_response("qr_code is required", 400, code='VALIDATION_ERROR')

    result = _attendance_service().verify_code(data['qr_code'])
    return success_response(data=result.to_dict(), message=result.reason)

@attendance_bp.route('/mark', methods=['POST'])
@login_required
@limiter.limit("30 per minute")
def mark_attendance():
    """Check in, or check out on the second scan."""
    data = request.get_json(silent=True) or {}
    if not data.get('qr_code'):
        return error_response("qr_code is required", 400, code='VALIDATION_ERROR')

    outcome = _attendance_service().mark_attendance(
        data['qr_code'],
        RegisteredAttendee(current_identity().user_id),
        _origin()
    )
    return _outcome_response(outcome)

@attendance_bp.route('/external', methods=['POST'])
@limiter.limit("10 per minute")
def mark_external_attendance():
    """Guests scan with their national id; only for sessions that allow externals."""
    data = request.get_json(silent=True) or {}
    if not data.get('qr_code'):
        return error_response("qr_code is required", 400, code='VALIDATION_ERROR')

    outcome = _attendance_service().mark_external_attendance(
        data['qr_code'],
        data.get('person') or {},
        _origin()
    )
    return _outcome_response(outcome)

@attendance_bp.route('/mine', methods=['GET'])
@login_required
def my_attendance():
    """Caller's own attendance history."""
    report = _attendance_service().my_attendance(current_identity().user_id)
    return success_response(data=report)
