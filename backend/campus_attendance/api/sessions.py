"""Session booking, QR rotation and closing API."""
from flask import Blueprint, current_app, request
from campus_attendance import db, limiter
from campus_attendance.services.rotation_service import QRRotationService
from campus_attendance.services.session_service import SessionService
from campus_attendance.utils.decorators import current_identity, instructor_required, login_required
from campus_attendance.utils.helpers import success_response, error_response, utcnow

sessions_bp = Blueprint('sessions', __name__)

def _session_service() -> SessionService:
    return SessionService.from_config(db.session, current_app.config)

@sessions_bp.route('/', methods=['POST'])
@instructor_required
def book_session():
    """Book an environment; fails with 409 when the window overlaps."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, code='VALIDATION_ERROR')

    session = _session_service().book_session(data, current_identity())
    return success_response(
        data=session.to_dict(now=utcnow(), include_code=True),
        message='Session booked successfully',
        status_code=201
    )

@sessions_bp.route('/active', methods=['GET'])
@login_required
def active_sessions():
    """Sessions running right now, optionally for one environment."""
    environment_id = request.args.get('environment_id', type=int)
    sessions = _session_service().list_active_sessions(environment_id)
    now = utcnow()
    return success_response(data=[s.to_dict(now=now) for s in sessions])

@sessions_bp.route('/mine', methods=['GET'])
@instructor_required
def my_sessions():
    """Sessions hosted by the caller."""
    is_active = request.args.get('is_active')
    if is_active is not None:
        is_active = is_active.lower() == 'true'
    sessions = _session_service().list_host_sessions(current_identity().user_id, is_active)
    now = utcnow()
    return success_response(data=[s.to_dict(now=now) for s in sessions])

@sessions_bp.route('/<int:session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    session = _session_service().get_session(session_id)
    identity = current_identity()
    include_code = session.is_hosted_by(identity.user_id) or identity.is_admin
    return success_response(data=session.to_dict(now=utcnow(), include_code=include_code))

@sessions_bp.route('/<int:session_id>', methods=['PUT'])
@instructor_required
def update_session(session_id):
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400, code='VALIDATION_ERROR')

    session = _session_service().update_session(session_id, data, current_identity())
    return success_response(data=session.to_dict(now=utcnow()), message='Session updated successfully')

@sessions_bp.route('/<int:session_id>', methods=['DELETE'])
@instructor_required
def delete_session(session_id):
    deleted = _session_service().delete_session(session_id, current_identity())
    message = 'Session deleted' if deleted else 'Session deactivated (it has attendance records)'
    return success_response(data={'deleted': deleted}, message=message)

@sessions_bp.route('/<int:session_id>/qr', methods=['POST'])
@instructor_required
@limiter.limit("60 per minute")
def get_or_rotate_qr(session_id):
    """Current QR code of the session, rotated when due or when forced."""
    data = request.get_json(silent=True) or {}
    force_new = data.get('force_new', False)
    if not isinstance(force_new, bool):
        return error_response("force_new must be true or false", 400, code='VALIDATION_ERROR')

    grant = QRRotationService(db.session).get_or_rotate(session_id, force_new, current_identity())
    include_image = request.args.get('image', 'true').lower() != 'false'
    return success_response(data=grant.to_dict(include_image=include_image))

@sessions_bp.route('/<int:session_id>/close', methods=['POST'])
@instructor_required
def close_session(session_id):
    """Close the session and check out everyone still present."""
    session = _session_service().close_session(session_id, current_identity())
    return success_response(data=session.to_dict(now=utcnow()), message='Session closed successfully')

@sessions_bp.route('/<int:session_id>/attendance', methods=['GET'])
@instructor_required
def session_attendance(session_id):
    report = _session_service().session_attendance(session_id, current_identity())
    return success_response(data=report)
