"""Environment (room) registry API."""
from flask import Blueprint, current_app, request
from campus_attendance import db
from campus_attendance.models import Environment
from campus_attendance.services.session_service import SessionService
from campus_attendance.services.transaction import run_in_transaction
from campus_attendance.utils.decorators import admin_required, lab_manager_required, login_required
from campus_attendance.utils.helpers import success_response, error_response, utcnow
from campus_attendance.utils.validators import Validator

environments_bp = Blueprint('environments', __name__)

@environments_bp.route('/', methods=['GET'])
@login_required
def list_environments():
    """List bookable environments."""
    query = Environment.query
    if request.args.get('include_inactive') != 'true':
        query = query.filter_by(is_active=True)
    environments = query.order_by(Environment.name).all()
    return success_response(data=[e.to_dict() for e in environments])

@environments_bp.route('/', methods=['POST'])
@admin_required
def create_environment():
    """Register a new environment."""
    data = request.get_json(silent=True) or {}

    validation = Validator.validate_required_fields(data, ['name'])
    if not validation['is_valid']:
        return error_response('; '.join(validation['errors']), 400, code='VALIDATION_ERROR')

    name = str(data['name']).strip().upper()
    if Environment.query.filter_by(name=name).first():
        return error_response(f"Environment {name} already exists", 409, code='CONFLICT_ERROR')

    def work():
        environment = Environment(
            name=name,
            type=data.get('type', 'classroom'),
            location=data.get('location'),
            capacity=data.get('capacity', 30),
        )
        db.session.add(environment)
        db.session.flush()
        return environment

    environment = run_in_transaction(db.session, work, 'Environment creation')
    return success_response(data=environment.to_dict(), message='Environment created', status_code=201)

@environments_bp.route('/<int:environment_id>/sessions', methods=['GET'])
@lab_manager_required
def environment_schedule(environment_id):
    """Sessions booked on an environment, optionally between ?from= and ?to=."""
    start = Validator.parse_datetime(request.args.get('from'))
    end = Validator.parse_datetime(request.args.get('to'))
    if (request.args.get('from') and start is None) or (request.args.get('to') and end is None):
        return error_response("from/to must be ISO-8601 datetimes", 400, code='VALIDATION_ERROR')

    service = SessionService.from_config(db.session, current_app.config)
    sessions = service.list_environment_sessions(environment_id, start, end)
    now = utcnow()
    return success_response(data=[s.to_dict(now=now) for s in sessions])
