"""Campus Attendance - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    register_blueprints(app)
    register_error_handlers(app)
    setup_database(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Attendance',
            'version': '1.0.0'
        })

    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from campus_attendance.api.auth import auth_bp
    from campus_attendance.api.environments import environments_bp
    from campus_attendance.api.sessions import sessions_bp
    from campus_attendance.api.attendance import attendance_bp
    from campus_attendance.api.notifications import notifications_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(environments_bp, url_prefix='/api/environments')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from campus_attendance.utils.helpers import handle_error, error_response
    from campus_attendance.utils.errors import AppError
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            app.logger.error('%s: %s', error.code, error.message)
        return error_response(error.message, error.status_code, code=error.code, data=error.details or None)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e.description, e.code)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error('Internal server error', 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401, code='AUTHENTICATION_ERROR')

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401, code='AUTHENTICATION_ERROR')

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401, code='AUTHENTICATION_ERROR')

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    package_logger = logging.getLogger('campus_attendance')
    package_logger.setLevel(level)

    if not app.debug and not app.testing:
        log_dir = app.config.get('LOG_DIR', 'logs')
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)

        file_handler = logging.FileHandler(os.path.join(log_dir, 'app.log'))
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        package_logger.addHandler(file_handler)

        app.logger.setLevel(level)
        app.logger.info('Campus Attendance startup')

def setup_database(app: Flask) -> None:
    """Make sure every model is registered on the metadata."""
    with app.app_context():
        from campus_attendance.models import (  # noqa: F401
            User, UserRole, Environment, Session, SessionType,
            QRCodeRecord, Attendance, ExternalPerson, Notification
        )
