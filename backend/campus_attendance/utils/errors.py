"""Error taxonomy shared by services and blueprints."""


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = 'APP_ERROR'
    default_message = 'Application error'

    def __init__(self, message: str = None, details: dict = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'code': self.code, 'reason': self.message, **self.details}


class ValidationError(AppError):
    status_code = 400
    code = 'VALIDATION_ERROR'
    default_message = 'Invalid input'


class AuthenticationError(AppError):
    status_code = 401
    code = 'AUTHENTICATION_ERROR'
    default_message = 'Not authenticated'


class AuthorizationError(AppError):
    status_code = 403
    code = 'AUTHORIZATION_ERROR'
    default_message = 'Not authorized'


class NotFoundError(AppError):
    status_code = 404
    code = 'NOT_FOUND'

    def __init__(self, resource: str = 'Resource', details: dict = None):
        super().__init__(f'{resource} not found', details)


class ConflictError(AppError):
    status_code = 409
    code = 'CONFLICT_ERROR'
    default_message = 'Conflicting state'


class DatabaseError(AppError):
    status_code = 500
    code = 'DATABASE_ERROR'
    default_message = 'Database error'


class AttendanceRejection(AppError):
    """A scan that was understood but not accepted.

    These are expected business outcomes; the pipeline returns them inside a
    result object instead of letting them propagate.
    """

    status_code = 400
    code = 'ATTENDANCE_REJECTED'


class InvalidCodeError(AttendanceRejection):
    code = 'INVALID_CODE'
    default_message = 'Invalid QR code'


class SessionInactiveError(AttendanceRejection):
    code = 'SESSION_INACTIVE'
    default_message = 'Session is not active'


class CodeRotatedError(AttendanceRejection):
    code = 'CODE_ROTATED'
    default_message = 'QR code is no longer current'


class OutOfWindowError(AttendanceRejection):
    code = 'OUT_OF_WINDOW'
    default_message = 'Outside the session time window'


class AlreadyCompletedError(AttendanceRejection):
    code = 'ALREADY_COMPLETED'
    default_message = 'Entry and exit already recorded for this session'


class DuplicateCheckInError(AttendanceRejection):
    code = 'DUPLICATE_CHECKIN'
    default_message = 'Attendance already recorded for this session'
