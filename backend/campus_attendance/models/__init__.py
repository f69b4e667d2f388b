"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole, ROLE_LEVELS, INSTRUCTOR_LEVEL, LAB_MANAGER_LEVEL, ADMIN_LEVEL
from .environment import Environment
from .session import Session, SessionType, SessionStatus
from .qr_code import QRCodeRecord
from .attendance import Attendance
from .external_person import ExternalPerson
from .notification import Notification

__all__ = [
    'BaseModel', 'User', 'UserRole', 'ROLE_LEVELS',
    'INSTRUCTOR_LEVEL', 'LAB_MANAGER_LEVEL', 'ADMIN_LEVEL',
    'Environment', 'Session', 'SessionType', 'SessionStatus',
    'QRCodeRecord', 'Attendance', 'ExternalPerson', 'Notification'
]
