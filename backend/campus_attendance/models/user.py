"""User model for authentication and authorization."""
from enum import Enum
from werkzeug.security import generate_password_hash, check_password_hash
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    INSTRUCTOR = 'instructor'
    LAB_MANAGER = 'lab_manager'
    ADMIN = 'admin'

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

ROLE_LEVELS = {
    UserRole.STUDENT: 1,
    UserRole.INSTRUCTOR: 2,
    UserRole.LAB_MANAGER: 3,
    UserRole.ADMIN: 4,
}

INSTRUCTOR_LEVEL = ROLE_LEVELS[UserRole.INSTRUCTOR]
LAB_MANAGER_LEVEL = ROLE_LEVELS[UserRole.LAB_MANAGER]
ADMIN_LEVEL = ROLE_LEVELS[UserRole.ADMIN]

class User(BaseModel):
    """User model for all system users."""

    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    hosted_sessions = db.relationship('Session', backref='host', lazy='dynamic')
    attendances = db.relationship('Attendance', backref='user', lazy='dynamic')

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    @property
    def role_level(self) -> int:
        return self.role.level

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        exclude = (exclude or []) + ['password_hash']
        result = super().to_dict(exclude=exclude)
        result['role_level'] = self.role_level
        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
