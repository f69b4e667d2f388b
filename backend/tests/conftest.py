"""Shared fixtures: app on in-memory SQLite, a controllable clock, seeded users."""
from datetime import datetime, timedelta

import pytest

from campus_attendance import create_app, db
from campus_attendance.models import Environment, User, UserRole
from campus_attendance.services.anomaly_service import AnomalyDetector
from campus_attendance.services.attendance_service import AttendanceService
from campus_attendance.services.identity import Identity
from campus_attendance.services.notification_service import NotificationService
from campus_attendance.services.rotation_service import QRRotationService
from campus_attendance.services.session_service import SessionService


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, second: int = 0) -> datetime:
        self.now = self.now.replace(hour=hour, minute=minute, second=second, microsecond=0)
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


DAY = datetime(2026, 3, 2)


def at(hour: int, minute: int = 0, second: int = 0) -> datetime:
    return DAY.replace(hour=hour, minute=minute, second=second)


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role, role_level=user.role_level, username=user.username)


def make_user(username: str, role: UserRole, password: str = 'password123') -> User:
    user = User(
        email=f'{username}@campus.edu',
        username=username,
        name=username.replace('_', ' ').title(),
        role=role
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def clock():
    return FakeClock(at(6, 0))


@pytest.fixture
def admin(app):
    return make_user('admin', UserRole.ADMIN)


@pytest.fixture
def instructor(app):
    return make_user('instructor', UserRole.INSTRUCTOR)


@pytest.fixture
def other_instructor(app):
    return make_user('other_instructor', UserRole.INSTRUCTOR)


@pytest.fixture
def lab_manager(app):
    return make_user('lab_manager', UserRole.LAB_MANAGER)


@pytest.fixture
def student(app):
    return make_user('student_x', UserRole.STUDENT)


@pytest.fixture
def student_y(app):
    return make_user('student_y', UserRole.STUDENT)


@pytest.fixture
def lab(app):
    environment = Environment(name='LAB-01', type='lab', location='Building A', capacity=30)
    db.session.add(environment)
    db.session.commit()
    return environment


@pytest.fixture
def session_service(app, clock):
    return SessionService(db.session, clock=clock)


@pytest.fixture
def rotation_service(app, clock):
    return QRRotationService(db.session, clock=clock)


@pytest.fixture
def attendance_service(app, clock):
    detector = AnomalyDetector(
        db.session,
        notifier=NotificationService(db.session, clock),
        window_seconds=60,
        max_checkins_per_origin=2,
    )
    return AttendanceService(db.session, detector, clock)


@pytest.fixture
def booked_session(session_service, instructor, lab):
    """LAB-01 booked 07:00-13:00 with a 3 minute rotation."""
    return session_service.book_session({
        'environment_id': lab.id,
        'name': 'Algorithms Lab',
        'type': 'class',
        'start_time': at(7, 0).isoformat(),
        'end_time': at(13, 0).isoformat(),
        'qr_rotation_minutes': 3,
    }, identity_of(instructor))
