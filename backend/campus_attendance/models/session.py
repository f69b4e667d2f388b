"""Booked sessions with rotating QR codes."""
from datetime import datetime, timedelta
from enum import Enum
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class SessionType(Enum):
    CLASS = 'class'
    CONFERENCE = 'conference'
    TRAINING = 'training'
    EVENT = 'event'

class SessionStatus(Enum):
    """Read-time lifecycle state; never persisted."""
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    CLOSED = 'closed'

class Session(BaseModel):
    """Scheduled occupation of an environment."""

    __tablename__ = 'sessions'
    __table_args__ = (
        db.CheckConstraint('start_time < end_time', name='ck_sessions_window'),
        db.CheckConstraint('qr_rotation_minutes > 0', name='ck_sessions_rotation'),
        db.Index('ix_sessions_environment_window', 'environment_id', 'start_time', 'end_time'),
    )

    environment_id = db.Column(db.Integer, db.ForeignKey('environments.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.Enum(SessionType), nullable=False, default=SessionType.CLASS)

    host_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    host_name = db.Column(db.String(255), nullable=True)
    allow_externals = db.Column(db.Boolean, default=False, nullable=False)

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)

    # QR rotation
    qr_rotation_minutes = db.Column(db.Integer, nullable=False, default=3)
    current_qr_code = db.Column(db.String(64), nullable=True)
    last_qr_rotation = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    qr_history = db.relationship(
        'QRCodeRecord', backref='session', lazy='dynamic',
        cascade='all, delete-orphan', order_by='QRCodeRecord.valid_from'
    )
    attendances = db.relationship('Attendance', backref='session', lazy='dynamic')

    @property
    def rotation_interval(self) -> timedelta:
        return timedelta(minutes=self.qr_rotation_minutes)

    def is_currently_active(self, now: datetime) -> bool:
        """Persisted flag combined with the end of the window.

        A session whose end_time has passed is treated as inactive even if no
        one has closed it yet.
        """
        return bool(self.is_active) and now <= self.end_time

    def is_within_window(self, now: datetime) -> bool:
        return self.start_time <= now <= self.end_time

    def status(self, now: datetime) -> SessionStatus:
        if not self.is_currently_active(now):
            return SessionStatus.CLOSED
        if now < self.start_time:
            return SessionStatus.SCHEDULED
        return SessionStatus.ACTIVE

    def is_hosted_by(self, user_id) -> bool:
        return self.host_id is not None and user_id is not None and int(self.host_id) == int(user_id)

    def to_dict(self, now: datetime = None, include_code: bool = False):
        exclude = [] if include_code else ['current_qr_code']
        data = super().to_dict(exclude=exclude)
        if now is not None:
            data['status'] = self.status(now).value
        if self.environment is not None:
            data['environment'] = {'id': self.environment.id, 'name': self.environment.name}
        data['host'] = self.host.name if self.host is not None else self.host_name
        return data

    def __repr__(self):
        return f'<Session {self.name}>'
