"""Check-in/check-out record for one attendee in one session."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel
from campus_attendance.utils.helpers import minutes_between

class Attendance(BaseModel):
    """Attendance record model.

    Exactly one of ``user_id`` and ``external_person_id`` is set.
    """

    __tablename__ = 'attendances'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_attendance_session_user'),
        db.UniqueConstraint('session_id', 'external_person_id', name='uq_attendance_session_external'),
        db.CheckConstraint(
            '(user_id IS NULL) <> (external_person_id IS NULL)',
            name='ck_attendance_single_attendee'
        ),
        db.Index('ix_attendance_session_ip_checkin', 'session_id', 'ip_address', 'check_in_time'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    external_person_id = db.Column(db.Integer, db.ForeignKey('external_persons.id'), nullable=True)

    check_in_time = db.Column(db.DateTime, nullable=False)
    check_out_time = db.Column(db.DateTime, nullable=True)

    is_suspicious = db.Column(db.Boolean, default=False, nullable=False)
    suspicious_reason = db.Column(db.String(255), nullable=True)

    ip_address = db.Column(db.String(64), nullable=True)
    device_info = db.Column(db.String(512), nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.check_out_time is not None

    @property
    def duration_minutes(self):
        if self.check_out_time is None:
            return None
        return minutes_between(self.check_in_time, self.check_out_time)

    def attendee_dict(self) -> dict:
        if self.user_id is not None:
            return {
                'type': 'student',
                'id': self.user_id,
                'name': self.user.name if self.user else None,
                'code': self.user.username if self.user else None,
            }
        person = self.external_person
        return {
            'type': 'external',
            'id': self.external_person_id,
            'name': person.full_name if person else None,
            'dni': person.dni if person else None,
            'institution': person.institution if person else None,
        }

    def to_dict(self):
        data = super().to_dict()
        data['duration_minutes'] = self.duration_minutes
        return data

    def __repr__(self):
        return f'<Attendance {self.session_id}-{self.user_id or self.external_person_id}>'
