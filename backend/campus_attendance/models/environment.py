"""Bookable room/space."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class Environment(BaseModel):
    """A physical room that sessions are booked into."""

    __tablename__ = 'environments'

    name = db.Column(db.String(100), nullable=False, unique=True)  # LAB-01, AUD-A
    type = db.Column(db.String(50), nullable=False, default='classroom')  # lab, classroom, auditorium
    location = db.Column(db.String(255), nullable=True)
    capacity = db.Column(db.Integer, default=30)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    sessions = db.relationship('Session', backref='environment', lazy='dynamic')

    def __repr__(self):
        return f'<Environment {self.name}>'
