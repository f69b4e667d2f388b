"""Non-enrolled attendee."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class ExternalPerson(BaseModel):
    """Guest admitted to sessions that allow externals."""

    __tablename__ = 'external_persons'

    dni = db.Column(db.String(20), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    institution = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    attendances = db.relationship('Attendance', backref='external_person', lazy='dynamic')

    def __repr__(self):
        return f'<ExternalPerson {self.dni}>'
