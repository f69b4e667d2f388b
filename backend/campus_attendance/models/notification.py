"""Notifications addressed to a single user."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class Notification(BaseModel):

    __tablename__ = 'notifications'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    read_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self):
        data = super().to_dict()
        data['is_read'] = self.is_read
        return data
