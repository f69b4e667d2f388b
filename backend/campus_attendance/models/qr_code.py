"""Historical record of one QR rotation epoch."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class QRCodeRecord(BaseModel):

    __tablename__ = 'qr_codes'

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    valid_from = db.Column(db.DateTime, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False)
    scan_count = db.Column(db.Integer, default=0, nullable=False)

    def __repr__(self):
        return f'<QRCodeRecord {self.session_id}:{self.code[:8]}>'
