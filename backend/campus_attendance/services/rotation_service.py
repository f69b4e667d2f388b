"""QR rotation engine: decides on each access whether the code must change."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import update

from campus_attendance.models import QRCodeRecord, Session
from campus_attendance.services.identity import Identity
from campus_attendance.services.qr_service import QRService
from campus_attendance.services.transaction import run_in_transaction
from campus_attendance.utils.errors import AuthorizationError, NotFoundError, SessionInactiveError
from campus_attendance.utils.helpers import utcnow

logger = logging.getLogger(__name__)

@dataclass
class QRCodeGrant:
    """The code scanners should currently be shown."""
    session_id: int
    code: str
    valid_until: datetime
    rotated: bool
    issued_at: datetime

    def to_dict(self, include_image: bool = False) -> dict:
        data = {
            'session_id': self.session_id,
            'code': self.code,
            'valid_until': self.valid_until.isoformat(),
            'rotated': self.rotated,
        }
        if include_image:
            data['qr_image'] = QRService.render_data_url(
                QRService.build_payload(self.session_id, self.code, self.issued_at)
            )
        return data

class QRRotationService:
    """Get-or-rotate access to a session's current QR code."""

    def __init__(self, db_session, clock: Callable[[], datetime] = utcnow):
        self.db = db_session
        self.clock = clock

    def get_or_rotate(self, session_id: int, force_new: bool = False, actor: Identity = None) -> QRCodeGrant:
        """Return the current code, replacing it first when rotation is due.

        Repeated calls inside one rotation interval return the same code.
        """
        def work() -> QRCodeGrant:
            session = self.db.get(Session, session_id, with_for_update=True, populate_existing=True)
            if session is None:
                raise NotFoundError('Session')
            if actor is not None:
                self._check_permission(session, actor, force_new)

            now = self.clock()
            if not session.is_currently_active(now):
                raise SessionInactiveError('Session is not active')

            if not self._rotation_due(session, now, force_new):
                return self._current_grant(session, now)

            previous_code = session.current_qr_code
            previous_rotation = session.last_qr_rotation
            new_code = QRService.generate_code()
            valid_until = min(now + session.rotation_interval, session.end_time)

            # Compare-and-swap on the values we read; a concurrent rotation that
            # got there first leaves zero matching rows.
            swapped = self.db.execute(
                update(Session)
                .where(
                    Session.id == session.id,
                    Session.current_qr_code.is_(None) if previous_code is None
                    else Session.current_qr_code == previous_code,
                    Session.last_qr_rotation.is_(None) if previous_rotation is None
                    else Session.last_qr_rotation == previous_rotation,
                )
                .values(current_qr_code=new_code, last_qr_rotation=now)
                .execution_options(synchronize_session=False)
            ).rowcount

            if swapped != 1:
                self.db.refresh(session)
                logger.info('Session %s was rotated concurrently, returning winner code', session.id)
                return self._current_grant(session, now)

            self.db.add(QRCodeRecord(
                session_id=session.id,
                code=new_code,
                valid_from=now,
                valid_until=valid_until,
            ))
            return QRCodeGrant(session.id, new_code, valid_until, True, now)

        grant = run_in_transaction(self.db, work, 'QR rotation')
        if grant.rotated:
            logger.info(
                'QR code rotated for session %s (forced=%s)', session_id, force_new,
                extra={'event': 'QR_GENERATED', 'session_id': session_id,
                       'user_id': actor.user_id if actor else None}
            )
        return grant

    @staticmethod
    def _rotation_due(session: Session, now: datetime, force_new: bool) -> bool:
        if force_new or not session.current_qr_code or session.last_qr_rotation is None:
            return True
        return now - session.last_qr_rotation >= session.rotation_interval

    @staticmethod
    def _current_grant(session: Session, now: datetime) -> QRCodeGrant:
        valid_until = min(session.last_qr_rotation + session.rotation_interval, session.end_time)
        return QRCodeGrant(session.id, session.current_qr_code, valid_until, False, now)

    @staticmethod
    def _check_permission(session: Session, actor: Identity, force_new: bool) -> None:
        if session.is_hosted_by(actor.user_id) or actor.is_admin:
            return
        if not force_new and actor.is_lab_manager:
            return
        raise AuthorizationError("You don't have permission to generate QR codes for this session")
