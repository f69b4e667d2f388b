"""Session lifecycle: booking, conflict detection, updates and closing."""
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import update

from campus_attendance.models import (
    Attendance, Environment, QRCodeRecord, Session, SessionStatus, SessionType
)
from campus_attendance.services.identity import Identity
from campus_attendance.services.qr_service import QRService
from campus_attendance.services.transaction import run_in_transaction
from campus_attendance.utils.errors import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from campus_attendance.utils.helpers import isoformat, utcnow
from campus_attendance.utils.validators import Validator

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'name', 'type', 'allow_externals', 'host_name',
    'start_time', 'end_time', 'qr_rotation_minutes'
)

class SessionService:
    """Owns session creation, time-window conflicts and closing semantics."""

    def __init__(
        self,
        db_session,
        clock: Callable[[], datetime] = utcnow,
        default_rotation_minutes: int = 3,
        min_rotation_minutes: int = 1,
        max_rotation_minutes: int = 30,
        late_threshold_minutes: int = 15,
    ):
        self.db = db_session
        self.clock = clock
        self.default_rotation_minutes = default_rotation_minutes
        self.min_rotation_minutes = min_rotation_minutes
        self.max_rotation_minutes = max_rotation_minutes
        self.late_threshold_minutes = late_threshold_minutes

    @classmethod
    def from_config(cls, db_session, config, clock: Callable[[], datetime] = utcnow) -> 'SessionService':
        return cls(
            db_session,
            clock=clock,
            default_rotation_minutes=config.get('QR_ROTATION_MINUTES_DEFAULT', 3),
            min_rotation_minutes=config.get('QR_ROTATION_MINUTES_MIN', 1),
            max_rotation_minutes=config.get('QR_ROTATION_MINUTES_MAX', 30),
            late_threshold_minutes=config.get('LATE_THRESHOLD_MINUTES', 15),
        )

    # =================== QUERIES ===================

    def get_session(self, session_id: int, for_update: bool = False) -> Session:
        if for_update:
            session = self.db.get(Session, session_id, with_for_update=True, populate_existing=True)
        else:
            session = self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError('Session')
        return session

    def find_conflicts(
        self,
        environment_id: int,
        start: datetime,
        end: datetime,
        exclude_session_id: int = None
    ) -> List[Session]:
        """Active sessions on the environment whose window intersects [start, end)."""
        query = self.db.query(Session).filter(
            Session.environment_id == environment_id,
            Session.is_active.is_(True),
            Session.start_time < end,
            Session.end_time > start,
        )
        if exclude_session_id is not None:
            query = query.filter(Session.id != exclude_session_id)
        return query.all()

    def list_active_sessions(self, environment_id: int = None) -> List[Session]:
        """Sessions that are open and inside their window right now."""
        now = self.clock()
        query = self.db.query(Session).filter(
            Session.is_active.is_(True),
            Session.start_time <= now,
            Session.end_time >= now,
        )
        if environment_id is not None:
            query = query.filter(Session.environment_id == environment_id)
        return query.order_by(Session.start_time).all()

    def list_host_sessions(self, host_id: int, is_active: Optional[bool] = None) -> List[Session]:
        query = self.db.query(Session).filter(Session.host_id == host_id)
        if is_active is not None:
            query = query.filter(Session.is_active.is_(is_active))
        return query.order_by(Session.start_time.desc()).all()

    def list_environment_sessions(self, environment_id: int, start: datetime = None, end: datetime = None) -> List[Session]:
        """Booked schedule of one environment, optionally limited to [start, end)."""
        if self.db.get(Environment, environment_id) is None:
            raise NotFoundError('Environment')
        query = self.db.query(Session).filter(Session.environment_id == environment_id)
        if start is not None:
            query = query.filter(Session.end_time > start)
        if end is not None:
            query = query.filter(Session.start_time < end)
        return query.order_by(Session.start_time).all()

    # =================== BOOKING ===================

    def book_session(self, data: Dict, host: Identity) -> Session:
        """Book an environment for a time window.

        Raises ConflictError if another active session on the environment
        overlaps the requested window.
        """
        if not host.is_instructor:
            raise AuthorizationError('Only instructors or admins can book sessions')

        result = Validator.validate_session_payload(
            data, self.min_rotation_minutes, self.max_rotation_minutes
        )
        if not result['is_valid']:
            raise ValidationError('; '.join(result['errors']), {'errors': result['errors']})

        start = Validator.parse_datetime(data['start_time'])
        end = Validator.parse_datetime(data['end_time'])
        try:
            environment_id = int(data['environment_id'])
        except (TypeError, ValueError):
            raise ValidationError('environment_id must be an integer')
        allow_externals = bool(data.get('allow_externals', False))
        rotation = data.get('qr_rotation_minutes') or self.default_rotation_minutes

        def work() -> Session:
            # Lock the environment row so concurrent bookings serialize on it.
            environment = self.db.get(
                Environment, environment_id, with_for_update=True, populate_existing=True
            )
            if environment is None:
                raise NotFoundError('Environment')
            if not environment.is_active:
                raise ValidationError('Environment is not active')

            conflicts = self.find_conflicts(environment_id, start, end)
            if conflicts:
                raise ConflictError(
                    'Environment is not available in the requested time window',
                    {'conflicting_session_ids': [s.id for s in conflicts]}
                )

            now = self.clock()
            code = QRService.generate_code()
            session = Session(
                environment_id=environment_id,
                name=data['name'].strip(),
                type=SessionType(str(data['type']).lower()),
                allow_externals=allow_externals,
                host_id=host.user_id,
                host_name=data.get('host_name') if allow_externals else None,
                start_time=start,
                end_time=end,
                qr_rotation_minutes=rotation,
                current_qr_code=code,
                last_qr_rotation=now,
                is_active=True,
            )
            self.db.add(session)
            self.db.flush()

            self.db.add(QRCodeRecord(
                session_id=session.id,
                code=code,
                valid_from=now,
                valid_until=end,
            ))
            return session

        session = run_in_transaction(self.db, work, 'Session booking')
        logger.info(
            'Session %s booked on environment %s by user %s',
            session.id, environment_id, host.user_id,
            extra={'event': 'SESSION_CREATED', 'session_id': session.id, 'user_id': host.user_id}
        )
        return session

    def update_session(self, session_id: int, changes: Dict, actor: Identity) -> Session:
        """Apply changes; a new window is re-checked against other bookings."""
        changes = {k: v for k, v in (changes or {}).items() if k in UPDATABLE_FIELDS}

        def work() -> Session:
            session = self.get_session(session_id, for_update=True)
            self._require_host_or_admin(session, actor, 'update')
            if session.status(self.clock()) is SessionStatus.CLOSED:
                raise ConflictError('Closed sessions cannot be modified')

            merged = dict(changes)
            merged.setdefault('allow_externals', session.allow_externals)
            result = Validator.validate_session_payload(
                merged, self.min_rotation_minutes, self.max_rotation_minutes, partial=True
            )
            if not changes:
                result['errors'].append('At least one field must be provided')
                result['is_valid'] = False
            if not result['is_valid']:
                raise ValidationError('; '.join(result['errors']), {'errors': result['errors']})

            start = Validator.parse_datetime(changes['start_time']) if 'start_time' in changes else session.start_time
            end = Validator.parse_datetime(changes['end_time']) if 'end_time' in changes else session.end_time
            if start >= end:
                raise ValidationError('end_time must be after start_time')

            if start != session.start_time or end != session.end_time:
                conflicts = self.find_conflicts(
                    session.environment_id, start, end, exclude_session_id=session.id
                )
                if conflicts:
                    raise ConflictError(
                        'The new window conflicts with other sessions',
                        {'conflicting_session_ids': [s.id for s in conflicts]}
                    )

            for key, value in changes.items():
                if key in ('start_time', 'end_time'):
                    continue
                if key == 'type':
                    value = SessionType(str(value).lower())
                setattr(session, key, value)
            if end != session.end_time:
                self._move_code_validity(session, session.end_time, end)
            session.start_time = start
            session.end_time = end
            if not session.allow_externals:
                session.host_name = None
            return session

        session = run_in_transaction(self.db, work, 'Session update')
        logger.info(
            'Session %s updated by user %s: %s', session_id, actor.user_id, sorted(changes),
            extra={'event': 'SESSION_UPDATED', 'session_id': session_id, 'user_id': actor.user_id}
        )
        return session

    def delete_session(self, session_id: int, actor: Identity) -> bool:
        """Delete a session, or only deactivate it when attendance exists.

        Returns True when the row was deleted.
        """
        def work() -> bool:
            session = self.get_session(session_id, for_update=True)
            self._require_host_or_admin(session, actor, 'delete')

            if session.attendances.count() > 0:
                session.is_active = False
                return False

            self.db.delete(session)
            return True

        deleted = run_in_transaction(self.db, work, 'Session deletion')
        logger.info(
            'Session %s %s by user %s', session_id,
            'deleted' if deleted else 'deactivated', actor.user_id,
            extra={'event': 'SESSION_DELETED', 'session_id': session_id, 'user_id': actor.user_id}
        )
        return deleted

    # =================== CLOSING ===================

    def close_session(self, session_id: int, actor: Identity) -> Session:
        """Close the session and check out everyone still inside.

        Closing an already closed session changes nothing. A session whose
        window has already passed keeps its scheduled end, and open
        attendances are checked out at that end.
        """
        def work():
            session = self.get_session(session_id, for_update=True)
            self._require_host_or_admin(session, actor, 'close')

            original_end = session.end_time
            if not session.is_active:
                return session, original_end, None

            now = self.clock()
            closed_at = min(now, session.end_time)
            session.is_active = False
            # A session closed before it started keeps its booked window.
            if session.start_time < now < session.end_time:
                session.end_time = now

            result = self.db.execute(
                update(Attendance)
                .where(Attendance.session_id == session.id, Attendance.check_out_time.is_(None))
                .values(check_out_time=closed_at)
                .execution_options(synchronize_session=False)
            )
            return session, original_end, result.rowcount

        session, original_end, checked_out = run_in_transaction(self.db, work, 'Session close')
        if checked_out is None:
            logger.info('Session %s was already closed', session_id)
            return session
        logger.info(
            'Session %s closed by user %s (scheduled end %s), %s attendees checked out',
            session_id, actor.user_id, original_end.isoformat(), checked_out,
            extra={'event': 'SESSION_CLOSED', 'session_id': session_id, 'user_id': actor.user_id}
        )
        return session

    # =================== REPORTING ===================

    def session_attendance(self, session_id: int, actor: Identity) -> Dict:
        """Attendance rows of a session with summary stats."""
        session = self.get_session(session_id)
        if not (session.is_hosted_by(actor.user_id) or actor.is_lab_manager):
            raise AuthorizationError("You don't have permission to view this session's attendance")

        late_threshold = session.start_time + timedelta(minutes=self.late_threshold_minutes)
        attendances = session.attendances.order_by(Attendance.check_in_time).all()

        summary = {
            'total': len(attendances),
            'students': 0,
            'externals': 0,
            'suspicious': 0,
            'still_present': 0,
            'on_time': 0,
            'late': 0,
        }
        rows = []
        for a in attendances:
            on_time = a.check_in_time <= late_threshold
            summary['on_time' if on_time else 'late'] += 1
            summary['students' if a.user_id is not None else 'externals'] += 1
            if a.is_suspicious:
                summary['suspicious'] += 1
            if a.check_out_time is None:
                summary['still_present'] += 1

            rows.append({
                'id': a.id,
                'attendee': a.attendee_dict(),
                'check_in_time': a.check_in_time.isoformat(),
                'check_out_time': isoformat(a.check_out_time),
                'duration_minutes': a.duration_minutes,
                'status': 'on-time' if on_time else 'late',
                'is_suspicious': a.is_suspicious,
                'suspicious_reason': a.suspicious_reason,
            })

        return {
            'session': session.to_dict(now=self.clock()),
            'attendances': rows,
            'summary': summary,
        }

    # =================== HELPERS ===================

    def _move_code_validity(self, session: Session, old_end: datetime, new_end: datetime) -> None:
        """Keep issued codes inside the session window after end_time moves."""
        self.db.execute(
            update(QRCodeRecord)
            .where(QRCodeRecord.session_id == session.id, QRCodeRecord.valid_until > new_end)
            .values(valid_until=new_end)
            .execution_options(synchronize_session=False)
        )
        if new_end > old_end:
            # The live code was capped by the old end; it follows the new one.
            self.db.execute(
                update(QRCodeRecord)
                .where(
                    QRCodeRecord.session_id == session.id,
                    QRCodeRecord.code == session.current_qr_code,
                    QRCodeRecord.valid_until == old_end,
                )
                .values(valid_until=new_end)
                .execution_options(synchronize_session=False)
            )

    @staticmethod
    def _require_host_or_admin(session: Session, actor: Identity, action: str) -> None:
        if not (session.is_hosted_by(actor.user_id) or actor.is_admin):
            raise AuthorizationError(f"You don't have permission to {action} this session")
