"""Attendance verification pipeline.

A scanned code goes through an ordered chain of checks; the first failing
check decides the rejection reason:

1. the code exists in the QR history,
2. its session is active,
3. it is still the session's current code,
4. the scan happens inside the session window,
5. the attendee has not already completed entry and exit.

An accepted first scan is a check-in, the second one a check-out.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError

from campus_attendance.models import Attendance, ExternalPerson, QRCodeRecord, Session
from campus_attendance.services.anomaly_service import AnomalyDetector
from campus_attendance.services.identity import (
    Attendee, ExternalAttendee, OriginMetadata, RegisteredAttendee
)
from campus_attendance.services.notification_service import NotificationService
from campus_attendance.services.qr_service import QRService
from campus_attendance.services.transaction import run_in_transaction
from campus_attendance.utils.errors import (
    AlreadyCompletedError, AttendanceRejection, AuthorizationError, CodeRotatedError,
    DuplicateCheckInError, InvalidCodeError, OutOfWindowError, SessionInactiveError,
    ValidationError
)
from campus_attendance.utils.helpers import isoformat, utcnow
from campus_attendance.utils.validators import Validator

logger = logging.getLogger(__name__)

CHECKIN = 'checkin'
CHECKOUT = 'checkout'

@dataclass
class VerificationResult:
    """Read-only answer to "would this code be accepted right now?"."""
    valid: bool
    reason: str
    code: str
    session: Optional[Session] = None
    validations: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            'valid': self.valid,
            'reason': self.reason,
            'code': self.code,
            'validations': self.validations,
        }
        if self.session is not None:
            data['session'] = {
                'id': self.session.id,
                'name': self.session.name,
                'type': self.session.type.value,
                'environment': self.session.environment.name if self.session.environment else None,
                'host': self.session.host.name if self.session.host else self.session.host_name,
                'start_time': self.session.start_time.isoformat(),
                'end_time': self.session.end_time.isoformat(),
            }
        return data

@dataclass
class AttendanceOutcome:
    """Result of a scan: accepted check-in/check-out, or a rejection."""
    accepted: bool
    type: Optional[str] = None
    attendance: Optional[Attendance] = None
    warning: Optional[str] = None
    rejection: Optional[AttendanceRejection] = None

    @classmethod
    def rejected(cls, rejection: AttendanceRejection) -> 'AttendanceOutcome':
        return cls(accepted=False, rejection=rejection)

    @property
    def reason(self) -> Optional[str]:
        return self.rejection.message if self.rejection else None

    def to_dict(self) -> dict:
        if not self.accepted:
            return {'accepted': False, **self.rejection.to_dict()}
        return {
            'accepted': True,
            'type': self.type,
            'attendance': self.attendance.to_dict(),
            'warning': self.warning,
        }

class AttendanceService:
    """Single authority on whether a scan produces an attendance event."""

    def __init__(
        self,
        db_session,
        detector: AnomalyDetector,
        clock: Callable[[], datetime] = utcnow,
        late_threshold_minutes: int = 15,
    ):
        self.db = db_session
        self.detector = detector
        self.clock = clock
        self.late_threshold_minutes = late_threshold_minutes

    # =================== VERIFY ===================

    def verify_code(self, code: str) -> VerificationResult:
        """Run checks 1-4 without writing anything."""
        code = QRService.parse_scanned(code)
        now = self.clock()

        record = self._find_record(code)
        if record is None:
            error = InvalidCodeError()
            return VerificationResult(False, error.message, error.code,
                                      validations={'exists': False})

        session = record.session
        validations = {
            'exists': True,
            'is_active': bool(session.is_active),
            'is_current': session.current_qr_code == record.code,
            'is_in_time': session.is_within_window(now),
        }
        try:
            self._validate(record, session, now)
        except AttendanceRejection as error:
            return VerificationResult(False, error.message, error.code, session, validations)
        return VerificationResult(True, 'Code is valid', 'VALID', session, validations)

    # =================== MARK ===================

    def mark_attendance(self, code: str, attendee: Attendee, origin: OriginMetadata = None) -> AttendanceOutcome:
        """Check in or out with a scanned code.

        Rejections come back inside the outcome; authorization and persistence
        failures are raised.
        """
        external = isinstance(attendee, ExternalAttendee)
        return self._mark(code, lambda: attendee, origin, external)

    def mark_external_attendance(self, code: str, person: Dict, origin: OriginMetadata = None) -> AttendanceOutcome:
        """Scan on behalf of a guest identified by dni.

        The guest is found or registered only once the code has passed every
        check, in the same transaction as the attendance row.
        """
        person = self._clean_person(person)
        return self._mark(code, lambda: ExternalAttendee(self._find_or_create_external(person).id), origin, True)

    def _mark(self, code: str, resolve_attendee: Callable[[], Attendee], origin: OriginMetadata,
              external: bool) -> AttendanceOutcome:
        code = QRService.parse_scanned(code)
        if not code:
            raise ValidationError('QR code is required')
        origin = origin or OriginMetadata()

        def work() -> AttendanceOutcome:
            now = self.clock()

            record = self._find_record(code)
            if record is None:
                raise InvalidCodeError()
            session = self.db.get(Session, record.session_id, with_for_update=True, populate_existing=True)

            if external and not session.allow_externals:
                raise AuthorizationError('This session does not admit external attendees')

            self._validate(record, session, now)
            attendee = resolve_attendee()

            existing = self._find_existing(session.id, attendee)
            if existing is not None:
                if not existing.is_completed:
                    existing.check_out_time = now
                    return AttendanceOutcome(True, CHECKOUT, existing)
                raise AlreadyCompletedError()

            verdict = self.detector.inspect(session, origin.ip_address, now)

            record.scan_count = QRCodeRecord.scan_count + 1
            attendance = Attendance(
                session_id=session.id,
                check_in_time=now,
                is_suspicious=verdict.is_suspicious,
                suspicious_reason=verdict.reason,
                ip_address=origin.ip_address,
                device_info=(origin.device_info or '')[:512] or None,
                **self._attendee_columns(attendee)
            )
            self.db.add(attendance)
            try:
                self.db.flush()
            except IntegrityError as e:
                # A concurrent scan by the same attendee inserted first.
                raise DuplicateCheckInError() from e

            self.detector.report(session, attendance, self._attendee_label(attendance))
            return AttendanceOutcome(True, CHECKIN, attendance, verdict.reason)

        try:
            outcome = run_in_transaction(self.db, work, 'Attendance marking')
        except AttendanceRejection as rejection:
            logger.info('Scan rejected (%s): %s', rejection.code, rejection.message,
                        extra={'event': 'SCAN_REJECTED'})
            return AttendanceOutcome.rejected(rejection)

        attendance = outcome.attendance
        logger.info(
            '%s recorded for %s on session %s', outcome.type.upper(),
            self._attendee_label(attendance), attendance.session_id,
            extra={'event': outcome.type.upper(), 'session_id': attendance.session_id,
                   'user_id': attendance.user_id}
        )
        return outcome

    @staticmethod
    def _clean_person(person: Dict) -> Dict:
        person = person or {}
        dni = str(person.get('dni') or '').strip()
        if not dni:
            raise ValidationError('dni is required')
        email = person.get('email')
        if email and not Validator.validate_email(email):
            raise ValidationError('Invalid email format')
        return {
            'dni': dni,
            'full_name': str(person.get('full_name') or '').strip(),
            'institution': person.get('institution'),
            'email': email or None,
        }

    def _find_or_create_external(self, person: Dict) -> ExternalPerson:
        """Runs inside the scan transaction; never commits on its own."""
        external = self.db.query(ExternalPerson).filter_by(dni=person['dni']).first()
        if external is not None:
            return external
        if len(person['full_name']) < 3:
            raise ValidationError('full_name must be at least 3 characters long')
        external = ExternalPerson(**person)
        self.db.add(external)
        self.db.flush()
        return external

    # =================== READS ===================

    def my_attendance(self, user_id: int) -> Dict:
        attendances = (
            self.db.query(Attendance)
            .filter(Attendance.user_id == user_id)
            .order_by(Attendance.check_in_time.desc())
            .all()
        )

        rows = []
        on_time = 0
        durations = []
        for a in attendances:
            session = a.session
            threshold = session.start_time + timedelta(minutes=self.late_threshold_minutes)
            is_on_time = a.check_in_time <= threshold
            on_time += 1 if is_on_time else 0
            if a.duration_minutes is not None:
                durations.append(a.duration_minutes)
            rows.append({
                'id': a.id,
                'session': {
                    'id': session.id,
                    'name': session.name,
                    'type': session.type.value,
                    'environment': session.environment.name if session.environment else None,
                    'host': session.host.name if session.host else session.host_name,
                    'date': session.start_time.isoformat(),
                },
                'check_in_time': a.check_in_time.isoformat(),
                'check_out_time': isoformat(a.check_out_time),
                'duration_minutes': a.duration_minutes,
                'status': 'on-time' if is_on_time else 'late',
                'is_suspicious': a.is_suspicious,
            })

        return {
            'records': rows,
            'stats': {
                'total_sessions': len(attendances),
                'on_time': on_time,
                'late': len(attendances) - on_time,
                'average_duration_minutes': round(sum(durations) / len(durations), 2) if durations else 0,
            },
        }

    # =================== HELPERS ===================

    def _find_record(self, code: str) -> Optional[QRCodeRecord]:
        if not code:
            return None
        return self.db.query(QRCodeRecord).filter_by(code=code).first()

    @staticmethod
    def _validate(record: QRCodeRecord, session: Session, now: datetime) -> None:
        if not session.is_active:
            raise SessionInactiveError()
        if session.current_qr_code != record.code:
            raise CodeRotatedError()
        if not session.is_within_window(now):
            raise OutOfWindowError()

    def _find_existing(self, session_id: int, attendee: Attendee) -> Optional[Attendance]:
        query = self.db.query(Attendance).filter(Attendance.session_id == session_id)
        if isinstance(attendee, RegisteredAttendee):
            query = query.filter(Attendance.user_id == attendee.user_id)
        elif isinstance(attendee, ExternalAttendee):
            query = query.filter(Attendance.external_person_id == attendee.external_person_id)
        else:
            raise ValidationError('Unknown attendee kind')
        return query.with_for_update().first()

    @staticmethod
    def _attendee_columns(attendee: Attendee) -> Dict:
        if isinstance(attendee, RegisteredAttendee):
            return {'user_id': attendee.user_id}
        return {'external_person_id': attendee.external_person_id}

    @staticmethod
    def _attendee_label(attendance: Attendance) -> str:
        if attendance.user_id is not None:
            return f'user:{attendance.user_id}'
        return f'external:{attendance.external_person_id}'

def build_attendance_service(db_session, config, clock: Callable[[], datetime] = utcnow) -> AttendanceService:
    """Wire the pipeline with its detector and notification sink."""
    detector = AnomalyDetector(
        db_session,
        notifier=NotificationService(db_session, clock),
        window_seconds=config.get('ANOMALY_WINDOW_SECONDS', 60),
        max_checkins_per_origin=config.get('ANOMALY_MAX_CHECKINS_PER_ORIGIN', 2),
    )
    return AttendanceService(
        db_session, detector, clock,
        late_threshold_minutes=config.get('LATE_THRESHOLD_MINUTES', 15),
    )
