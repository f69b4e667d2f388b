"""Flags check-ins that look automated or shared."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from campus_attendance.models import Attendance, Session

logger = logging.getLogger(__name__)

SUSPICIOUS_ATTENDANCE = 'SUSPICIOUS_ATTENDANCE'

@dataclass(frozen=True)
class AnomalyVerdict:
    is_suspicious: bool
    reason: str = None
    recent_count: int = 0

class AnomalyDetector:
    """Same-origin burst detection over the persisted attendance trail.

    Stateless: every call recounts recent rows, so the result does not depend
    on which process handled the earlier scans.
    """

    def __init__(self, db_session, notifier=None, window_seconds: int = 60, max_checkins_per_origin: int = 2):
        self.db = db_session
        self.notifier = notifier
        self.window = timedelta(seconds=window_seconds)
        self.max_checkins_per_origin = max_checkins_per_origin

    def inspect(self, session: Session, ip_address: str, now: datetime) -> AnomalyVerdict:
        """Judge a check-in that is about to be recorded at ``now``."""
        if not ip_address:
            return AnomalyVerdict(False)

        prior = self.db.query(Attendance).filter(
            Attendance.session_id == session.id,
            Attendance.ip_address == ip_address,
            Attendance.check_in_time >= now - self.window,
            Attendance.check_in_time <= now,
        ).count()
        count = prior + 1  # including this check-in

        if count > self.max_checkins_per_origin:
            reason = (
                f'{count} check-ins from the same address {ip_address} '
                f'within {int(self.window.total_seconds())} seconds'
            )
            return AnomalyVerdict(True, reason, count)
        return AnomalyVerdict(False, None, count)

    def report(self, session: Session, attendance: Attendance, attendee_label: str = None) -> None:
        """Tell the host about a flagged check-in; advisory only."""
        if not attendance.is_suspicious:
            return
        logger.warning(
            'Suspicious check-in on session %s: %s', session.id, attendance.suspicious_reason,
            extra={'event': SUSPICIOUS_ATTENDANCE, 'session_id': session.id,
                   'user_id': attendance.user_id}
        )
        if self.notifier is None or session.host_id is None:
            return
        self.notifier.notify(
            session.host_id,
            SUSPICIOUS_ATTENDANCE,
            f'Suspicious check-in detected in {session.name}: {attendance.suspicious_reason}',
            {
                'session_id': session.id,
                'attendance_id': attendance.id,
                'attendee': attendee_label,
                'ip_address': attendance.ip_address,
            },
            title='Suspicious attendance detected',
        )
