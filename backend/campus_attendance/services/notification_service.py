"""Notification sink backed by the notifications table."""
import logging
from datetime import datetime
from typing import Callable, Dict, List

from campus_attendance.models import Notification
from campus_attendance.utils.errors import NotFoundError
from campus_attendance.utils.helpers import utcnow

logger = logging.getLogger(__name__)

class NotificationService:
    """Stores notifications for a recipient.

    ``notify`` only stages the row on the caller's unit of work; it is
    committed (or rolled back) together with whatever triggered it.
    """

    def __init__(self, db_session, clock: Callable[[], datetime] = utcnow):
        self.db = db_session
        self.clock = clock

    def notify(self, recipient_user_id: int, type: str, message: str, metadata: Dict = None,
               title: str = None) -> Notification:
        notification = Notification(
            user_id=recipient_user_id,
            type=type,
            title=title or type.replace('_', ' ').capitalize(),
            message=message,
            data=metadata or {},
        )
        self.db.add(notification)
        logger.info('Notification %s queued for user %s', type, recipient_user_id)
        return notification

    def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read_at.is_(None))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self.db.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
        if notification is None:
            raise NotFoundError('Notification')
        if notification.read_at is None:
            notification.read_at = self.clock()
            self.db.commit()
        return notification
