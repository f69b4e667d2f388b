"""Notifications API."""
from flask import Blueprint, request
from campus_attendance import db
from campus_attendance.services.notification_service import NotificationService
from campus_attendance.utils.decorators import current_identity, login_required
from campus_attendance.utils.helpers import success_response

notifications_bp = Blueprint('notifications', __name__)

@notifications_bp.route('/', methods=['GET'])
@login_required
def get_notifications():
    """Get the caller's notifications, newest first."""
    unread_only = request.args.get('unread_only', 'false').lower() == 'true'
    notifications = NotificationService(db.session).list_for_user(current_identity().user_id, unread_only)
    unread_count = len([n for n in notifications if not n.is_read])

    return success_response(
        data={
            'notifications': [n.to_dict() for n in notifications],
            'summary': {
                'total_notifications': len(notifications),
                'unread_count': unread_count
            }
        },
        message=f"Found {len(notifications)} notifications"
    )

@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    notification = NotificationService(db.session).mark_read(notification_id, current_identity().user_id)
    return success_response(data=notification.to_dict(), message='Notification marked as read')
