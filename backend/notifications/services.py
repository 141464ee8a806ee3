"""
Notification dispatcher.

notify() persists an in-app notification and pushes it to the recipient's
user_<id> group. It is fire-and-forget: any failure is logged and swallowed,
and the write runs in its own savepoint so a failed insert never poisons the
caller's transaction.
"""

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from realtime.notifications import send_user_event
from .models import Notification

logger = logging.getLogger(__name__)


def notify(
    user_id: int,
    title: str,
    body: str,
    notification_type: str,
    ride_id: Optional[int] = None,
) -> Optional[int]:
    """
    Create a notification for one user and push it live.

    Returns:
        The notification id, or None when delivery failed
    """
    if not user_id:
        return None

    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user_id=user_id,
                title=title,
                body=body,
                notification_type=notification_type,
                ride_id=ride_id,
            )
    except Exception:
        logger.exception("Failed to store notification %r for user %s", title, user_id)
        return None

    send_user_event(user_id, {
        "type": "notification_created",
        "notification": serialize_notification(notification),
    })

    logger.debug("Notification %s (%s) -> user %s", notification.id, notification_type, user_id)
    return notification.id


def serialize_notification(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "title": notification.title,
        "body": notification.body,
        "type": notification.notification_type,
        "ride_id": notification.ride_id,
        "read": notification.read,
        "created_at": (notification.created_at or timezone.now()).isoformat(),
    }


def list_notifications(user, unread_only: bool = False):
    qs = Notification.objects.filter(user=user)
    if unread_only:
        qs = qs.filter(read=False)
    return qs


def mark_read(user, notification_id: int) -> Notification:
    """
    Mark one notification as read. Only the recipient may do this.

    Raises:
        Notification.DoesNotExist: If the notification does not belong to user
    """
    notification = Notification.objects.get(id=notification_id, user=user)
    if not notification.read:
        notification.read = True
        notification.save(update_fields=["read"])
    return notification


def mark_all_read(user) -> int:
    return Notification.objects.filter(user=user, read=False).update(read=True)
