"""
Side effects fired after a ride changes status.

Nothing here may fail a transition: each helper logs and swallows its own
errors.
"""

import logging
from typing import List, Optional

from notifications.services import notify
from realtime.notifications import notify_passenger_event, notify_driver_event
from rides.models import ASSIGNED, ARRIVING, IN_PROGRESS, COMPLETED, CANCELLED

logger = logging.getLogger(__name__)

# status -> (notification type, title, body template)
STATUS_NOTIFICATIONS = {
    ASSIGNED: ("ride_assigned", "Driver Found!", "{driver_name} is on the way."),
    ARRIVING: ("ride_arriving", "Driver Arriving", "Your driver is almost here."),
    IN_PROGRESS: ("ride_started", "Ride Started", "Enjoy your trip!"),
    COMPLETED: ("ride_completed", "Ride Completed", "Thank you for riding with us!"),
    CANCELLED: ("ride_cancelled", "Ride Cancelled", "Your ride has been cancelled."),
}


def _driver_name(ride) -> str:
    if ride.driver is None:
        return "Your driver"
    return ride.driver.display_name


def notification_recipients(ride, actor_id: Optional[int]) -> List[int]:
    """Participants of the ride other than whoever caused the change."""
    recipients = []
    for user_id in (ride.passenger_id, ride.driver_id):
        if user_id and user_id != actor_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients


def notify_status_change(ride, actor_id: Optional[int] = None) -> List[int]:
    """
    Create the in-app notification for the ride's new status.

    Returns:
        Ids of the notifications that were stored
    """
    copy = STATUS_NOTIFICATIONS.get(ride.status)
    if copy is None:
        return []

    notification_type, title, body = copy
    body = body.format(driver_name=_driver_name(ride))

    created = []
    for user_id in notification_recipients(ride, actor_id):
        notification_id = notify(user_id, title, body, notification_type, ride_id=ride.id)
        if notification_id is not None:
            created.append(notification_id)
    return created


def push_status_change(ride) -> None:
    """Send ride_status_changed to the passenger and the assigned driver."""
    notify_passenger_event("ride_status_changed", ride)
    if ride.driver_id:
        notify_driver_event("ride_status_changed", ride, ride.driver_id)
