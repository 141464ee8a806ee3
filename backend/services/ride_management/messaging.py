"""
Per-ride chat.

Participants post text messages; the lifecycle appends system messages on
every transition. Each stored message is pushed to ride_<id>.
"""

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from realtime.notifications import send_ride_group_payload
from rides.models import RideRequest, RideMessage, ASSIGNED, ARRIVING, IN_PROGRESS, COMPLETED, CANCELLED
from .exceptions import (
    UnauthenticatedError,
    InvalidArgumentError,
    PermissionDeniedError,
    RideNotFoundError,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000

SYSTEM_MESSAGES = {
    ASSIGNED: "{driver_name} accepted the ride.",
    ARRIVING: "The driver is arriving at the pickup point.",
    IN_PROGRESS: "The ride has started.",
    COMPLETED: "The ride has been completed.",
    CANCELLED: "The ride was cancelled.",
}


def serialize_message(message: RideMessage) -> dict:
    return {
        "id": message.id,
        "ride_id": message.ride_id,
        "sender_id": message.sender_id,
        "sender_name": message.sender_name,
        "content": message.content,
        "type": message.message_type,
        "timestamp": (message.timestamp or timezone.now()).isoformat(),
    }


def _push(message: RideMessage) -> None:
    send_ride_group_payload(message.ride_id, {
        "type": "ride_message",
        "message": serialize_message(message),
    })


def _get_participant_ride(ride_id, user) -> RideRequest:
    if user is None or not getattr(user, "is_authenticated", False):
        raise UnauthenticatedError()
    ride = RideRequest.objects.filter(id=ride_id).first()
    if ride is None:
        raise RideNotFoundError()
    if not ride.is_participant(user.id):
        raise PermissionDeniedError("Only ride participants can use this chat")
    return ride


def post_message(ride_id, sender, content: str) -> RideMessage:
    """
    Append a text message from one participant.

    Raises:
        InvalidArgumentError: If content is empty or too long
        PermissionDeniedError: If sender is not on the ride
    """
    ride = _get_participant_ride(ride_id, sender)

    content = (content or "").strip()
    if not content:
        raise InvalidArgumentError("Message cannot be empty")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise InvalidArgumentError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")

    message = RideMessage.objects.create(
        ride=ride,
        sender=sender,
        sender_name=sender.display_name,
        content=content,
        message_type="text",
    )
    _push(message)
    return message


def post_system_message(ride: RideRequest) -> Optional[RideMessage]:
    """Append the system line for the ride's current status. Never raises."""
    template = SYSTEM_MESSAGES.get(ride.status)
    if template is None:
        return None

    driver_name = ride.driver.display_name if ride.driver is not None else "Your driver"
    try:
        with transaction.atomic():
            message = RideMessage.objects.create(
                ride=ride,
                sender=None,
                sender_name="System",
                content=template.format(driver_name=driver_name),
                message_type="system",
            )
    except Exception:
        logger.exception("Failed to store system message for ride %s", ride.id)
        return None

    _push(message)
    return message


def list_messages(ride_id, user):
    ride = _get_participant_ride(ride_id, user)
    return ride.messages.all()
