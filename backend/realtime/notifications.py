"""
Notification helpers for sending WebSocket messages to connected clients.

Every helper is fire-and-forget: sends are queued until the surrounding
transaction commits, a missing channel layer is reported as False and a
failed group_send is logged, never raised.

Groups:
    - user_<id>:   every connection of one user (notifications, ride events)
    - driver_<id>: driver connections (ride offers)
    - ride_<id>:   both parties tracking one ride
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available, dropping %s for %s", payload.get("type"), group)
        return False

    def _send():
        try:
            logger.debug("WS -> %s: %s", group, payload)
            async_to_sync(channel_layer.group_send)(group, payload)
        except Exception:
            logger.exception("Failed to push %s to %s", payload.get("type"), group)

    # Pushes describe committed state only; outside a transaction this runs now.
    transaction.on_commit(_send)
    return True


def _ride_data(ride) -> Dict[str, Any]:
    from rides.serializers import RideRequestSerializer
    return RideRequestSerializer(ride).data


# ---------------------- Ride Event Notifications ----------------------

def notify_driver_event(
    event_type: str,
    ride,
    driver_id: int | None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to a specific driver using their personal group: driver_<driver_id>
    
    Args:
        event_type: Handler name in consumer (ride_offer, ride_taken, ride_cancelled)
        ride: RideRequest model instance
        driver_id: Target driver's user ID
        message: Optional message to include
        extra: Additional payload data
    
    Returns:
        True if sent successfully, False otherwise
    """
    if not driver_id:
        return False

    payload = {
        "type": event_type,
        "ride_id": ride.id,
        "driver_id": driver_id,
        "ride_data": _ride_data(ride),
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    return _group_send(f"driver_{driver_id}", payload)


def notify_passenger_event(
    event_type: str,
    ride,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send ride-related event to the passenger through: user_<passenger_id>
    
    Args:
        event_type: Handler name in consumer (no_drivers_available, ride_status_changed)
        ride: RideRequest model instance
        message: Optional message to include
        extra: Additional payload data
    
    Returns:
        True if sent successfully, False otherwise
    """
    passenger_id = ride.passenger_id
    if not passenger_id:
        return False

    payload = {
        "type": event_type,
        "ride_id": ride.id,
        "status": ride.status,
        "ride_data": _ride_data(ride),
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    return _group_send(f"user_{passenger_id}", payload)


def notify_ride_group(ride, event_type: str, extra: Dict[str, Any] = None) -> bool:
    """Send an event to everyone tracking ride_<ride_id>."""
    payload = {
        "type": event_type,
        "ride_id": ride.id,
        "status": ride.status,
        "ride_data": _ride_data(ride),
        **(extra or {}),
    }
    return _group_send(f"ride_{ride.id}", payload)


def send_ride_group_payload(ride_id: int, payload: Dict[str, Any]) -> bool:
    """Send a pre-built payload (location, chat message) to ride_<ride_id>."""
    return _group_send(f"ride_{ride_id}", payload)


def send_user_event(user_id: int, payload: Dict[str, Any]) -> bool:
    """Send a pre-built payload to every connection of one user."""
    if not user_id:
        return False
    return _group_send(f"user_{user_id}", payload)
