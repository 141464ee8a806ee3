"""Ride tracking WebSocket consumer for real-time ride updates."""

import logging
from typing import Dict, Any, Set

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)

TERMINAL = ("completed", "cancelled")


class RideConsumer(BaseConsumer):
    """
    WebSocket consumer for ride tracking.

    Used by both drivers and passengers to:
        - Follow the driver's position while the ride is active
        - Receive ride status updates until the ride ends
        - Chat inside the ride
    """

    # Ride events come through ride_<id>; skip user_<id> to avoid duplicates
    join_user_group = False

    welcome_message = "Ride tracking connection established"
    message_handlers = {
        "start_tracking": "_handle_start_tracking",
        "stop_tracking": "_handle_stop_tracking",
        "tracking_update": "_handle_tracking_update",
        "send_message": "_handle_send_message",
    }

    async def on_connect(self):
        self.joined_rides: Set[str] = set()

    # ---------------------- Message Handlers ----------------------

    async def _handle_start_tracking(self, data: Dict[str, Any]):
        """
        Join a ride tracking group.
        Both driver and passenger join ride_<ride_id> to share location updates.
        """
        ride_id = data.get("ride_id")

        if ride_id is None:
            await self.send_error("start_tracking requires ride_id")
            return

        ride = await self._get_participant_ride(ride_id)
        if ride is None:
            await self.send_error("You are not authorized to track this ride", code="permission-denied")
            return
        if ride["status"] in TERMINAL:
            await self.send_error(f"Ride is already {ride['status']}", code="invalid-transition")
            return

        ride_group = f"ride_{ride_id}"
        await self._join_group(ride_group)
        self.joined_rides.add(ride_group)

        await self.send_success("tracking_started", ride_id=ride_id, ride=ride)

    async def _handle_stop_tracking(self, data: Dict[str, Any]):
        """Leave a ride tracking group."""
        ride_id = data.get("ride_id")

        if ride_id is None:
            return

        await self._stop(ride_id)
        await self.send_success("tracking_stopped", ride_id=ride_id)

    async def _stop(self, ride_id):
        ride_group = f"ride_{ride_id}"
        await self._leave_group(ride_group)
        self.joined_rides.discard(ride_group)

    async def _handle_tracking_update(self, data: Dict[str, Any]):
        """
        Driver sends location during an active ride; accepted positions
        reach the ride group as driver_track_location.
        """
        if self.role != "driver":
            await self.send_error("Only drivers can send tracking updates")
            return

        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("tracking_update requires latitude and longitude")
            return

        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers", code="invalid-argument")
            return

        await self._update_driver_location(lat, lon)

    async def _handle_send_message(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")
        content = data.get("content", "")

        if ride_id is None:
            await self.send_error("send_message requires ride_id")
            return

        error = await self._post_message(ride_id, content)
        if error:
            await self.send_error(error.message, code=error.code)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def ride_status_changed(self, event):
        """Forward the new status; stop tracking once the ride is over."""
        await super().ride_status_changed(event)
        if event.get("status") in TERMINAL:
            await self._stop(event.get("ride_id"))
            await self.send_success("tracking_stopped", ride_id=event.get("ride_id"))

    async def driver_track_location(self, event):
        """Forward driver location during ride tracking."""
        await self.send_json({
            "type": "driver_track_location",
            "ride_id": event.get("ride_id"),
            "driver_id": event.get("driver_id"),
            "latitude": event.get("latitude"),
            "longitude": event.get("longitude"),
            "timestamp": event.get("timestamp"),
        })

    async def ride_message(self, event):
        await self.send_json({
            "type": "ride_message",
            "message": event.get("message"),
        })

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _get_participant_ride(self, ride_id):
        """Serialized ride if the user is on it, else None."""
        from rides.models import RideRequest
        from rides.serializers import RideRequestSerializer

        ride = RideRequest.objects.filter(id=ride_id).first()
        if ride is None or not ride.is_participant(self.user_id):
            return None
        return RideRequestSerializer(ride).data

    @database_sync_to_async
    def _update_driver_location(self, lat: float, lon: float) -> bool:
        from drivers.models import DriverProfile
        from drivers.services import update_driver_location
        try:
            profile = DriverProfile.objects.get(user_id=self.user_id)
        except DriverProfile.DoesNotExist:
            return False
        return update_driver_location(profile, lat, lon)

    @database_sync_to_async
    def _post_message(self, ride_id, content):
        from services.ride_management import RideServiceError
        from services.ride_management.messaging import post_message
        try:
            post_message(ride_id, self.user, content)
        except RideServiceError as exc:
            return exc
        return None
