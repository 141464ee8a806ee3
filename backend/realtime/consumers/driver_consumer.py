"""Driver WebSocket consumer for location pushes, availability and ride offers."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - Driver location updates (throttled, forwarded to the active ride)
        - Availability changes (available/offline)
        - Ride offers and "ride taken" notices
    """

    required_role = "driver"
    welcome_message = "Driver connected successfully"
    message_handlers = {
        "driver_location_update": "_handle_location_update",
        "driver_status_update": "_handle_status_update",
    }

    async def on_connect(self):
        # Offers, ride_taken and ride_cancelled arrive here
        await self._join_group(f"driver_{self.user_id}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("driver_location_update requires latitude and longitude")
            return

        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers")
            return
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            await self.send_error("Coordinates out of range")
            return

        accepted = await self._update_location(lat, lon)
        logger.debug("Driver %s location lat=%s lon=%s accepted=%s", self.user_id, lat, lon, accepted)

    async def _handle_status_update(self, data: Dict[str, Any]):
        """Handle driver availability change (available/offline)."""
        status = data.get("status")

        if status not in ["available", "offline"]:
            await self.send_error("Invalid status. Must be: available or offline")
            return

        updated = await self._update_status(status)
        if not updated:
            await self.send_error("Driver profile not found")
            return

        await self.send_success("status_updated", status=status)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def ride_offer(self, event):
        """Sent by server to a driver to offer a ride."""
        await self.send_json({
            "type": "new_ride_request",
            "ride": event.get("ride_data"),
            "offer_id": event.get("offer_id"),
            "distance_km": event.get("distance_km"),
        })

    async def ride_taken(self, event):
        """Another driver accepted a ride this driver was offered."""
        await self.send_json({
            "type": "ride_taken",
            "ride_id": event.get("ride_id"),
            "message": event.get("message", ""),
        })

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _update_location(self, lat: float, lon: float) -> bool:
        from drivers.models import DriverProfile
        from drivers.services import update_driver_location
        try:
            profile = DriverProfile.objects.get(user_id=self.user_id)
        except DriverProfile.DoesNotExist:
            return False
        return update_driver_location(profile, lat, lon)

    @database_sync_to_async
    def _update_status(self, status: str) -> bool:
        from drivers.models import DriverProfile
        from drivers.services import update_driver_status
        try:
            profile = DriverProfile.objects.get(user_id=self.user_id)
        except DriverProfile.DoesNotExist:
            return False
        update_driver_status(profile, status)
        return True
