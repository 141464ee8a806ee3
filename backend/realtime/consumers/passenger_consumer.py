"""Passenger WebSocket consumer for ride status events and notifications."""

import logging
from typing import Dict, Any, Optional

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class PassengerConsumer(BaseConsumer):
    """
    WebSocket consumer for passengers.

    Everything arrives through user_<id>: ride_status_changed while a ride is
    open, and notification_created for the in-app inbox. The client can also
    ask for its current ride after a reconnect.
    """

    required_role = "user"
    welcome_message = "Passenger connected successfully"
    message_handlers = {"get_current_ride": "_handle_get_current_ride"}

    async def _handle_get_current_ride(self, data: Dict[str, Any]):
        ride = await self._get_current_ride()
        await self.send_success("current_ride", ride=ride)

    @database_sync_to_async
    def _get_current_ride(self) -> Optional[Dict[str, Any]]:
        from rides.serializers import RideRequestSerializer
        from services.ride_management import get_current_passenger_ride

        ride = get_current_passenger_ride(self.user)
        return RideRequestSerializer(ride).data if ride else None
