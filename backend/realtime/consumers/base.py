"""Base WebSocket consumer shared by the driver, passenger and ride sockets."""

import logging
from typing import Dict, Any, Optional, Set

from channels.generic.websocket import AsyncJsonWebsocketConsumer

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Authenticated JSON socket.

    Subclasses declare:
        - required_role: "driver" / "user", or None for any signed-in user
        - message_handlers: incoming "type" -> coroutine method name
        - on_connect(): extra groups after the role check passed
    """

    required_role: Optional[str] = None
    welcome_message = ""
    message_handlers: Dict[str, str] = {}

    # Join user_<id> for notifications and ride events
    join_user_group = True

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous:
            await self.close()
            return

        self.user_id = getattr(self.user, "id", None)
        self.role = getattr(self.user, "role", None)
        self.joined_groups: Set[str] = set()

        await self.accept()

        if self.required_role and self.role != self.required_role:
            await self.send_error("This socket is not available for your account", code="permission-denied")
            await self.close()
            return

        if self.join_user_group:
            await self._join_group(f"user_{self.user_id}")
        await self.on_connect()

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": self.welcome_message,
        })

    async def on_connect(self):
        pass

    async def disconnect(self, close_code):
        try:
            for group in list(getattr(self, "joined_groups", ())):
                await self._leave_group(group)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, "user_id", "unknown"))

    async def receive_json(self, data: Dict[str, Any]):
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required", code="invalid-argument")
            return

        handler_name = self.message_handlers.get(msg_type)
        if handler_name is None:
            await self.send_error(f"Unknown message type: {msg_type}", code="invalid-argument")
            return

        try:
            await getattr(self, handler_name)(data)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}", code="internal")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str, code: str = None):
        payload = {"type": "error", "message": message}
        if code:
            payload["code"] = code
        await self.send_json(payload)

    async def send_success(self, event_type: str, **kwargs):
        await self.send_json({"type": event_type, **kwargs})

    # ---------------------- Common Event Handlers ----------------------
    # group_send events from services.ride_management and notifications

    async def ride_status_changed(self, event):
        await self.send_json({
            "type": "ride_status_changed",
            "ride_id": event.get("ride_id"),
            "status": event.get("status"),
            "ride": event.get("ride_data", {}),
        })

    async def notification_created(self, event):
        await self.send_json({
            "type": "notification",
            "notification": event.get("notification"),
        })

    async def ride_cancelled(self, event):
        """An offered ride was cancelled before anyone accepted it."""
        await self.send_json({
            "type": "ride_cancelled",
            "ride_id": event.get("ride_id"),
            "message": event.get("message", ""),
        })
