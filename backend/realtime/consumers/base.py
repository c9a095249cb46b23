"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, Set

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.db import database_sync_to_async

from accounts.models import Role
from accounts.services import update_participant_location
from realtime.notifications import driver_group, mechanic_group
from services.request_lifecycle.exceptions import AssistanceError

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Every connection joins its owner's personal group (driver_<id> or
    mechanic_<id>) so server-side notifications reach all of a user's sockets.

    Subclasses should override:
        - on_connect(): role checks and extra groups
        - handle_message(msg_type, data): handle incoming messages
    """

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous:
            await self.close()
            return

        # Basic attributes available to all consumers
        self.user_id = getattr(self.user, "id", None)
        self.role = getattr(self.user, "role", None)

        # Track joined groups for cleanup
        self.joined_groups: Set[str] = set()

        if self.role == Role.MECHANIC:
            self.user_group = mechanic_group(self.user_id)
        else:
            self.user_group = driver_group(self.user_id)
        await self._join_group(self.user_group)

        await self.accept()
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        try:
            for group in list(getattr(self, "joined_groups", ())):
                await self._leave_group(group)
            await self.on_disconnect(close_code)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, 'user_id', 'unknown'))

    async def on_disconnect(self, close_code):
        """Override in subclass for custom disconnect logic."""
        pass

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            await self.handle_message(msg_type, data)
        except AssistanceError as e:
            await self.send_error(e.message)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        """Join a channel group and track it."""
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        """Leave a channel group and untrack it."""
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str):
        """Send an error message to the client."""
        await self.send_json({
            "type": "error",
            "message": message,
        })

    async def send_success(self, event_type: str, **kwargs):
        """Send a success response to the client."""
        await self.send_json({
            "type": event_type,
            **kwargs,
        })

    # ---------------------- Shared Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        """Store the sender's position (throttled server side)."""
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("location_update requires latitude and longitude")
            return

        stored = await database_sync_to_async(update_participant_location)(self.user, lat, lon)
        await self.send_success("location_updated", stored=stored)

    # ---------------------- Common Event Handlers ----------------------
    # These handle group_send events from realtime.notifications. Payloads are
    # coarse (request id, status, message); clients re-fetch over HTTP.

    async def request_opened(self, event):
        """A new request entered the open queue."""
        await self.send_json(event)

    async def request_closed(self, event):
        """A request left the open queue (accepted elsewhere or cancelled)."""
        await self.send_json(event)

    async def request_updated(self, event):
        """Request status changed."""
        await self.send_json(event)

    async def offer_updated(self, event):
        """An offer was made, countered, declined or accepted."""
        await self.send_json(event)
