"""Mechanic WebSocket consumer for the open request queue and job notifications."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from accounts.models import Role
from mechanics.models import MechanicProfile
from mechanics.services import set_online
from realtime.notifications import OPEN_QUEUE_GROUP
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class MechanicConsumer(BaseConsumer):
    """
    WebSocket consumer for mechanics.

    Handles:
        - Open queue notifications (only while online)
        - Offer and job notifications for this mechanic
        - Online/offline toggling and location reports
    """

    async def on_connect(self):
        """Join the open queue group when online."""
        if self.role != Role.MECHANIC:
            await self.send_error("This endpoint is for mechanics only")
            await self.close()
            return

        is_online = await self._is_online()
        if is_online:
            await self._join_group(OPEN_QUEUE_GROUP)

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "is_online": is_online,
            "message": "Mechanic connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle mechanic-specific messages."""

        if msg_type == "location_update":
            await self._handle_location_update(data)
        elif msg_type == "set_online":
            await self._handle_set_online(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_set_online(self, data: Dict[str, Any]):
        is_online = data.get("is_online")
        if not isinstance(is_online, bool):
            await self.send_error("set_online requires is_online (true or false)")
            return

        # set_online notifies presence_changed, which moves this socket's groups
        await self._set_online(is_online)
        await self.send_success("status_updated", is_online=is_online)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def presence_changed(self, event):
        """Join or leave the open queue when this mechanic goes online/offline."""
        if event.get("is_online"):
            await self._join_group(OPEN_QUEUE_GROUP)
        else:
            await self._leave_group(OPEN_QUEUE_GROUP)
        await self.send_json(event)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _is_online(self) -> bool:
        try:
            return MechanicProfile.objects.get(user_id=self.user_id).is_online
        except MechanicProfile.DoesNotExist:
            return False

    @database_sync_to_async
    def _set_online(self, is_online: bool):
        profile = MechanicProfile.objects.get(user_id=self.user_id)
        return set_online(profile, is_online)
