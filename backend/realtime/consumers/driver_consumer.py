"""Driver WebSocket consumer for request and offer notifications."""

import logging
from typing import Dict, Any

from accounts.models import Role
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers (the people in breakdown).

    Handles:
        - Offer notifications on the driver's active request
        - Request status notifications (accepted, en route, arrived...)
        - Driver location reports
    """

    async def on_connect(self):
        """Reject non-driver connections."""
        if self.role != Role.DRIVER:
            await self.send_error("This endpoint is for drivers only")
            await self.close()
            return

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Driver connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""

        if msg_type == "location_update":
            await self._handle_location_update(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")
