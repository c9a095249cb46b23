"""Request tracking WebSocket consumer for live job updates."""

import logging
from typing import Dict, Any, Set

from channels.db import database_sync_to_async

from accounts.models import Role
from accounts.services import update_participant_location
from realtime.notifications import request_group
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class RequestConsumer(BaseConsumer):
    """
    WebSocket consumer for tracking one assistance request.

    Used by both the driver and the assigned mechanic to:
        - Receive status updates (en route, arrived, completed, cancelled)
        - Share the mechanic's live position while the job is under way
    """

    async def on_connect(self):
        """Set up request tracking connection."""
        # Track which request groups this connection has joined
        self.tracked: Set[str] = set()

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Request tracking connection established",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle request tracking messages."""

        if msg_type == "start_tracking":
            await self._handle_start_tracking(data)
        elif msg_type == "stop_tracking":
            await self._handle_stop_tracking(data)
        elif msg_type == "tracking_update":
            await self._handle_tracking_update(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_start_tracking(self, data: Dict[str, Any]):
        """
        Join a request tracking group.
        The driver and the assigned mechanic join request_<request_id>.
        """
        request_id = data.get("request_id")

        if request_id is None:
            await self.send_error("start_tracking requires request_id")
            return

        # Validate request exists and user is part of it
        is_valid = await self._validate_participant(request_id)
        if not is_valid:
            await self.send_error("You are not authorized to track this request")
            return

        group = request_group(request_id)
        await self._join_group(group)
        self.tracked.add(group)

        await self.send_success("tracking_started", request_id=request_id)

    async def _handle_stop_tracking(self, data: Dict[str, Any]):
        """Leave a request tracking group."""
        request_id = data.get("request_id")

        if request_id is None:
            return

        group = request_group(request_id)
        await self._leave_group(group)
        self.tracked.discard(group)

        await self.send_success("tracking_stopped", request_id=request_id)

    async def _handle_tracking_update(self, data: Dict[str, Any]):
        """
        Assigned mechanic sends their position during the job.
        Broadcasts to everyone in the request group.
        """
        if self.role != Role.MECHANIC:
            await self.send_error("Only mechanics can send tracking updates")
            return

        request_id = data.get("request_id")
        lat = data.get("latitude")
        lon = data.get("longitude")

        if request_id is None or lat is None or lon is None:
            await self.send_error("tracking_update requires request_id, latitude, and longitude")
            return

        group = request_group(request_id)
        if group not in self.tracked:
            await self.send_error("Start tracking this request first")
            return

        await database_sync_to_async(update_participant_location)(self.user, lat, lon)

        await self.channel_layer.group_send(group, {
            "type": "mechanic_track_location",
            "user_id": self.user_id,
            "latitude": float(lat),
            "longitude": float(lon),
        })

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def mechanic_track_location(self, event):
        """Forward the mechanic's position during the job."""
        await self.send_json({
            "type": "mechanic_track_location",
            "user_id": event.get("user_id"),
            "latitude": event.get("latitude"),
            "longitude": event.get("longitude"),
        })

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _validate_participant(self, request_id) -> bool:
        """Check if user is authorized to track this request."""
        from assistance.models import ServiceRequest
        try:
            service_request = ServiceRequest.objects.get(id=request_id)
        except (ServiceRequest.DoesNotExist, ValueError, TypeError):
            return False
        # User must be either the driver or the assigned mechanic
        return self.user_id in (service_request.driver_id, service_request.mechanic_id)
