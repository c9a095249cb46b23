"""
Notification helpers for sending WebSocket messages to connected clients.

Events are coarse-grained: they carry the request id, its status and a short
message. Clients re-query the polling endpoints to learn what changed.

Groups:
    - driver_<id>: one driver's sockets
    - mechanic_<id>: one mechanic's sockets
    - mechanics_online: every online mechanic (open request queue)
    - request_<id>: everyone tracking one request
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

OPEN_QUEUE_GROUP = "mechanics_online"


def driver_group(driver_id) -> str:
    return f"driver_{driver_id}"


def mechanic_group(mechanic_id) -> str:
    return f"mechanic_{mechanic_id}"


def request_group(request_id) -> str:
    return f"request_{request_id}"


# ---------------------- Delivery ----------------------

def after_commit(func, *args, **kwargs):
    """
    Run a notification once the surrounding transaction commits.

    Delivery is best effort: the state change is already durable, so a
    failing channel layer is logged and never propagated to the caller.
    """
    def _run():
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("Notification %s failed", getattr(func, "__name__", func))

    transaction.on_commit(_run)


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    logger.debug("WS -> %s: %s", group, payload)
    async_to_sync(channel_layer.group_send)(group, payload)
    return True


def _payload(event_type: str, service_request, message: str = "", extra: Dict[str, Any] = None):
    payload = {
        "type": event_type,
        "request_id": service_request.id,
        "status": service_request.status,
        **(extra or {}),
    }
    if message:
        payload["message"] = message
    return payload


# ---------------------- Targeted events ----------------------

def notify_driver_event(
    event_type: str,
    service_request,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to the request owner through driver_<driver_id>

    Args:
        event_type: Handler name in consumer (request_updated, offer_updated)
        service_request: ServiceRequest model instance
        message: Optional message to include
        extra: Additional payload data
    """
    if not service_request.driver_id:
        return False
    return _group_send(
        driver_group(service_request.driver_id),
        _payload(event_type, service_request, message, extra),
    )


def notify_mechanic_event(
    event_type: str,
    service_request,
    mechanic_id: Optional[int],
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """Send an event to one mechanic through mechanic_<mechanic_id>"""
    if not mechanic_id:
        return False
    return _group_send(
        mechanic_group(mechanic_id),
        _payload(event_type, service_request, message, extra),
    )


def notify_open_queue(event_type: str, service_request, message: str = "") -> bool:
    """Tell every online mechanic that the open request queue changed."""
    return _group_send(OPEN_QUEUE_GROUP, _payload(event_type, service_request, message))


def notify_request_group(
    event_type: str,
    service_request,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """Send to everyone tracking the request (request_<id>)."""
    return _group_send(
        request_group(service_request.id),
        _payload(event_type, service_request, message, extra),
    )


def notify_mechanic_presence(mechanic_id: int, is_online: bool) -> bool:
    """Let a mechanic's open sockets join or leave the queue group."""
    return _group_send(mechanic_group(mechanic_id), {
        "type": "presence_changed",
        "is_online": is_online,
    })


# ---------------------- Composite broadcasts ----------------------

def broadcast_request_update(service_request, message: str = "", extra: Dict[str, Any] = None):
    """Status changed: driver, assigned mechanic and trackers re-fetch."""
    notify_driver_event("request_updated", service_request, message, extra)
    notify_mechanic_event("request_updated", service_request, service_request.mechanic_id, message, extra)
    notify_request_group("request_updated", service_request, message, extra)


def broadcast_request_closed(service_request, bidder_ids: Iterable[int], message: str = ""):
    """
    The request left the open queue (accepted or cancelled).
    Online mechanics refresh their queue; losing bidders are told directly.
    """
    notify_open_queue("request_closed", service_request, message)
    for mechanic_id in set(bidder_ids):
        if mechanic_id == service_request.mechanic_id:
            continue
        notify_mechanic_event("request_closed", service_request, mechanic_id, message)
