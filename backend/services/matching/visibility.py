"""
Read-side projections: which requests and offers each party can see and act on.

Nothing here writes. Every projection is re-derived from current state on
each poll or notification.
"""

import logging
from typing import List, Optional

from django.db.models import Prefetch

from accounts.models import Role
from assistance.models import (
    Offer,
    OfferStatus,
    ServiceRequest,
    OPEN_STATUSES,
    TERMINAL_STATUSES,
)

logger = logging.getLogger(__name__)


# Action names exposed to clients as Offer.available_actions
ACCEPT = "accept"
COUNTER = "counter"
CANCEL_COUNTER = "cancel_counter"
DECLINE = "decline"
REVISE = "revise"
ACCEPT_COUNTER = "accept_counter"
REJECT_COUNTER = "reject_counter"


def _newest_offers(queryset=None):
    queryset = queryset if queryset is not None else Offer.objects.all()
    return Prefetch("offers", queryset=queryset.order_by("-created_at", "-id"))


# ---------------------- Predicates ----------------------

def is_request_open(service_request: ServiceRequest) -> bool:
    """Mechanics may still bid and negotiate."""
    return service_request.status in OPEN_STATUSES


def is_offer_actionable(offer: Offer, service_request: Optional[ServiceRequest] = None) -> bool:
    """An offer can be negotiated or accepted only while both it and its request are live."""
    service_request = service_request or offer.request
    return is_request_open(service_request) and offer.status in (
        OfferStatus.PENDING,
        OfferStatus.NEGOTIATING,
    )


def is_visible_to_mechanic(service_request: ServiceRequest, mechanic) -> bool:
    if service_request.mechanic_id == mechanic.id:
        return service_request.status not in TERMINAL_STATUSES
    return is_request_open(service_request)


def driver_actions(offer: Offer, service_request: Optional[ServiceRequest] = None) -> List[str]:
    """Commands the request owner may issue on this offer right now."""
    if not is_offer_actionable(offer, service_request):
        return []
    if offer.status == OfferStatus.NEGOTIATING:
        # Waiting on the mechanic; the driver can only take the counter back
        return [CANCEL_COUNTER]
    return [ACCEPT, COUNTER, DECLINE]


def mechanic_actions(offer: Offer, mechanic, service_request: Optional[ServiceRequest] = None) -> List[str]:
    """Commands the bidding mechanic may issue on their own offer right now."""
    if offer.mechanic_id != mechanic.id or not is_offer_actionable(offer, service_request):
        return []
    if offer.status == OfferStatus.NEGOTIATING:
        return [ACCEPT_COUNTER, REJECT_COUNTER]
    return [REVISE]


def actions_for(offer: Offer, viewer, service_request: Optional[ServiceRequest] = None) -> List[str]:
    if viewer is None:
        return []
    service_request = service_request or offer.request
    if viewer.role == Role.DRIVER and service_request.driver_id == viewer.id:
        return driver_actions(offer, service_request)
    if viewer.role == Role.MECHANIC:
        return mechanic_actions(offer, viewer, service_request)
    return []


# ---------------------- Projections ----------------------

def open_requests_for_mechanic(mechanic) -> List[ServiceRequest]:
    """
    The mechanic's open queue: every PENDING/OFFERING request, newest first.

    Each request carries only this mechanic's own offer, so competitors'
    prices are not disclosed. Offline mechanics get an empty queue.
    """
    profile = getattr(mechanic, "mechanic_profile", None)
    if profile is None or not profile.is_online:
        return []

    return list(
        ServiceRequest.objects.open()
        .select_related("driver")
        .prefetch_related(_newest_offers(Offer.objects.filter(mechanic=mechanic)))
        .order_by("-created_at", "-id")
    )


def active_request_for_driver(driver) -> Optional[ServiceRequest]:
    """The driver's single active request with all offers, newest first."""
    return (
        ServiceRequest.objects.active()
        .filter(driver=driver)
        .select_related("mechanic__mechanic_profile", "accepted_offer")
        .prefetch_related(_newest_offers())
        .first()
    )


def active_job_for_mechanic(mechanic) -> Optional[ServiceRequest]:
    """The non-terminal request currently assigned to this mechanic."""
    return (
        ServiceRequest.objects.active()
        .filter(mechanic=mechanic)
        .select_related("driver", "accepted_offer")
        .prefetch_related(_newest_offers())
        .first()
    )


def request_history(participant) -> List[ServiceRequest]:
    """Terminal requests the participant took part in, newest first."""
    lookup = {"driver": participant} if participant.role == Role.DRIVER else {"mechanic": participant}
    return list(
        ServiceRequest.objects.filter(status__in=TERMINAL_STATUSES, **lookup)
        .select_related("driver", "mechanic", "accepted_offer")
        .order_by("-created_at", "-id")
    )
