"""
Offer negotiation operations.

Mechanics bid on open requests, the driver may counter a bid with their own
price, either side may back out of the counter, and an accepted offer assigns
the mechanic to the request. Every write is conditional on the request still
being open, so nothing lands on a request that was accepted or cancelled in
the meantime.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import Role
from assistance.models import (
    Offer,
    OfferStatus,
    RequestStatus,
    ServiceRequest,
    LIVE_OFFER_STATUSES,
    OPEN_STATUSES,
)
from realtime.notifications import (
    after_commit,
    broadcast_request_closed,
    broadcast_request_update,
    notify_driver_event,
    notify_mechanic_event,
    notify_open_queue,
)
from services.matching import is_offer_actionable
from services.request_lifecycle.exceptions import (
    InvalidInputError,
    MechanicNotAvailableError,
    OfferNotActionableError,
    OfferNotFoundError,
    ParticipantNotFoundError,
    PermissionDeniedError,
    RequestNotAvailableError,
    upstream_guard,
)
from services.request_lifecycle.lifecycle import (
    ServiceResult,
    load_request,
    require_owner,
    require_role,
)

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


# ===================== Helpers =====================

def parse_price(value, field: str = "price") -> Decimal:
    """Positive amount rounded to cents, or InvalidInputError."""
    if value is None or value == "":
        raise InvalidInputError(f"A {field} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"The {field} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(f"The {field} must be greater than zero")
    return amount.quantize(_CENTS)


def _parse_eta(value) -> int:
    if value is None or value == "":
        return int(getattr(settings, "OFFER_DEFAULT_ETA_MINUTES", 15))
    try:
        eta = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError("The ETA must be a whole number of minutes")
    if eta <= 0:
        raise InvalidInputError("The ETA must be greater than zero")
    return eta


def load_offer(offer_id, for_update: bool = False) -> Offer:
    """Fetch an offer with its request, or raise OfferNotFoundError."""
    if offer_id in (None, ""):
        raise InvalidInputError("An offer id is required")

    queryset = Offer.objects.select_related("request")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=offer_id)
    except (Offer.DoesNotExist, ValueError, TypeError):
        raise OfferNotFoundError(f"Offer {offer_id} not found")


def _require_actionable(offer: Offer):
    if not offer.request.is_open:
        raise RequestNotAvailableError(f"Request {offer.request_id} is no longer open")
    if not is_offer_actionable(offer, offer.request):
        raise OfferNotActionableError(f"Offer {offer.id} is {offer.status}")


def _live_offer(offer_id):
    """Queryset for a conditional write on a still-negotiable offer."""
    return Offer.objects.filter(
        pk=offer_id,
        status__in=LIVE_OFFER_STATUSES,
        request__status__in=OPEN_STATUSES,
    )


def _offer_event(offer: Offer, action: str, **extra):
    return {"offer_id": offer.id, "action": action, "price": str(offer.price), **extra}


# ===================== Mechanic Operations =====================

@upstream_guard
@transaction.atomic
def submit_offer(mechanic, request_id, price, eta=None) -> ServiceResult:
    """
    Bid on an open request, or revise this mechanic's existing bid.

    A first bid sets price and original_price; a resubmission updates price
    and ETA, resets the offer to PENDING and leaves original_price alone.
    The request moves PENDING -> OFFERING on its first bid.

    Raises:
        RequestNotFoundError: Unknown request
        RequestNotAvailableError: Request is no longer PENDING/OFFERING
        MechanicNotAvailableError: Mechanic is offline
        OfferNotActionableError: Existing bid was already accepted or declined
        InvalidInputError: Missing or non-positive price
    """
    require_role(mechanic, Role.MECHANIC)

    profile = getattr(mechanic, "mechanic_profile", None)
    if profile is None:
        raise ParticipantNotFoundError("Mechanic profile not found")
    if not profile.is_online:
        raise MechanicNotAvailableError("Go online before sending offers")

    price = parse_price(price)
    eta = _parse_eta(eta)

    service_request = load_request(request_id, for_update=True)
    if not service_request.is_open:
        raise RequestNotAvailableError(f"Request {service_request.id} is no longer open")

    now = timezone.now()
    snapshot = {
        "mechanic_name": mechanic.public_name,
        "mechanic_rating": profile.rating,
    }

    offer = Offer.objects.select_for_update().filter(
        request=service_request, mechanic=mechanic
    ).first()
    created = offer is None

    if created:
        try:
            with transaction.atomic():
                offer = Offer.objects.create(
                    request=service_request,
                    mechanic=mechanic,
                    price=price,
                    original_price=price,
                    eta=eta,
                    status=OfferStatus.PENDING,
                    **snapshot,
                )
        except IntegrityError:
            raise OfferNotActionableError("An offer from you is already on this request")
    else:
        if not offer.is_live:
            raise OfferNotActionableError(f"Your offer is already {offer.status}")
        fields = {
            "price": price,
            "eta": eta,
            "status": OfferStatus.PENDING,
            "is_counter_offer": False,
            "updated_at": now,
            **snapshot,
        }
        if not _live_offer(offer.pk).update(**fields):
            raise RequestNotAvailableError("The request changed in the meantime, refresh and try again")
        for name, value in fields.items():
            setattr(offer, name, value)

    if service_request.status == RequestStatus.PENDING:
        moved = ServiceRequest.objects.filter(
            pk=service_request.pk, status=RequestStatus.PENDING
        ).update(status=RequestStatus.OFFERING, updated_at=now)
        if moved:
            service_request.status = RequestStatus.OFFERING
            after_commit(notify_open_queue, "request_updated", service_request)

    logger.info(
        "Mechanic %s %s offer %s on request %s at %s",
        mechanic.id, "sent" if created else "revised", offer.id, service_request.id, price
    )

    action = "offer_received" if created else "offer_revised"
    after_commit(
        notify_driver_event, "offer_updated", service_request,
        f"{offer.mechanic_name} offers {price} Dh",
        _offer_event(offer, action),
    )

    return ServiceResult(
        success=True,
        request=service_request,
        offer=offer,
        message="Offer sent to the driver." if created else "Offer updated.",
        extra={"created": created},
    )


@upstream_guard
@transaction.atomic
def reject_counter_offer(mechanic, offer_id, original_price=None) -> ServiceResult:
    """Mechanic turns down the driver's counter; the offer goes back to the original bid."""
    require_role(mechanic, Role.MECHANIC)
    offer = load_offer(offer_id, for_update=True)
    if offer.mechanic_id != mechanic.id:
        raise PermissionDeniedError("This offer belongs to another mechanic")

    offer = _rollback_counter(offer, original_price)
    logger.info("Mechanic %s rejected counter on offer %s", mechanic.id, offer.id)

    after_commit(
        notify_driver_event, "offer_updated", offer.request,
        f"{offer.mechanic_name} declined your price",
        _offer_event(offer, "counter_rejected"),
    )
    return ServiceResult(success=True, request=offer.request, offer=offer, message="Counter offer rejected.")


@upstream_guard
@transaction.atomic
def mechanic_accepts_counter(mechanic, request_id, offer_id, price) -> ServiceResult:
    """
    Mechanic agrees to the driver's counter price.

    The offer must still be NEGOTIATING at exactly ``price``; if the driver
    changed or withdrew the counter meanwhile the call is a conflict.
    The outcome is the same as the driver accepting the offer.
    """
    require_role(mechanic, Role.MECHANIC)
    price = parse_price(price)

    offer = load_offer(offer_id, for_update=True)
    if str(offer.request_id) != str(request_id):
        raise OfferNotFoundError(f"Offer {offer_id} does not belong to request {request_id}")
    if offer.mechanic_id != mechanic.id:
        raise PermissionDeniedError("This offer belongs to another mechanic")

    _require_actionable(offer)
    if offer.status != OfferStatus.NEGOTIATING or offer.price != price:
        raise OfferNotActionableError("The driver's proposal changed, refresh and try again")

    return _commit_acceptance(offer, expected_status=OfferStatus.NEGOTIATING, expected_price=price)


# ===================== Driver Operations =====================

@upstream_guard
@transaction.atomic
def submit_counter_offer(driver, offer_id, new_price) -> ServiceResult:
    """Driver proposes their own price on a mechanic's offer."""
    require_role(driver, Role.DRIVER)
    new_price = parse_price(new_price)

    offer = load_offer(offer_id, for_update=True)
    require_owner(driver, offer.request)
    _require_actionable(offer)

    fields = {
        "price": new_price,
        "status": OfferStatus.NEGOTIATING,
        "is_counter_offer": True,
        "updated_at": timezone.now(),
    }
    if not _live_offer(offer.pk).update(**fields):
        raise OfferNotActionableError("The offer changed in the meantime, refresh and try again")
    for name, value in fields.items():
        setattr(offer, name, value)

    logger.info("Driver %s countered offer %s at %s", driver.id, offer.id, new_price)

    after_commit(
        notify_mechanic_event, "offer_updated", offer.request, offer.mechanic_id,
        f"The driver proposes {new_price} Dh",
        _offer_event(offer, "counter_offer"),
    )
    return ServiceResult(success=True, request=offer.request, offer=offer, message="Counter offer sent.")


@upstream_guard
@transaction.atomic
def cancel_counter_offer(driver, offer_id, original_price=None) -> ServiceResult:
    """Driver withdraws their counter; the offer goes back to the original bid."""
    require_role(driver, Role.DRIVER)
    offer = load_offer(offer_id, for_update=True)
    require_owner(driver, offer.request)

    offer = _rollback_counter(offer, original_price)
    logger.info("Driver %s cancelled counter on offer %s", driver.id, offer.id)

    after_commit(
        notify_mechanic_event, "offer_updated", offer.request, offer.mechanic_id,
        "The driver withdrew their proposal",
        _offer_event(offer, "counter_cancelled"),
    )
    return ServiceResult(success=True, request=offer.request, offer=offer, message="Counter offer cancelled.")


@upstream_guard
@transaction.atomic
def decline_offer(driver, offer_id) -> ServiceResult:
    """Driver permanently declines an offer. The mechanic cannot revive it."""
    require_role(driver, Role.DRIVER)
    offer = load_offer(offer_id, for_update=True)
    require_owner(driver, offer.request)
    _require_actionable(offer)

    now = timezone.now()
    if not _live_offer(offer.pk).update(status=OfferStatus.REJECTED, responded_at=now, updated_at=now):
        raise OfferNotActionableError("The offer changed in the meantime, refresh and try again")
    offer.status = OfferStatus.REJECTED
    offer.responded_at = now

    logger.info("Driver %s declined offer %s", driver.id, offer.id)

    after_commit(
        notify_mechanic_event, "offer_updated", offer.request, offer.mechanic_id,
        "The driver declined your offer",
        _offer_event(offer, "offer_declined"),
    )
    return ServiceResult(success=True, request=offer.request, offer=offer, message="Offer declined.")


@upstream_guard
@transaction.atomic
def accept_offer(driver, request_id, offer_id) -> ServiceResult:
    """
    Driver accepts a mechanic's offer at its current price.

    Offer and request are written in one transaction. The request write is
    conditional on it still being open with no accepted offer, so only the
    first of two racing acceptances commits.

    Raises:
        RequestNotAvailableError: Another offer won, or the request was cancelled
        OfferNotActionableError: Offer is under negotiation or already closed
    """
    require_role(driver, Role.DRIVER)
    service_request = load_request(request_id, for_update=True)
    require_owner(driver, service_request)

    offer = load_offer(offer_id, for_update=True)
    if offer.request_id != service_request.id:
        raise OfferNotFoundError(f"Offer {offer_id} does not belong to request {request_id}")

    _require_actionable(offer)
    if offer.status == OfferStatus.NEGOTIATING:
        raise OfferNotActionableError("Wait for the mechanic to answer your counter offer")

    return _commit_acceptance(offer, expected_status=OfferStatus.PENDING)


def _commit_acceptance(offer: Offer, expected_status: str, expected_price: Optional[Decimal] = None) -> ServiceResult:
    """
    Assign the offer's mechanic to its request. Must run inside a transaction.

    Both rows are written with compare-and-swap updates; if the offer write
    misses after the request write landed, the exception rolls both back.
    """
    service_request = offer.request
    now = timezone.now()

    claimed = ServiceRequest.objects.filter(
        pk=service_request.pk,
        status__in=OPEN_STATUSES,
        accepted_offer__isnull=True,
    ).update(
        status=RequestStatus.ACCEPTED,
        mechanic_id=offer.mechanic_id,
        accepted_offer_id=offer.pk,
        accepted_at=now,
        updated_at=now,
    )
    if not claimed:
        raise RequestNotAvailableError("This request was already accepted or cancelled")

    offer_filter = {"pk": offer.pk, "status": expected_status}
    if expected_price is not None:
        offer_filter["price"] = expected_price
    if not Offer.objects.filter(**offer_filter).update(
        status=OfferStatus.ACCEPTED, responded_at=now, updated_at=now
    ):
        raise OfferNotActionableError("The offer changed in the meantime, refresh and try again")

    offer.status = OfferStatus.ACCEPTED
    offer.responded_at = now
    service_request.status = RequestStatus.ACCEPTED
    service_request.mechanic_id = offer.mechanic_id
    service_request.accepted_offer = offer
    service_request.accepted_at = now

    logger.info(
        "Request %s accepted: offer %s, mechanic %s, price %s",
        service_request.id, offer.id, offer.mechanic_id, offer.price
    )

    bidder_ids = list(
        service_request.offers.exclude(pk=offer.pk).values_list("mechanic_id", flat=True)
    )
    after_commit(broadcast_request_update, service_request, "A mechanic accepted your request.")
    after_commit(
        notify_mechanic_event, "offer_updated", service_request, offer.mechanic_id,
        "Your offer was accepted, head to the driver.",
        _offer_event(offer, "offer_accepted"),
    )
    after_commit(broadcast_request_closed, service_request, bidder_ids, "Another mechanic got this job.")

    return ServiceResult(
        success=True,
        request=service_request,
        offer=offer,
        message="Offer accepted. Your mechanic is getting ready.",
    )


# ===================== Shared =====================

def _rollback_counter(offer: Offer, original_price=None) -> Offer:
    """Put a NEGOTIATING offer back to its stored original bid."""
    _require_actionable(offer)
    if offer.status != OfferStatus.NEGOTIATING:
        raise OfferNotActionableError("There is no counter offer to withdraw")

    if original_price not in (None, ""):
        if parse_price(original_price, "original price") != offer.original_price:
            raise InvalidInputError("The original price does not match this offer")

    now = timezone.now()
    updated = _live_offer(offer.pk).filter(status=OfferStatus.NEGOTIATING).update(
        price=F("original_price"),
        status=OfferStatus.PENDING,
        is_counter_offer=False,
        updated_at=now,
    )
    if not updated:
        raise OfferNotActionableError("The offer changed in the meantime, refresh and try again")

    offer.price = offer.original_price
    offer.status = OfferStatus.PENDING
    offer.is_counter_offer = False
    offer.updated_at = now
    return offer
