"""
Core service request lifecycle operations.

This module owns the ServiceRequest state machine: creation, status
transitions, cancellation and the active-request read path polled by both
dashboards. Acceptance lives in services.negotiation.
"""

import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import Role, User
from assistance.models import (
    Offer,
    RequestStatus,
    ServiceRequest,
    OPEN_STATUSES,
)
from common.utils import parse_coordinates
from realtime.notifications import (
    after_commit,
    broadcast_request_closed,
    broadcast_request_update,
    notify_driver_event,
    notify_open_queue,
)
from services.matching import active_job_for_mechanic, active_request_for_driver
from .exceptions import (
    ActiveRequestExistsError,
    InvalidInputError,
    InvalidTransitionError,
    PermissionDeniedError,
    RequestNotAvailableError,
    RequestNotFoundError,
    upstream_guard,
)
from .transitions import can_transition

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    RequestStatus.EN_ROUTE: "Your mechanic is on the way.",
    RequestStatus.ARRIVED: "Your mechanic has arrived.",
    RequestStatus.COMPLETED: "Job completed. Thank you for using Depanni!",
    RequestStatus.CANCELLED: "The assistance request was cancelled.",
}


@dataclass
class ServiceResult:
    """Result object for engine operations."""
    success: bool
    request: Optional[ServiceRequest] = None
    offer: Optional[Offer] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None


# ===================== Shared Guards =====================

def require_role(user, role: str):
    """Reject callers that are anonymous or hold the other role."""
    if user is None or not getattr(user, "is_authenticated", False):
        raise PermissionDeniedError("Authentication required")
    if getattr(user, "role", None) != role:
        raise PermissionDeniedError(f"Only {role.lower()}s can do this")


def require_owner(driver, service_request: ServiceRequest):
    if service_request.driver_id != driver.id:
        raise PermissionDeniedError("This request belongs to another driver")


def load_request(request_id, for_update: bool = False) -> ServiceRequest:
    """Fetch a request or raise RequestNotFoundError. Lock it when asked (inside a transaction)."""
    if request_id in (None, ""):
        raise InvalidInputError("A request id is required")

    queryset = ServiceRequest.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=request_id)
    except (ServiceRequest.DoesNotExist, ValueError, TypeError):
        raise RequestNotFoundError(f"Request {request_id} not found")


# ===================== Driver Operations =====================

@upstream_guard
@transaction.atomic
def create_service_request(driver, problem_description: str, latitude, longitude) -> ServiceResult:
    """
    Open a new assistance request at the breakdown site.

    Args:
        driver: User model instance (driver)
        problem_description: Free text describing the breakdown
        latitude: Breakdown site latitude
        longitude: Breakdown site longitude

    Returns:
        ServiceResult with the created request (status PENDING)

    Raises:
        ActiveRequestExistsError: If the driver already has an active request
        InvalidInputError: If the description or coordinates are missing or invalid
    """
    require_role(driver, Role.DRIVER)

    description = (problem_description or "").strip()
    if not description:
        raise InvalidInputError("A problem description is required")
    try:
        lat, lon = parse_coordinates(latitude, longitude)
    except ValueError as exc:
        raise InvalidInputError(str(exc))

    if ServiceRequest.objects.active().filter(driver=driver).exists():
        raise ActiveRequestExistsError("You already have an active assistance request")

    try:
        with transaction.atomic():
            service_request = ServiceRequest.objects.create(
                driver=driver,
                status=RequestStatus.PENDING,
                problem_description=description,
                latitude=lat,
                longitude=lon,
            )
    except IntegrityError:
        # Lost a race against a concurrent create from the same driver
        raise ActiveRequestExistsError("You already have an active assistance request")

    logger.info("Driver %s opened request %s", driver.id, service_request.id)

    after_commit(notify_open_queue, "request_opened", service_request, "New breakdown nearby")
    after_commit(notify_driver_event, "request_updated", service_request, "Looking for mechanics...")

    return ServiceResult(
        success=True,
        request=service_request,
        message="Request sent to nearby mechanics."
    )


def cancel_service_request(driver, request_id, reason: str = "") -> ServiceResult:
    """Driver withdraws their request. Offers stay in their last state."""
    require_role(driver, Role.DRIVER)
    return transition_status(driver, request_id, RequestStatus.CANCELLED, reason=reason)


# ===================== Status Transitions =====================

@upstream_guard
@transaction.atomic
def transition_status(actor, request_id, new_status: str, reason: str = "") -> ServiceResult:
    """
    Move a request along its state machine.

    The allowed moves come from the transition table: the owning driver may
    cancel, the assigned mechanic drives ACCEPTED -> EN_ROUTE -> ARRIVED ->
    COMPLETED. The write only lands if the status is still the one read.

    Raises:
        RequestNotFoundError: Unknown request
        PermissionDeniedError: Actor is neither the owner nor the assigned mechanic
        InvalidTransitionError: Move not allowed from the current status
        RequestNotAvailableError: Status changed concurrently
    """
    if new_status not in RequestStatus.values:
        raise InvalidInputError(f"Unknown status: {new_status}")

    service_request = load_request(request_id, for_update=True)

    role = getattr(actor, "role", None)
    if role == Role.DRIVER:
        require_owner(actor, service_request)
    elif role == Role.MECHANIC:
        if service_request.mechanic_id != actor.id:
            raise PermissionDeniedError("This job is not assigned to you")
    else:
        raise PermissionDeniedError("Authentication required")

    current = service_request.status
    if service_request.is_terminal:
        raise InvalidTransitionError(f"Request is already {current}")
    if not can_transition(current, new_status, role):
        raise InvalidTransitionError(f"Cannot move request from {current} to {new_status}")

    now = timezone.now()
    fields = {"status": new_status, "updated_at": now}
    if new_status == RequestStatus.COMPLETED:
        fields["completed_at"] = now
    elif new_status == RequestStatus.CANCELLED:
        fields["cancelled_at"] = now
        fields["cancellation_reason"] = reason or "No reason provided"

    updated = ServiceRequest.objects.filter(pk=service_request.pk, status=current).update(**fields)
    if not updated:
        raise RequestNotAvailableError("The request changed in the meantime, refresh and try again")

    for name, value in fields.items():
        setattr(service_request, name, value)

    if new_status == RequestStatus.COMPLETED:
        User.objects.filter(
            pk__in=[service_request.driver_id, service_request.mechanic_id]
        ).update(completed_jobs=F("completed_jobs") + 1)

    logger.info(
        "Request %s: %s -> %s by %s %s",
        service_request.id, current, new_status, role, actor.id
    )

    message = STATUS_MESSAGES.get(new_status, "")
    after_commit(broadcast_request_update, service_request, message)

    if new_status == RequestStatus.CANCELLED and current in OPEN_STATUSES:
        bidder_ids = list(service_request.offers.values_list("mechanic_id", flat=True))
        after_commit(broadcast_request_closed, service_request, bidder_ids, "The driver cancelled this request.")

    return ServiceResult(
        success=True,
        request=service_request,
        message=message or f"Request is now {new_status}",
        extra={"previous_status": current},
    )


# ===================== Read Path =====================

@upstream_guard
def get_active_request(participant) -> Optional[ServiceRequest]:
    """
    The participant's single non-terminal request joined with its offers.

    For a driver this is their open or in-progress request; for a mechanic
    the job currently assigned to them.
    """
    if participant.role == Role.DRIVER:
        return active_request_for_driver(participant)
    if participant.role == Role.MECHANIC:
        return active_job_for_mechanic(participant)
    return None
