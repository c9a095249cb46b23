"""
Repair half-applied acceptances.

Acceptance writes the offer and the request together, but rows written by
older clients or edited by hand can still disagree. This pass brings each
pair back in line and reports what it touched.
"""

import logging
from typing import Dict, List

from django.db import transaction
from django.utils import timezone

from assistance.models import (
    Offer,
    OfferStatus,
    RequestStatus,
    ServiceRequest,
    ASSIGNED_STATUSES,
    OPEN_STATUSES,
)
from .exceptions import upstream_guard

logger = logging.getLogger(__name__)


@upstream_guard
def reconcile_acceptances(dry_run: bool = False) -> Dict[str, List[int]]:
    """
    Find and fix torn acceptances.

    - A request that points at an accepted offer which is not ACCEPTED gets
      the offer marked ACCEPTED and its mechanic filled in.
    - An ACCEPTED offer whose request is still open without an accepted
      offer completes the request side.
    - An assigned request with an ACCEPTED offer but no mechanic gets the
      offer's mechanic.

    Args:
        dry_run: Only report, do not write

    Returns:
        {"offers_repaired": [offer ids], "requests_repaired": [request ids]}
    """
    report = {"offers_repaired": [], "requests_repaired": []}

    dangling = (
        ServiceRequest.objects.filter(
            status__in=ASSIGNED_STATUSES,
            accepted_offer__isnull=False,
        )
        .exclude(accepted_offer__status=OfferStatus.ACCEPTED)
        .select_related("accepted_offer")
    )
    for service_request in dangling:
        offer = service_request.accepted_offer
        logger.warning(
            "Request %s is %s but offer %s is %s",
            service_request.id, service_request.status, offer.id, offer.status
        )
        report["offers_repaired"].append(offer.id)
        if not dry_run:
            _repair_offer_side(service_request, offer)

    orphaned = Offer.objects.filter(
        status=OfferStatus.ACCEPTED,
        request__status__in=OPEN_STATUSES,
        request__accepted_offer__isnull=True,
    ).select_related("request")
    for offer in orphaned:
        logger.warning(
            "Offer %s is ACCEPTED but request %s is still %s",
            offer.id, offer.request_id, offer.request.status
        )
        report["requests_repaired"].append(offer.request_id)
        if not dry_run:
            _repair_request_side(offer)

    unassigned = ServiceRequest.objects.filter(
        status__in=ASSIGNED_STATUSES,
        accepted_offer__status=OfferStatus.ACCEPTED,
        mechanic__isnull=True,
    ).select_related("accepted_offer")
    for service_request in unassigned:
        logger.warning(
            "Request %s is %s without a mechanic, offer %s is ACCEPTED",
            service_request.id, service_request.status, service_request.accepted_offer_id
        )
        report["requests_repaired"].append(service_request.id)
        if not dry_run:
            ServiceRequest.objects.filter(pk=service_request.pk, mechanic__isnull=True).update(
                mechanic_id=service_request.accepted_offer.mechanic_id,
                updated_at=timezone.now(),
            )

    if report["offers_repaired"] or report["requests_repaired"]:
        logger.info(
            "Reconcile%s: %d offers, %d requests",
            " (dry run)" if dry_run else "",
            len(report["offers_repaired"]),
            len(report["requests_repaired"]),
        )
    return report


@transaction.atomic
def _repair_offer_side(service_request: ServiceRequest, offer: Offer):
    now = timezone.now()
    # Another accepted sibling would break the one-accepted-offer constraint
    Offer.objects.filter(
        request_id=service_request.id, status=OfferStatus.ACCEPTED
    ).exclude(pk=offer.pk).update(status=OfferStatus.REJECTED, updated_at=now)

    Offer.objects.filter(pk=offer.pk).update(
        status=OfferStatus.ACCEPTED,
        responded_at=offer.responded_at or now,
        updated_at=now,
    )
    if service_request.mechanic_id != offer.mechanic_id:
        ServiceRequest.objects.filter(pk=service_request.pk).update(
            mechanic_id=offer.mechanic_id, updated_at=now
        )


@transaction.atomic
def _repair_request_side(offer: Offer):
    now = timezone.now()
    ServiceRequest.objects.filter(
        pk=offer.request_id,
        status__in=OPEN_STATUSES,
        accepted_offer__isnull=True,
    ).update(
        status=RequestStatus.ACCEPTED,
        mechanic_id=offer.mechanic_id,
        accepted_offer_id=offer.pk,
        accepted_at=offer.responded_at or now,
        updated_at=now,
    )
