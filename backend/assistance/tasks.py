"""Celery tasks for assistance background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def reconcile_acceptances_task(dry_run: bool = False):
    """
    Periodic repair of half-applied acceptances.

    Scheduled by celery beat every RECONCILE_INTERVAL_SECONDS.
    """
    from services.request_lifecycle import reconcile_acceptances

    report = reconcile_acceptances(dry_run=dry_run)
    if report["offers_repaired"] or report["requests_repaired"]:
        logger.warning(
            "Reconciled offers %s and requests %s",
            report["offers_repaired"], report["requests_repaired"]
        )
    return report
