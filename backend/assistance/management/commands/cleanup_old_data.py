from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from assistance.models import Offer, ServiceRequest, TERMINAL_STATUSES
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up completed/cancelled service requests and their offers."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete requests older than this many days (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        # Active requests are never touched, whatever their age
        old_requests = ServiceRequest.objects.filter(
            created_at__lt=cutoff,
            status__in=TERMINAL_STATUSES,
        )
        requests_count = old_requests.count()
        offers_count = Offer.objects.filter(request__in=old_requests).count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {requests_count} requests and {offers_count} offers older than {days} days."
                )
            )
            return

        # Offers go with their request (cascade)
        old_requests.delete()
        logger.info("Cleaned up %s old requests and %s offers", requests_count, offers_count)
        self.stdout.write(
            self.style.SUCCESS(
                f"Deleted {requests_count} old requests and {offers_count} offers older than {days} days."
            )
        )
