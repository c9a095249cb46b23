from django.core.management.base import BaseCommand

from services.request_lifecycle import reconcile_acceptances


class Command(BaseCommand):
    help = "Repair requests and offers left half-accepted."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be repaired without writing anything.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        report = reconcile_acceptances(dry_run=dry_run)

        offers = report["offers_repaired"]
        requests = report["requests_repaired"]
        prefix = "DRY RUN: would repair" if dry_run else "Repaired"
        style = self.style.WARNING if dry_run else self.style.SUCCESS

        self.stdout.write(
            style(f"{prefix} {len(offers)} offer(s) {offers} and {len(requests)} request(s) {requests}.")
        )
