"""
Release escrow of delivered transactions whose grace period is over.
Same sweep as the hourly Celery task, for cron or manual runs.
"""

from django.core.management.base import BaseCommand

from payments.escrow_service import EscrowService


class Command(BaseCommand):
    help = "Auto-release held payments of delivered transactions past the grace period"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="List due transactions without releasing them")

    def handle(self, *args, **options):
        if options["dry_run"]:
            due = EscrowService.due_for_release()
            for transaction in due:
                self.stdout.write(f"  - #{transaction.pk} delivered {transaction.delivered_at:%Y-%m-%d %H:%M}")
            self.stdout.write(self.style.WARNING(f"DRY RUN: {due.count()} transaction(s) would be released"))
            return

        result = EscrowService.auto_release_payments()
        message = f"Released {result['released']} payment(s), {result['failed']} failure(s)"
        if result['failed']:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
