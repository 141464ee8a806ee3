from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from notifications.models import Notification
from rides.models import RideOffer, RideRequest, TERMINAL_STATUSES
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up old closed ride offers, terminal rides and read notifications."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete data older than this many days (default: 30).",
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

        old_offers = RideOffer.objects.filter(responded_at__lt=cutoff).exclude(status="pending")
        offers_count = old_offers.count()

        # Completed rides stay reachable through ride_history until they are purged here
        old_rides = RideRequest.objects.filter(
            updated_at__lt=cutoff,
            status__in=TERMINAL_STATUSES,
            history_entries__isnull=True,
        )
        rides_count = old_rides.count()

        old_notifications = Notification.objects.filter(created_at__lt=cutoff, read=True)
        notifications_count = old_notifications.count()

        summary = (
            f"{offers_count} offers, {rides_count} rides and "
            f"{notifications_count} read notifications older than {days} days"
        )

        if dry_run:
            self.stdout.write(self.style.WARNING(f"DRY RUN: Would delete {summary}."))
            return

        old_offers.delete()
        old_rides.delete()
        old_notifications.delete()
        logger.info("Cleaned up %s", summary)
        self.stdout.write(self.style.SUCCESS(f"Deleted {summary}."))
