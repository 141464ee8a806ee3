from django.core.management.base import BaseCommand
from services.matching import refresh_searching_rides


class Command(BaseCommand):
    help = "Offer every searching ride to compatible drivers that have not seen it yet."

    def handle(self, *args, **options):
        sent = refresh_searching_rides()

        self.stdout.write(
            self.style.SUCCESS(f"Sent {sent} new ride offer(s).")
        )
