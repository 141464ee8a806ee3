"""
Ride record store.

Thin layer over the RideRequest table that adds conditional updates, retried
reads and push subscriptions. Every mutation made through the store is
published to in-process subscribers and to the ride_<id> channel group.
"""

import logging
import time
from typing import Any, Callable, List, Optional

from django.conf import settings
from django.db import OperationalError
from django.utils import timezone

from common.utils import Subscription, SubscriptionRegistry
from realtime.notifications import notify_ride_group
from rides.models import RideRequest, RideHistoryEntry
from .exceptions import InternalError

logger = logging.getLogger(__name__)


class RideStore:
    def __init__(self, registry: SubscriptionRegistry = None, read_retries: int = None, backoff: float = None):
        self.registry = registry or SubscriptionRegistry()
        self.read_retries = read_retries or getattr(settings, "RIDE_STORE_READ_RETRIES", 3)
        self.backoff = backoff if backoff is not None else getattr(settings, "RIDE_STORE_RETRY_BACKOFF_SECONDS", 0.2)

    # ---------------------- Reads ----------------------

    def _read(self, fn: Callable[[], Any]) -> Any:
        """Run a read, retrying transient database errors with exponential backoff."""
        for attempt in range(1, self.read_retries + 1):
            try:
                return fn()
            except OperationalError as exc:
                if attempt == self.read_retries:
                    logger.error("Ride store read failed after %d attempts", attempt)
                    raise InternalError("Ride store unavailable") from exc
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning("Ride store read failed (attempt %d), retrying in %.2fs", attempt, delay)
                time.sleep(delay)

    def get(self, ride_id) -> Optional[RideRequest]:
        def fetch():
            return (
                RideRequest.objects.select_related("passenger", "driver")
                .filter(id=ride_id)
                .first()
            )
        return self._read(fetch)

    def query_by_status(self, status: str) -> List[RideRequest]:
        return self._read(lambda: list(
            RideRequest.objects.filter(status=status).order_by("created_at", "id")
        ))

    def query_by_user(self, user) -> List[RideHistoryEntry]:
        """Completed-ride history of one user, newest first."""
        return self._read(lambda: list(RideHistoryEntry.objects.filter(user=user)))

    # ---------------------- Writes ----------------------

    def create(self, **fields) -> int:
        ride = RideRequest.objects.create(**fields)
        self.publish(ride)
        return ride.id

    def update(self, ride_id, status: str = None, driver=None, expected_status: str = None, **fields) -> bool:
        """
        Conditionally update one ride.

        The write only happens when the ride is still in expected_status
        (if given); the whole check is one UPDATE statement.

        Returns:
            True if a row was written
        """
        values = dict(fields)
        if status is not None:
            values["status"] = status
        if driver is not None:
            values["driver"] = driver
        if not values:
            return False
        values["updated_at"] = timezone.now()

        qs = RideRequest.objects.filter(id=ride_id)
        if expected_status is not None:
            qs = qs.filter(status=expected_status)
        if not qs.update(**values):
            return False

        ride = self.get(ride_id)
        if ride is not None:
            self.publish(ride, previous_status=expected_status)
        return True

    # ---------------------- Subscriptions ----------------------

    def subscribe(self, ride_id, callback: Callable[[Optional[RideRequest]], None]) -> Subscription:
        """
        Watch one ride. The callback fires now with the current state and
        again after every mutation published through this store.
        """
        subscription = self.registry.add(("ride", int(ride_id)), callback)
        callback(self.get(ride_id))
        return subscription

    def subscribe_status(self, status: str, callback: Callable[[List[RideRequest]], None]) -> Subscription:
        """Watch the live list of rides in one status."""
        subscription = self.registry.add(("status", status), callback)
        callback(self.query_by_status(status))
        return subscription

    def publish(self, ride: RideRequest, previous_status: str = None) -> None:
        self.registry.publish(("ride", ride.id), ride)

        for status in {ride.status, previous_status}:
            if status and self.registry.count(("status", status)):
                self.registry.publish(("status", status), self.query_by_status(status))

        notify_ride_group(ride, "ride_status_changed")


_default_store: Optional[RideStore] = None


def get_ride_store() -> RideStore:
    global _default_store
    if _default_store is None:
        _default_store = RideStore()
    return _default_store
