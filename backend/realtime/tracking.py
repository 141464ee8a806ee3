"""
In-process driver location tracking.

LocationHub fans accepted driver positions out to local subscribers.
RideDriverTracker chains a ride subscription to its driver's location feed:
it follows whoever is assigned to the ride and tears itself down once the
ride reaches a terminal status.
"""

import logging
from threading import RLock
from typing import Callable, Dict, Optional

from common.types import Location
from common.utils import Subscription, SubscriptionRegistry
from rides.models import ACTIVE_DRIVER_STATUSES

logger = logging.getLogger(__name__)


class LocationHub:
    def __init__(self):
        self.registry = SubscriptionRegistry()
        self._last: Dict[int, Location] = {}
        self._lock = RLock()

    def subscribe(self, driver_id: int, callback: Callable[[Location], None]) -> Subscription:
        """Listen to one driver. Replays the last known position, if any."""
        subscription = self.registry.add(driver_id, callback)
        last = self.last(driver_id)
        if last is not None:
            callback(last)
        return subscription

    def publish(self, driver_id: int, location: Location) -> int:
        with self._lock:
            self._last[driver_id] = location
        return self.registry.publish(driver_id, location)

    def last(self, driver_id: int) -> Optional[Location]:
        with self._lock:
            return self._last.get(driver_id)


_hub: Optional[LocationHub] = None


def get_location_hub() -> LocationHub:
    global _hub
    if _hub is None:
        _hub = LocationHub()
    return _hub


class RideDriverTracker:
    """Delivers the assigned driver's positions for one ride."""

    def __init__(self, ride_id: int, on_location: Callable[[Location], None], store=None, hub: LocationHub = None):
        if store is None:
            from services.ride_management.store import get_ride_store
            store = get_ride_store()
        self.ride_id = ride_id
        self.on_location = on_location
        self.store = store
        self.hub = hub or get_location_hub()
        self.driver_id: Optional[int] = None
        self._ride_subscription: Optional[Subscription] = None
        self._location_subscription: Optional[Subscription] = None
        self._stopped = False

    @property
    def active(self) -> bool:
        return not self._stopped

    def start(self) -> "RideDriverTracker":
        subscription = self.store.subscribe(self.ride_id, self._on_ride)
        if self._stopped:
            # Ride was already terminal on the initial callback
            subscription.cancel()
        else:
            self._ride_subscription = subscription
        return self

    def _on_ride(self, ride) -> None:
        if self._stopped:
            return
        if ride is None or ride.is_terminal:
            logger.debug("Ride %s closed, stopping driver tracking", self.ride_id)
            self.stop()
            return

        driver_id = ride.driver_id if ride.status in ACTIVE_DRIVER_STATUSES else None
        if driver_id == self.driver_id:
            return

        self._drop_location_subscription()
        self.driver_id = driver_id
        if driver_id is not None:
            self._location_subscription = self.hub.subscribe(driver_id, self.on_location)

    def _drop_location_subscription(self) -> None:
        if self._location_subscription is not None:
            self._location_subscription.cancel()
            self._location_subscription = None

    def stop(self) -> None:
        self._stopped = True
        self._drop_location_subscription()
        if self._ride_subscription is not None:
            self._ride_subscription.cancel()
            self._ride_subscription = None


def track_ride_driver(ride_id: int, on_location: Callable[[Location], None], store=None, hub: LocationHub = None) -> RideDriverTracker:
    """Start following the driver of ride_id. Call stop() on the result to end early."""
    return RideDriverTracker(ride_id, on_location, store=store, hub=hub).start()
