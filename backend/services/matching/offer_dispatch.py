"""
Offer dispatch and offer bookkeeping.

Every compatible driver is shown a searching ride at once through their
driver_<id> group; the first accept wins. Other offers are then expired and
their drivers told the ride was taken.
"""

import logging
from typing import Iterable

from django.utils import timezone

from realtime.notifications import notify_driver_event
from rides.models import RideRequest, RideOffer, SEARCHING
from .offer_builder import build_offers_for_ride

logger = logging.getLogger(__name__)


def dispatch_offers(ride: RideRequest, offers: Iterable[RideOffer]) -> int:
    """
    Push unsent offers to their drivers.

    Returns:
        Number of offers sent
    """
    sent = 0
    for offer in offers:
        if offer.status != "pending" or offer.sent_at is not None:
            continue

        offer.sent_at = timezone.now()
        offer.save(update_fields=["sent_at"])

        logger.debug("Dispatching offer %s to driver_%s for ride %s", offer.id, offer.driver_id, ride.id)
        notify_driver_event(
            "ride_offer",
            ride,
            offer.driver_id,
            extra={"offer_id": offer.id, "distance_km": offer.distance_km},
        )
        sent += 1
    return sent


def offer_ride_to_drivers(ride: RideRequest) -> int:
    """Build offers for newly compatible drivers and send them."""
    return dispatch_offers(ride, build_offers_for_ride(ride))


def refresh_searching_rides() -> int:
    """
    Re-run matching for every searching ride.

    Called whenever the driver pool changes (availability, location, vehicle
    features).

    Returns:
        Total number of new offers sent
    """
    total = 0
    for ride in RideRequest.objects.filter(status=SEARCHING).order_by("created_at", "id"):
        try:
            total += offer_ride_to_drivers(ride)
        except Exception:
            logger.exception("Failed to refresh offers for ride %s", ride.id)
    if total:
        logger.info("Rematch sent %d new offers", total)
    return total


def expire_other_offers(ride: RideRequest, accepted_driver_id: int) -> int:
    """
    Close the ledger after an accept.

    The winner's offer becomes accepted (created if the driver found the ride
    through the dashboard), all other pending offers expire and their drivers
    receive ride_taken.
    """
    now = timezone.now()
    updated = RideOffer.objects.filter(ride=ride, driver_id=accepted_driver_id).update(
        status="accepted", responded_at=now
    )
    if not updated:
        RideOffer.objects.create(
            ride=ride,
            driver_id=accepted_driver_id,
            order=ride.offers.count(),
            status="accepted",
            responded_at=now,
        )

    losers = list(
        ride.offers.filter(status="pending").exclude(driver_id=accepted_driver_id)
    )
    RideOffer.objects.filter(id__in=[o.id for o in losers]).update(status="expired", responded_at=now)

    for offer in losers:
        if offer.sent_at is not None:
            notify_driver_event(
                "ride_taken",
                ride,
                offer.driver_id,
                "This ride was already accepted by another driver.",
            )
    return len(losers)


def cancel_open_offers(ride: RideRequest) -> int:
    """Expire pending offers of a cancelled ride and tell those drivers."""
    offers = list(ride.offers.filter(status="pending"))
    RideOffer.objects.filter(id__in=[o.id for o in offers]).update(
        status="expired", responded_at=timezone.now()
    )
    for offer in offers:
        if offer.sent_at is not None:
            notify_driver_event("ride_cancelled", ride, offer.driver_id, "Ride request cancelled.")
    return len(offers)


def withdraw_offers_for_driver(driver_id: int) -> int:
    """Expire a driver's pending offers when they go offline."""
    count = RideOffer.objects.filter(driver_id=driver_id, status="pending").update(
        status="expired", responded_at=timezone.now()
    )
    if count:
        logger.info("Withdrew %d pending offers from driver %s", count, driver_id)
    return count
