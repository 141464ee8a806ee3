"""
Build driver offers for searching rides.

Offers record which compatible drivers were shown a ride (closest first).
Rebuilding is incremental: a driver is never offered the same ride twice.
"""

import logging
from typing import List

from django.db.models import Max

from rides.models import RideRequest, RideOffer, SEARCHING
from .matcher import find_drivers_for_ride

logger = logging.getLogger(__name__)


def build_offers_for_ride(ride: RideRequest) -> List[RideOffer]:
    """
    Create RideOffer rows for compatible drivers not yet offered this ride.

    Args:
        ride: RideRequest instance to build offers for

    Returns:
        The newly created offers, closest driver first
    """
    if ride.status != SEARCHING:
        return []

    already_offered = set(ride.offers.values_list("driver_id", flat=True))
    next_order = ride.offers.aggregate(top=Max("order"))["top"]
    next_order = 0 if next_order is None else next_order + 1

    offers: List[RideOffer] = []
    for profile, distance in find_drivers_for_ride(ride):
        if profile.user_id in already_offered:
            continue
        offer = RideOffer.objects.create(
            ride=ride,
            driver_id=profile.user_id,
            order=next_order,
            distance_km=distance,
            status="pending",
        )
        next_order += 1
        offers.append(offer)

    logger.info("Built %d new offers for ride %s", len(offers), ride.id)
    return offers
