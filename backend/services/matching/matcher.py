"""
Accessibility-aware driver matching.

A driver is compatible with a ride when their vehicle lists every feature the
passenger positively asked for. Only available drivers that are not already
holding an active ride are ever returned.
"""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from common.types import AccessibilityRequirement, Location
from common.utils import distance_km
from drivers.models import DriverProfile
from rides.models import RideRequest, RideOffer, SEARCHING, ACTIVE_DRIVER_STATUSES

logger = logging.getLogger(__name__)


def is_compatible(requirement: AccessibilityRequirement, features: Iterable[str]) -> bool:
    """Return True if the feature set covers every requested feature."""
    return requirement.required_features().issubset(set(features or ()))


def get_busy_driver_ids() -> Set[int]:
    """User ids of drivers currently holding an assigned/arriving/in_progress ride."""
    return set(
        RideRequest.objects.filter(
            status__in=ACTIVE_DRIVER_STATUSES,
            driver__isnull=False,
        ).values_list("driver_id", flat=True)
    )


def _sort_key(item: Tuple[DriverProfile, Optional[float]]):
    profile, distance = item
    # Unlocated drivers go after located ones
    return (distance is None, distance if distance is not None else 0.0, profile.user_id)


def rank_compatible_drivers(
    requirement: AccessibilityRequirement,
    pool: Iterable[DriverProfile],
    pickup: Optional[Location] = None,
    busy_driver_ids: Iterable[int] = (),
) -> List[Tuple[DriverProfile, Optional[float]]]:
    """
    Filter the pool and order it nearest-first.

    Returns:
        (profile, distance_km) pairs; distance is None when either the driver
        location or the pickup is unknown
    """
    busy = set(busy_driver_ids or ())
    ranked = []
    for profile in pool:
        if not profile.available or profile.user_id in busy:
            continue
        if not is_compatible(requirement, profile.feature_set):
            continue

        distance = None
        driver_location = profile.location
        if pickup is not None and driver_location is not None:
            distance = distance_km(pickup, driver_location)
        ranked.append((profile, distance))

    ranked.sort(key=_sort_key)
    return ranked


def find_compatible_drivers(
    requirement: AccessibilityRequirement,
    pool: Iterable[DriverProfile],
    pickup: Optional[Location] = None,
    busy_driver_ids: Iterable[int] = (),
) -> List[DriverProfile]:
    """
    Return the drivers from pool that can serve requirement, nearest first.

    Args:
        requirement: What the passenger asked for
        pool: Candidate driver profiles
        pickup: Pickup location used for the distance tie-break
        busy_driver_ids: User ids of drivers already on a ride

    Returns:
        Matching profiles; an empty list is a normal outcome, not an error
    """
    return [profile for profile, _ in rank_compatible_drivers(requirement, pool, pickup, busy_driver_ids)]


def find_drivers_for_ride(ride: RideRequest) -> List[Tuple[DriverProfile, Optional[float]]]:
    """Rank every available driver in the database against one ride."""
    pool = DriverProfile.objects.select_related("user").filter(status="available")
    return rank_compatible_drivers(
        ride.requirement,
        pool,
        pickup=ride.pickup,
        busy_driver_ids=get_busy_driver_ids(),
    )


def find_open_rides_for_driver(profile: DriverProfile) -> List[Tuple[RideRequest, Optional[float]]]:
    """
    Searching rides this driver's vehicle can serve, nearest pickup first.

    Rides the driver already rejected are left out, and a busy driver sees
    nothing until the current ride ends.
    """
    if profile.user_id in get_busy_driver_ids():
        return []

    rejected_ids = RideOffer.objects.filter(
        driver_id=profile.user_id, status="rejected"
    ).values_list("ride_id", flat=True)

    rides = (
        RideRequest.objects.filter(status=SEARCHING)
        .exclude(id__in=list(rejected_ids))
        .select_related("passenger")
    )

    features = profile.feature_set
    driver_location = profile.location
    results = []
    for ride in rides:
        if not is_compatible(ride.requirement, features):
            continue
        distance = distance_km(ride.pickup, driver_location) if driver_location is not None else None
        results.append((ride, distance))

    results.sort(key=lambda item: (item[1] is None, item[1] or 0.0, item[0].id))
    return results
