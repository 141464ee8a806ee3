"""
Driver availability, location and vehicle settings.

Every change to the driver pool queues a rematch so searching rides are
offered to drivers who just became compatible.
"""

import logging
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from common.types import Location
from common.utils.geo import calculate_distance
from drivers.features import normalize_features
from drivers.models import DriverProfile
from realtime.notifications import send_ride_group_payload
from realtime.tracking import get_location_hub
from rides.models import RideRequest, ACTIVE_DRIVER_STATUSES
from rides.tasks import schedule_rematch

logger = logging.getLogger(__name__)

VEHICLE_FIELDS = ("vehicle_make", "vehicle_model", "vehicle_color", "vehicle_number")


def get_active_ride(profile: DriverProfile) -> Optional[RideRequest]:
    return RideRequest.objects.filter(
        driver_id=profile.user_id, status__in=ACTIVE_DRIVER_STATUSES
    ).first()


# DRIVER STATUS UPDATE
def update_driver_status(profile: DriverProfile, new_status: str) -> DriverProfile:
    """
    Toggle availability. Going offline withdraws pending offers; going
    available makes the driver eligible for searching rides right away.
    """
    previous = profile.status
    profile.status = new_status
    profile.save(update_fields=["status"])

    if previous == new_status:
        return profile

    logger.info("Driver %s is now %s", profile.user_id, new_status)
    if new_status == "offline":
        from services.matching import withdraw_offers_for_driver
        withdraw_offers_for_driver(profile.user_id)
    else:
        schedule_rematch()

    return profile


def _should_accept_location(profile: DriverProfile, lat: float, lon: float, now) -> bool:
    if profile.current_latitude is None or profile.current_longitude is None:
        return True

    min_interval = getattr(settings, "DRIVER_LOCATION_MIN_INTERVAL_SECONDS", 5)
    min_distance = getattr(settings, "DRIVER_LOCATION_MIN_DISTANCE_METERS", 10)

    elapsed = (now - profile.last_location_update).total_seconds() if profile.last_location_update else None
    if elapsed is None or elapsed >= min_interval:
        return True

    moved = calculate_distance(
        float(profile.current_latitude), float(profile.current_longitude), lat, lon
    )
    return moved >= min_distance


def update_driver_location(profile: DriverProfile, lat, lon, force: bool = False) -> bool:
    """
    Store a position pushed by the driver's client.

    Updates arriving too soon and too close to the previous one are dropped,
    as are updates from offline drivers with no ride in progress.

    Returns:
        True if the position was accepted
    """
    lat, lon = float(lat), float(lon)
    active_ride = get_active_ride(profile)

    if not profile.available and active_ride is None:
        logger.debug("Ignoring location from offline driver %s", profile.user_id)
        return False

    now = timezone.now()
    if not force and not _should_accept_location(profile, lat, lon, now):
        return False

    profile.current_latitude = round(lat, 6)
    profile.current_longitude = round(lon, 6)
    profile.last_location_update = now
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])

    location = Location(lat, lon)
    get_location_hub().publish(profile.user_id, location)

    if active_ride is not None:
        send_ride_group_payload(active_ride.id, {
            "type": "driver_track_location",
            "ride_id": active_ride.id,
            "driver_id": profile.user_id,
            "latitude": lat,
            "longitude": lon,
            "timestamp": now.isoformat(),
        })
    else:
        schedule_rematch()

    return True


def update_vehicle(profile: DriverProfile, accessibility_features: Iterable[str] = None, **vehicle) -> DriverProfile:
    """Edit vehicle details; feature labels are normalised to matcher tokens."""
    update_fields = []
    for field in VEHICLE_FIELDS:
        if field in vehicle and vehicle[field] is not None:
            setattr(profile, field, vehicle[field])
            update_fields.append(field)

    if accessibility_features is not None:
        profile.accessibility_features = normalize_features(accessibility_features)
        update_fields.append("accessibility_features")

    if update_fields:
        profile.save(update_fields=update_fields)
        logger.info("Driver %s updated vehicle: %s", profile.user_id, ", ".join(update_fields))
        if "accessibility_features" in update_fields and profile.available:
            schedule_rematch()

    return profile


def find_open_rides(profile: DriverProfile):
    """Searching rides this driver can serve, nearest first (dashboard)."""
    if not profile.available:
        return []
    from services.matching import find_open_rides_for_driver
    return find_open_rides_for_driver(profile)
