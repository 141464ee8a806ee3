"""
Trip history.

A completed ride is copied once per participant into RideHistoryEntry. The
copy is keyed on (user, ride), so replaying a completion is harmless.
"""

import logging
from typing import Dict, Any

from django.db import transaction
from django.db.models import F

from accounts.models import User
from rides.models import RideRequest, RideHistoryEntry, COMPLETED

logger = logging.getLogger(__name__)


def _driver_snapshot(ride: RideRequest) -> Dict[str, Any]:
    if ride.driver is None:
        return {}

    snapshot = {"id": ride.driver_id, "name": ride.driver.display_name}
    profile = getattr(ride.driver, "driver_profile", None)
    if profile is not None:
        snapshot.update({
            "photo_url": profile.photo_url,
            "rating": profile.rating,
            "vehicle_make": profile.vehicle_make,
            "vehicle_model": profile.vehicle_model,
            "vehicle_color": profile.vehicle_color,
            "vehicle_number": profile.vehicle_number,
        })
    return snapshot


def record_ride_history(ride: RideRequest) -> int:
    """
    Write history entries for a completed ride.

    Each newly written entry also bumps the participant's completed_rides
    counter, so counters stay correct when this runs more than once.

    Returns:
        Number of entries created by this call
    """
    if ride.status != COMPLETED:
        logger.debug("Ride %s is %s, no history recorded", ride.id, ride.status)
        return 0

    defaults = {
        "pickup_latitude": ride.pickup_latitude,
        "pickup_longitude": ride.pickup_longitude,
        "pickup_address": ride.pickup_address,
        "dropoff_latitude": ride.dropoff_latitude,
        "dropoff_longitude": ride.dropoff_longitude,
        "dropoff_address": ride.dropoff_address,
        "fare": ride.fare,
        "distance_km": ride.distance_km,
        "driver_snapshot": _driver_snapshot(ride),
        "ride_created_at": ride.created_at,
        "completed_at": ride.completed_at or ride.updated_at,
    }

    created_count = 0
    participants = [(ride.passenger_id, "passenger"), (ride.driver_id, "driver")]
    with transaction.atomic():
        for user_id, role in participants:
            if not user_id:
                continue
            _, created = RideHistoryEntry.objects.get_or_create(
                user_id=user_id,
                ride=ride,
                defaults={"role": role, **defaults},
            )
            if created:
                User.objects.filter(id=user_id).update(completed_rides=F("completed_rides") + 1)
                created_count += 1

    logger.info("Recorded %d history entries for ride %s", created_count, ride.id)
    return created_count


def get_ride_history(user, role: str = None):
    qs = RideHistoryEntry.objects.filter(user=user)
    if role:
        qs = qs.filter(role=role)
    return qs
