"""Fare estimation."""

from math import isnan

from django.conf import settings

DEFAULT_FARE_CONFIG = {
    "BASE_FARE": 5.0,
    "PER_KM_RATE": 2.0,
    "PER_MINUTE_RATE": 0.5,
    "AVG_SPEED_KMH": 30.0,
}


def get_fare_config() -> dict:
    return {**DEFAULT_FARE_CONFIG, **getattr(settings, "RIDE_FARE", {})}


def estimate_fare(distance_km: float, avg_speed_kmh: float = None) -> float:
    """
    Estimate a ride fare from its distance.

    fare = base + distance * per_km + estimated_minutes * per_minute, where
    estimated_minutes comes from the distance at the average speed.

    Pure and deterministic: the result is stored on the ride once at creation
    and never recomputed.

    Args:
        distance_km: Trip distance in kilometres (negative or NaN counts as 0)
        avg_speed_kmh: Average speed used for the time estimate

    Returns:
        Fare in currency units
    """
    config = get_fare_config()
    speed = float(avg_speed_kmh or config["AVG_SPEED_KMH"])

    distance = float(distance_km)
    if isnan(distance) or distance < 0:
        distance = 0.0

    estimated_time_hours = distance / speed
    estimated_time_minutes = estimated_time_hours * 60
    return (
        config["BASE_FARE"]
        + distance * config["PER_KM_RATE"]
        + estimated_time_minutes * config["PER_MINUTE_RATE"]
    )
