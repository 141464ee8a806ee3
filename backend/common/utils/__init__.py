"""Common utility functions."""

from .geo import calculate_distance, distance_km
from .fare import estimate_fare
from .subscriptions import Subscription, SubscriptionRegistry

__all__ = [
    "calculate_distance",
    "distance_km",
    "estimate_fare",
    "Subscription",
    "SubscriptionRegistry",
]
