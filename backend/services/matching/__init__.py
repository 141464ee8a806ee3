"""
Driver matching and offer dispatch service.

This module handles:
    - Filtering drivers by accessibility features and availability
    - Building driver offers for searching rides
    - Dispatching, expiring and withdrawing offers
"""

from .matcher import (
    is_compatible,
    find_compatible_drivers,
    find_open_rides_for_driver,
    get_busy_driver_ids,
)
from .offer_builder import build_offers_for_ride
from .offer_dispatch import (
    dispatch_offers,
    offer_ride_to_drivers,
    refresh_searching_rides,
    expire_other_offers,
    cancel_open_offers,
    withdraw_offers_for_driver,
)

__all__ = [
    "is_compatible",
    "find_compatible_drivers",
    "find_open_rides_for_driver",
    "get_busy_driver_ids",
    "build_offers_for_ride",
    "dispatch_offers",
    "offer_ride_to_drivers",
    "refresh_searching_rides",
    "expire_other_offers",
    "cancel_open_offers",
    "withdraw_offers_for_driver",
]
