"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
All distances are kilometres unless the function name says otherwise.
"""

from math import radians, cos, sin, asin, sqrt, isnan

from common.types import Location

EARTH_RADIUS_KM = 6371.0


def distance_km(a, b) -> float:
    """
    Great-circle distance between two locations using the Haversine formula.

    Args:
        a: Object with latitude/longitude attributes (e.g. common.types.Location)
        b: Object with latitude/longitude attributes

    Returns:
        Distance in kilometres, or 0.0 if any coordinate is NaN
    """
    lat1, lon1, lat2, lon2 = (float(a.latitude), float(a.longitude),
                              float(b.latitude), float(b.longitude))
    if any(isnan(v) for v in (lat1, lon1, lat2, lon2)):
        return 0.0

    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(h)))
    return EARTH_RADIUS_KM * c


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    return distance_km(Location(float(lat1), float(lon1)), Location(float(lat2), float(lon2))) * 1000
