# passengers/services/info_services.py

from rides.serializers import RideHistoryEntrySerializer
from services.ride_management.history import get_ride_history


def get_passenger_profile(user):
    """Return serialized passenger profile data."""
    from ..serializers import PassengerProfileSerializer
    return PassengerProfileSerializer(user).data


def update_passenger_profile(user, data):
    """Update passenger profile with partial data."""
    from ..serializers import PassengerProfileSerializer
    ser = PassengerProfileSerializer(user, data=data, partial=True)
    ser.is_valid(raise_exception=True)
    ser.save()
    return ser.data


def get_passenger_ride_history(user, limit=20):
    """Return the passenger's completed trips, newest first."""
    entries = get_ride_history(user, role="passenger")[:limit]
    return RideHistoryEntrySerializer(entries, many=True).data
