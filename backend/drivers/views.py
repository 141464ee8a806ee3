from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.models import DriverProfile
from drivers.serializers import (
    DriverProfileSerializer,
    DriverStatusSerializer,
    LocationUpdateSerializer,
    VehicleUpdateSerializer,
)
from passengers.permissions import IsDriver
from rides.serializers import RideRequestSerializer, RideHistoryEntrySerializer
from services.ride_management import get_current_driver_ride
from services.ride_management.history import get_ride_history

from drivers import services


# Utility: resolve the driver profile of request.user
def require_profile(user):
    try:
        return True, user.driver_profile
    except DriverProfile.DoesNotExist:
        return False, Response({"error": "Driver profile not found", "code": "not-found"}, status=404)


class DriverView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]


class DriverProfileView(DriverView):
    def get(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile  # Response object

        return Response(DriverProfileSerializer(profile).data)


class DriverStatusView(DriverView):
    def get(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        return Response({
            "status": profile.status,
            "busy": services.get_active_ride(profile) is not None,
        })

    def put(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        services.update_driver_status(profile, new_status)

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status
        })


class DriverLocationUpdateView(DriverView):
    """HTTP fallback for the driver socket's location_update message."""

    def get(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
            "status": profile.status,
        })

    def post(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        accepted = services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated" if accepted else "Location update skipped",
            "accepted": accepted,
            "latitude": float(lat),
            "longitude": float(lon),
            "status": profile.status
        })


class DriverVehicleView(DriverView):
    """Driver settings: vehicle details and accessibility features."""

    def get(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        return Response({
            "vehicle_number": profile.vehicle_number,
            "vehicle_make": profile.vehicle_make,
            "vehicle_model": profile.vehicle_model,
            "vehicle_color": profile.vehicle_color,
            "accessibility_features": profile.accessibility_features,
        })

    def put(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        serializer = VehicleUpdateSerializer(data=request.data, context={"profile": profile})
        serializer.is_valid(raise_exception=True)

        services.update_vehicle(profile, **serializer.validated_data)
        return Response(DriverProfileSerializer(profile).data)


class OpenRidesForDriverView(DriverView):
    """Searching rides the driver's vehicle can serve, nearest pickup first."""

    def get(self, request):
        ok, profile = require_profile(request.user)
        if ok is False:
            return profile

        if not profile.available:
            return Response({
                "rides": [],
                "count": 0,
                "message": "Set status to 'available' to receive ride requests."
            })

        rides = []
        for ride, distance in services.find_open_rides(profile):
            data = RideRequestSerializer(ride).data
            data["pickup_distance_km"] = distance
            rides.append(data)

        return Response({"rides": rides, "count": len(rides)})


class DriverCurrentRideView(DriverView):
    def get(self, request):
        ride = get_current_driver_ride(request.user)
        if not ride:
            return Response({"message": "No active ride"}, status=404)

        return Response(RideRequestSerializer(ride).data)


class DriverRideHistoryView(DriverView):
    def get(self, request):
        entries = get_ride_history(request.user, role="driver")
        serializer = RideHistoryEntrySerializer(entries, many=True)

        return Response({"count": len(serializer.data), "rides": serializer.data})
