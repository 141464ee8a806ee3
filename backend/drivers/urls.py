from django.urls import path
from .views import (
    DriverProfileView,
    DriverStatusView,
    DriverLocationUpdateView,
    DriverVehicleView,
    OpenRidesForDriverView,
    DriverCurrentRideView,
    DriverRideHistoryView,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("status/", DriverStatusView.as_view(), name="driver-status"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("vehicle/", DriverVehicleView.as_view(), name="driver-vehicle"),
    path("open-rides/", OpenRidesForDriverView.as_view(), name="driver-open-rides"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="driver-current-ride"),
    path("history/", DriverRideHistoryView.as_view(), name="driver-history"),
]
