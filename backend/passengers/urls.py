# passengers/urls.py

from django.urls import path

from .views.info import (
    PassengerProfileView,
    PassengerRideHistoryView,
)

app_name = "passengers"

urlpatterns = [
    path("profile/", PassengerProfileView.as_view(), name="profile"),
    path("history/", PassengerRideHistoryView.as_view(), name="ride-history"),
]
