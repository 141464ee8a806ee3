"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.passenger_consumer import PassengerConsumer
from .consumers.ride_consumer import RideConsumer

websocket_urlpatterns = [
    # Driver: location pushes, availability, ride offers
    re_path(r"ws/driver/$", DriverConsumer.as_asgi(), name="driver-ws"),

    # Passenger: ride status events and notifications
    re_path(r"ws/passenger/$", PassengerConsumer.as_asgi(), name="passenger-ws"),

    # Ride tracking + chat (both roles)
    re_path(r"ws/ride/$", RideConsumer.as_asgi(), name="ride-ws"),
]
