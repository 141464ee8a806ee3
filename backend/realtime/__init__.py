"""
Realtime app for WebSocket communication.

This app provides:
- WebSocket consumers for drivers, passengers, and ride tracking
- Push helpers for sending events to user, driver and ride groups
- In-process driver location tracking for ride observers
- JWT/Cookie authentication middleware for WebSocket connections

Usage:
    from realtime.consumers import DriverConsumer, PassengerConsumer, RideConsumer
    from realtime.notifications import notify_driver_event, notify_passenger_event
    from realtime.tracking import track_ride_driver
"""
