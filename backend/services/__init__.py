"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - ride_management: Ride store, transition table and lifecycle operations
    - matching: Accessibility matching and offer dispatch
    - payments: Booking payment authorisation
"""
