"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Creating ride requests
    - Accepting/rejecting rides
    - Advancing rides through arriving, in_progress and completed
    - Cancelling rides
    - Querying ride status
"""

from .ride_lifecycle import (
    RideResult,
    EXTERNAL_STATUS_MAP,
    create_ride_request,
    accept_ride,
    reject_ride_offer,
    mark_arriving,
    start_ride,
    complete_ride,
    cancel_ride,
    update_ride_status,
    get_current_passenger_ride,
    get_current_driver_ride,
)
from .store import RideStore, get_ride_store
from .transitions import TRANSITIONS, validate_transition

from .exceptions import (
    RideServiceError,
    UnauthenticatedError,
    InvalidArgumentError,
    PermissionDeniedError,
    RideNotFoundError,
    DriverNotFoundError,
    RideNoLongerAvailableError,
    InvalidTransitionError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    PaymentDeclinedError,
    InternalError,
)

__all__ = [
    # Lifecycle operations
    "RideResult",
    "EXTERNAL_STATUS_MAP",
    "create_ride_request",
    "accept_ride",
    "reject_ride_offer",
    "mark_arriving",
    "start_ride",
    "complete_ride",
    "cancel_ride",
    "update_ride_status",
    "get_current_passenger_ride",
    "get_current_driver_ride",
    # Store
    "RideStore",
    "get_ride_store",
    "TRANSITIONS",
    "validate_transition",
    # Exceptions
    "RideServiceError",
    "UnauthenticatedError",
    "InvalidArgumentError",
    "PermissionDeniedError",
    "RideNotFoundError",
    "DriverNotFoundError",
    "RideNoLongerAvailableError",
    "InvalidTransitionError",
    "DriverNotAvailableError",
    "ActiveRideExistsError",
    "PaymentDeclinedError",
    "InternalError",
]
