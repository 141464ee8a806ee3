"""Custom exceptions for ride management.

Every error carries a wire ``code`` (used by the status-update interface)
and the HTTP status the API layer answers with.
"""


class RideServiceError(Exception):
    """Base class for errors surfaced to the caller."""
    code = "internal"
    http_status = 500
    default_message = "Unexpected ride service failure"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class UnauthenticatedError(RideServiceError):
    """Raised when the caller has no identity."""
    code = "unauthenticated"
    http_status = 401
    default_message = "User must be authenticated"


class InvalidArgumentError(RideServiceError):
    """Raised on malformed pickup/dropoff/status input."""
    code = "invalid-argument"
    http_status = 400
    default_message = "Invalid argument"


class PermissionDeniedError(RideServiceError):
    """Raised when the actor is not a party to the ride."""
    code = "permission-denied"
    http_status = 403
    default_message = "Not authorized to update this ride"


class RideNotFoundError(RideServiceError):
    """Raised when a ride cannot be found."""
    code = "not-found"
    http_status = 404
    default_message = "Ride not found"


class DriverNotFoundError(RideServiceError):
    """Raised when a driver profile cannot be found."""
    code = "not-found"
    http_status = 404
    default_message = "Driver profile not found"


class RideNoLongerAvailableError(RideServiceError):
    """Raised when a driver loses the accept race."""
    code = "ride-no-longer-available"
    http_status = 409
    default_message = "This ride was already accepted by another driver."


class InvalidTransitionError(RideServiceError):
    """Raised when a status change is not legal from the current state."""
    code = "invalid-transition"
    http_status = 409
    default_message = "Invalid status transition"


class DriverNotAvailableError(RideServiceError):
    """Raised when driver is offline or already busy with another ride."""
    code = "driver-not-available"
    http_status = 409
    default_message = "Driver is not available to accept rides"


class ActiveRideExistsError(InvalidArgumentError):
    """Raised when user already has an active ride."""
    default_message = "You already have an active ride request"


class PaymentDeclinedError(RideServiceError):
    """Raised when the payment authorizer declines a booking."""
    code = "payment-declined"
    http_status = 402
    default_message = "Payment was declined"


class InternalError(RideServiceError):
    """Raised on unexpected store failures."""
