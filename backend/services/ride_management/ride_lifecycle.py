"""
Core ride lifecycle operations.

Every status change goes through the transition table and is written with a
conditional update keyed on the expected current status. Side effects
(notifications, chat system lines, WebSocket pushes, history) run after the
write and never undo it.
"""

import logging
from typing import Optional, Dict, Any, Iterable, Union
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from common.types import AccessibilityRequirement, Location
from common.utils import distance_km, estimate_fare
from drivers.models import DriverProfile
from rides.models import (
    RideRequest, RideOffer,
    SEARCHING, ASSIGNED, ARRIVING, IN_PROGRESS, COMPLETED, CANCELLED,
    ACTIVE_DRIVER_STATUSES, OPEN_STATUSES,
)
from .events import notify_status_change, push_status_change
from .exceptions import (
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
)
from .history import record_ride_history
from .messaging import post_system_message
from .store import RideStore, get_ride_store
from .transitions import STATUS_TIMESTAMP_FIELDS, DRIVER_ONLY_TARGETS, validate_transition

logger = logging.getLogger(__name__)

# Status strings accepted by the status-update interface
EXTERNAL_STATUS_MAP = {
    "accepted": ASSIGNED,
    "arriving": ARRIVING,
    "in_progress": IN_PROGRESS,
    "completed": COMPLETED,
    "cancelled": CANCELLED,
}


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[RideRequest] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


def _require_user(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise UnauthenticatedError()


def _get_ride(store: RideStore, ride_id) -> RideRequest:
    ride = store.get(ride_id)
    if ride is None:
        raise RideNotFoundError()
    return ride


def _driver_is_busy(driver_id, exclude_ride_id=None) -> bool:
    qs = RideRequest.objects.filter(driver_id=driver_id, status__in=ACTIVE_DRIVER_STATUSES)
    if exclude_ride_id is not None:
        qs = qs.exclude(id=exclude_ride_id)
    return qs.exists()


def _after_transition(ride: RideRequest, actor_id: Optional[int]) -> None:
    """Fire the post-write side effects of a status change."""
    try:
        notify_status_change(ride, actor_id)
        post_system_message(ride)
        push_status_change(ride)
    except Exception:
        logger.exception("Side effects failed for ride %s -> %s", ride.id, ride.status)


def _schedule_rematch():
    from rides.tasks import schedule_rematch
    schedule_rematch()


def _transition(store: RideStore, ride: RideRequest, new_status: str, actor, **fields) -> RideRequest:
    """
    Move ride to new_status if the table allows it and nobody changed it first.

    Raises:
        InvalidTransitionError: Illegal edge, or the ride moved concurrently
    """
    validate_transition(ride.status, new_status)

    timestamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
    if timestamp_field:
        fields[timestamp_field] = timezone.now()

    if not store.update(ride.id, status=new_status, expected_status=ride.status, **fields):
        current = store.get(ride.id)
        raise InvalidTransitionError(
            f"Ride is now {current.status if current else 'gone'}, cannot move to {new_status}"
        )

    updated = _get_ride(store, ride.id)
    logger.info("Ride %s: %s -> %s (actor %s)", ride.id, ride.status, new_status, getattr(actor, "id", None))
    _after_transition(updated, getattr(actor, "id", None))
    return updated


# ===================== Passenger Operations =====================

def check_active_ride(user) -> Optional[RideRequest]:
    """Check if user has a ride that has not finished yet."""
    return RideRequest.objects.filter(
        passenger=user,
        status__in=OPEN_STATUSES,
    ).first()


@transaction.atomic
def create_ride_request(
    passenger,
    pickup: Location,
    dropoff: Location,
    accessibility: Union[AccessibilityRequirement, Iterable[str], None] = None,
    scheduled_time=None,
    store: RideStore = None,
    authorizer=None,
) -> RideResult:
    """
    Create a new ride request in searching and offer it to compatible drivers.

    Distance and fare are computed here, once, and stored on the ride.

    Args:
        passenger: User model instance (passenger)
        pickup: Pickup location
        dropoff: Dropoff location
        accessibility: A requirement, or the raw list of option strings
        scheduled_time: Optional future pickup time
        store: Ride store (defaults to the shared one)
        authorizer: Payment authorizer (defaults to PAYMENT_AUTHORIZER)

    Returns:
        RideResult with the created ride

    Raises:
        InvalidArgumentError: Bad coordinates or unknown accessibility option
        ActiveRideExistsError: If passenger already has an active ride
        PaymentDeclinedError: If the payment authorizer says no
    """
    _require_user(passenger)
    store = store or get_ride_store()

    if pickup is None or dropoff is None or not pickup.is_valid() or not dropoff.is_valid():
        raise InvalidArgumentError("Pickup and dropoff must be valid coordinates")

    if isinstance(accessibility, AccessibilityRequirement):
        requirement = accessibility
    else:
        try:
            requirement = AccessibilityRequirement.from_options(accessibility)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc

    if check_active_ride(passenger):
        raise ActiveRideExistsError()

    # Stored coordinates keep six decimals; distance and fare use the same values.
    pickup = Location(round(pickup.latitude, 6), round(pickup.longitude, 6), pickup.address)
    dropoff = Location(round(dropoff.latitude, 6), round(dropoff.longitude, 6), dropoff.address)
    distance = distance_km(pickup, dropoff)
    fare = estimate_fare(distance)

    if authorizer is None:
        from services.payments import get_payment_authorizer
        authorizer = get_payment_authorizer()
    authorization = authorizer.authorize(passenger, fare)
    if not authorization.approved:
        raise PaymentDeclinedError(authorization.message or PaymentDeclinedError.default_message)

    ride_id = store.create(
        passenger=passenger,
        pickup_latitude=pickup.latitude,
        pickup_longitude=pickup.longitude,
        pickup_address=pickup.address,
        dropoff_latitude=dropoff.latitude,
        dropoff_longitude=dropoff.longitude,
        dropoff_address=dropoff.address,
        wheelchair=requirement.wheelchair,
        entry_side=requirement.entry_side.value,
        assistance=requirement.assistance,
        distance_km=distance,
        fare=fare,
        status=SEARCHING,
        scheduled_time=scheduled_time,
    )
    ride = _get_ride(store, ride_id)
    logger.info("Ride %s created for passenger %s (%.3f km, fare %.2f)", ride.id, passenger.id, distance, fare)

    from services.matching import offer_ride_to_drivers
    try:
        candidates = offer_ride_to_drivers(ride)
    except Exception:
        logger.exception("Failed to dispatch offers for ride %s", ride.id)
        candidates = 0

    if candidates:
        message = "Notifying compatible drivers..."
    else:
        message = "No compatible drivers available yet. We will keep searching."

    return RideResult(
        success=True,
        ride=ride,
        message=message,
        extra={"driver_candidates": candidates, "payment_reference": authorization.reference},
    )


def get_current_passenger_ride(passenger) -> Optional[RideRequest]:
    """Get passenger's current non-terminal ride."""
    return RideRequest.objects.filter(
        passenger=passenger,
        status__in=OPEN_STATUSES,
    ).select_related('driver__driver_profile').first()


@transaction.atomic
def cancel_ride(user, ride_id, reason: str = "", store: RideStore = None) -> RideResult:
    """
    Cancel a ride. Allowed for the passenger or the assigned driver from any
    non-terminal state; fare and driver stay on the record.

    Raises:
        PermissionDeniedError: If user is not on the ride
        InvalidTransitionError: If the ride already finished
    """
    _require_user(user)
    store = store or get_ride_store()
    ride = _get_ride(store, ride_id)

    if not ride.is_participant(user.id):
        raise PermissionDeniedError()

    cancelled_by = "driver" if user.id == ride.driver_id else "passenger"
    had_driver = ride.driver_id is not None
    ride = _transition(
        store, ride, CANCELLED, user,
        cancelled_by=cancelled_by,
        cancellation_reason=reason or None,
    )

    from services.matching import cancel_open_offers
    try:
        cancel_open_offers(ride)
    except Exception:
        logger.exception("Failed to close offers for cancelled ride %s", ride.id)

    if had_driver:
        _schedule_rematch()

    return RideResult(
        success=True,
        ride=ride,
        message="Ride cancelled successfully",
        extra={"was_assigned": had_driver, "cancelled_by": cancelled_by},
    )


# ===================== Driver Operations =====================

@transaction.atomic
def accept_ride(driver, ride_id, store: RideStore = None) -> RideResult:
    """
    Accept a searching ride. Exactly one driver can win.

    Raises:
        DriverNotAvailableError: Driver is offline or already on a ride
        RideNoLongerAvailableError: Ride is no longer searching
        PermissionDeniedError: Vehicle lacks a required accessibility feature
    """
    _require_user(driver)
    store = store or get_ride_store()

    try:
        driver_profile = driver.driver_profile
    except DriverProfile.DoesNotExist:
        raise DriverNotFoundError()

    if not driver_profile.available:
        raise DriverNotAvailableError("Please set your status to available before accepting rides")

    ride = _get_ride(store, ride_id)
    if ride.status != SEARCHING:
        raise RideNoLongerAvailableError()

    from services.matching.matcher import is_compatible
    if not is_compatible(ride.requirement, driver_profile.feature_set):
        raise PermissionDeniedError("Your vehicle does not meet this ride's accessibility needs")

    if _driver_is_busy(driver.id):
        raise DriverNotAvailableError("Finish your current ride before accepting another")

    try:
        with transaction.atomic():
            won = store.update(
                ride.id,
                status=ASSIGNED,
                driver=driver,
                expected_status=SEARCHING,
                assigned_at=timezone.now(),
            )
    except IntegrityError:
        raise DriverNotAvailableError("Finish your current ride before accepting another")

    if not won:
        logger.info("Driver %s lost the accept race for ride %s", driver.id, ride.id)
        raise RideNoLongerAvailableError()

    ride = _get_ride(store, ride.id)
    logger.info("Ride %s assigned to driver %s", ride.id, driver.id)

    from services.matching import expire_other_offers
    try:
        expire_other_offers(ride, driver.id)
    except Exception:
        logger.exception("Failed to expire other offers for ride %s", ride.id)

    _after_transition(ride, driver.id)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride Accepted Successfully! Navigate to pickup location."
    )


@transaction.atomic
def reject_ride_offer(driver, ride_id) -> RideResult:
    """
    Decline an offer. The ride keeps searching for other drivers.
    """
    _require_user(driver)

    ride = RideRequest.objects.filter(id=ride_id).first()
    if ride is None:
        raise RideNotFoundError()
    if ride.status != SEARCHING:
        raise RideNoLongerAvailableError("This ride was already handled or cancelled")

    now = timezone.now()
    updated = RideOffer.objects.filter(ride=ride, driver=driver, status="pending").update(
        status="rejected", responded_at=now
    )
    if not updated:
        # Declined from the dashboard without an offer; record it so the ride stays hidden
        RideOffer.objects.get_or_create(
            ride=ride,
            driver=driver,
            defaults={"order": ride.offers.count(), "status": "rejected", "responded_at": now},
        )

    logger.info("Driver %s declined ride %s", driver.id, ride.id)
    return RideResult(success=True, ride=ride, message="Offer declined.")


def _driver_transition(driver, ride_id, new_status: str, store: RideStore = None) -> RideRequest:
    _require_user(driver)
    store = store or get_ride_store()
    ride = _get_ride(store, ride_id)
    if ride.driver_id != driver.id:
        raise PermissionDeniedError("Only the assigned driver can update this ride")
    return _transition(store, ride, new_status, driver)


@transaction.atomic
def mark_arriving(driver, ride_id, store: RideStore = None) -> RideResult:
    ride = _driver_transition(driver, ride_id, ARRIVING, store)
    return RideResult(success=True, ride=ride, message="Passenger notified that you are arriving")


@transaction.atomic
def start_ride(driver, ride_id, store: RideStore = None) -> RideResult:
    ride = _driver_transition(driver, ride_id, IN_PROGRESS, store)
    return RideResult(success=True, ride=ride, message="Ride started")


@transaction.atomic
def complete_ride(driver, ride_id, store: RideStore = None) -> RideResult:
    """
    Complete a ride - called by driver when passenger reaches destination.

    History is written straight away; if that fails it is queued for the
    background worker instead.
    """
    ride = _driver_transition(driver, ride_id, COMPLETED, store)

    try:
        record_ride_history(ride)
    except Exception:
        logger.exception("Failed to record history for ride %s, queueing retry", ride.id)
        from rides.tasks import schedule_history
        schedule_history(ride.id)

    _schedule_rematch()

    return RideResult(
        success=True,
        ride=ride,
        message="Ride completed successfully"
    )


def get_current_driver_ride(driver) -> Optional[RideRequest]:
    """Get driver's current active ride."""
    return RideRequest.objects.filter(
        driver=driver,
        status__in=ACTIVE_DRIVER_STATUSES,
    ).select_related('passenger').first()


# ===================== Status Update Interface =====================

def update_ride_status(user, ride_id, new_status: str, reason: str = "", store: RideStore = None) -> RideResult:
    """
    Apply an externally requested status change.

    new_status is one of accepted, arriving, in_progress, completed or
    cancelled.

    Raises:
        UnauthenticatedError: No caller identity
        InvalidArgumentError: Unknown status string
        PermissionDeniedError: Caller is not a participant, or accepts without being a driver
    """
    _require_user(user)

    target = EXTERNAL_STATUS_MAP.get((new_status or "").strip().lower())
    if target is None:
        raise InvalidArgumentError(f"Invalid status: {new_status}")

    if target == ASSIGNED:
        if getattr(user, "role", None) != "driver":
            raise PermissionDeniedError("Only drivers can accept rides")
        return accept_ride(user, ride_id, store=store)
    if target == CANCELLED:
        return cancel_ride(user, ride_id, reason=reason, store=store)

    ride = _get_ride(store or get_ride_store(), ride_id)
    if not ride.is_participant(user.id):
        raise PermissionDeniedError()
    if target in DRIVER_ONLY_TARGETS and ride.driver_id != user.id:
        raise PermissionDeniedError("Only the assigned driver can update this ride")

    handler = {
        ARRIVING: mark_arriving,
        IN_PROGRESS: start_ride,
        COMPLETED: complete_ride,
    }[target]
    return handler(user, ride_id, store=store)
