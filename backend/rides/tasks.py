"""Celery tasks for ride-related background processing."""

from celery import shared_task
from django.db import OperationalError
import logging

logger = logging.getLogger(__name__)


@shared_task(autoretry_for=(OperationalError,), retry_backoff=True, max_retries=3)
def rematch_searching_rides_task():
    """
    Offer every searching ride to drivers that became compatible.

    Queued whenever the driver pool changes: a driver goes available, moves,
    edits their vehicle features or finishes a ride.
    """
    from services.matching import refresh_searching_rides

    sent = refresh_searching_rides()
    logger.info("Rematch task sent %d new offers", sent)
    return sent


@shared_task(autoretry_for=(OperationalError,), retry_backoff=True, max_retries=5)
def record_ride_history_task(ride_id: int):
    """
    Write trip history for a completed ride.

    Safe to deliver more than once: entries are unique per (user, ride).
    """
    from rides.models import RideRequest
    from services.ride_management.history import record_ride_history

    ride = RideRequest.objects.select_related("passenger", "driver").filter(id=ride_id).first()
    if ride is None:
        logger.warning("Ride %s not found for history task", ride_id)
        return 0
    return record_ride_history(ride)


def schedule_rematch() -> bool:
    """Queue a rematch; a broker outage is logged, never raised."""
    try:
        rematch_searching_rides_task.delay()
        return True
    except Exception:
        logger.exception("Failed to queue rematch task")
        return False


def schedule_history(ride_id: int) -> bool:
    try:
        record_ride_history_task.delay(ride_id)
        return True
    except Exception:
        logger.exception("Failed to queue history task for ride %s", ride_id)
        return False
