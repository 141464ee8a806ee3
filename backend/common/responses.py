"""Helpers shared by the API views."""

import logging

from rest_framework.response import Response

from services.ride_management.exceptions import RideServiceError

logger = logging.getLogger(__name__)


def service_error_response(exc: RideServiceError) -> Response:
    """Translate a service-layer error into {"error", "code"} with its HTTP status."""
    if exc.http_status >= 500:
        logger.error("Ride service failure: %s", exc.message)
    return Response({"error": exc.message, "code": exc.code}, status=exc.http_status)
