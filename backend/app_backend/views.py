import logging

import redis
from celery import current_app
from django.conf import settings
from django.db import connection
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from channels.layers import get_channel_layer

from rides.tasks import rematch_searching_rides_task, record_ride_history_task

logger = logging.getLogger(__name__)


def _check_database():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")


def _check_redis():
    client = redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3)
    client.ping()


def _check_channels():
    if get_channel_layer() is None:
        raise RuntimeError("no channel layer")


def _check_celery():
    registered = current_app.tasks
    missing = [
        task.name for task in (rematch_searching_rides_task, record_ride_history_task)
        if task.name not in registered
    ]
    if missing:
        raise RuntimeError(f"tasks not registered: {', '.join(missing)}")


CHECKS = {
    "database": _check_database,
    "redis": _check_redis,
    "channels": _check_channels,
    "celery": _check_celery,
}


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    health_status = {
        "status": "healthy",
        "timestamp": timezone.now().isoformat(),
        "services": {}
    }

    for name, check in CHECKS.items():
        try:
            check()
            health_status["services"][name] = "healthy"
        except Exception as e:
            logger.warning("Health check %s failed: %s", name, e)
            health_status["services"][name] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )

    return Response(health_status, status=status_code)
