import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny

from common.responses import service_error_response
from passengers.permissions import IsPassenger, IsDriver
from services import ride_management
from services.ride_management import RideServiceError, get_ride_store
from services.ride_management.messaging import post_message, list_messages
from .models import SEARCHING, ASSIGNED, ARRIVING, IN_PROGRESS
from .serializers import (
    RideRequestSerializer,
    RideRequestCreateSerializer,
    RideStatusUpdateSerializer,
    RideCancelSerializer,
    RideMessageSerializer,
    RideMessageCreateSerializer,
)

logger = logging.getLogger(__name__)

CURRENT_RIDE_MESSAGES = {
    SEARCHING: 'Searching for accessible drivers...',
    ASSIGNED: 'Driver is on the way!',
    ARRIVING: 'Your driver is almost here.',
    IN_PROGRESS: 'Enjoy your trip!',
}


# ==================== Passenger Ride APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPassenger])
def create_ride_request(request):
    """Book a ride: {pickup_location, dropoff_location, accessibility_options, scheduled_time?}"""
    serializer = RideRequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        result = ride_management.create_ride_request(
            request.user,
            pickup=data['pickup'],
            dropoff=data['dropoff'],
            accessibility=data.get('accessibility_options'),
            scheduled_time=data.get('scheduled_time'),
        )
    except RideServiceError as exc:
        return service_error_response(exc)

    ride = result.ride
    return Response({
        'ride_id': ride.id,
        'status': ride.status,
        'fare': ride.fare,
        'distance_km': ride.distance_km,
        'message': result.message,
        'driver_candidates': result.extra['driver_candidates'],
        'ride': RideRequestSerializer(ride).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPassenger])
def get_current_ride(request):
    """Get passenger's current non-terminal ride (polling fallback for the socket)."""
    ride = ride_management.get_current_passenger_ride(request.user)
    if not ride:
        return Response({
            'has_active_ride': False,
            'message': 'No active ride found'
        })

    return Response({
        'has_active_ride': True,
        'ride': RideRequestSerializer(ride).data,
        'status': ride.status,
        'driver_assigned': ride.driver_id is not None,
        'message': CURRENT_RIDE_MESSAGES.get(ride.status, ''),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_ride(request, ride_id):
    """Cancel a ride as the passenger or the assigned driver."""
    serializer = RideCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.cancel_ride(
            request.user, ride_id, reason=serializer.validated_data.get('reason', '')
        )
    except RideServiceError as exc:
        return service_error_response(exc)

    return Response({
        'success': True,
        'message': result.message,
        'ride_id': result.ride.id,
        'was_assigned': result.extra['was_assigned'],
        'cancelled_at': result.ride.cancelled_at,
    })


# ==================== Driver Ride Actions ====================

def _driver_action(request, ride_id, action):
    try:
        result = action(request.user, ride_id)
    except RideServiceError as exc:
        return service_error_response(exc)
    return Response({
        'success': True,
        'message': result.message,
        'ride': RideRequestSerializer(result.ride).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_ride(request, ride_id):
    """Accept a searching ride. The first driver wins, everyone else gets 409."""
    return _driver_action(request, ride_id, ride_management.accept_ride)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def reject_ride_offer(request, ride_id):
    return _driver_action(request, ride_id, ride_management.reject_ride_offer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def mark_arriving(request, ride_id):
    return _driver_action(request, ride_id, ride_management.mark_arriving)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def start_ride(request, ride_id):
    return _driver_action(request, ride_id, ride_management.start_ride)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def complete_ride(request, ride_id):
    return _driver_action(request, ride_id, ride_management.complete_ride)


# ==================== Shared Ride APIs ====================

@api_view(['POST'])
@permission_classes([AllowAny])
def update_ride_status(request):
    """
    Generic status update: {ride_id, new_status}.

    new_status is one of accepted, arriving, in_progress, completed, cancelled.
    Identity is checked by the service layer so anonymous callers get the
    "unauthenticated" error code.
    """
    serializer = RideStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'ride_id and new_status are required', 'code': 'invalid-argument',
             'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    data = serializer.validated_data
    try:
        result = ride_management.update_ride_status(
            request.user, data['ride_id'], data['new_status'], reason=data.get('reason', '')
        )
    except RideServiceError as exc:
        return service_error_response(exc)

    return Response({'success': True, 'ride_id': result.ride.id, 'status': result.ride.status})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_detail(request, ride_id):
    ride = get_ride_store().get(ride_id)
    if ride is None:
        return Response({'error': 'Ride not found', 'code': 'not-found'}, status=status.HTTP_404_NOT_FOUND)
    if not ride.is_participant(request.user.id):
        return Response(
            {'error': 'Not authorized to view this ride', 'code': 'permission-denied'},
            status=status.HTTP_403_FORBIDDEN
        )
    return Response(RideRequestSerializer(ride).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ride_messages(request, ride_id):
    """GET the ride chat, POST {content} to add a message."""
    try:
        if request.method == 'GET':
            messages = list_messages(ride_id, request.user)
            return Response({
                'count': len(messages),
                'messages': RideMessageSerializer(messages, many=True).data,
            })

        serializer = RideMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = post_message(ride_id, request.user, serializer.validated_data['content'])
    except RideServiceError as exc:
        return service_error_response(exc)

    return Response(RideMessageSerializer(message).data, status=status.HTTP_201_CREATED)
