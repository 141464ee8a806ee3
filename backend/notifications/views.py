from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from . import services
from .models import Notification
from .serializers import NotificationSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    """Inbox of the current user, newest first. ?unread=true for unread only."""
    unread_only = request.query_params.get('unread', '').lower() in ('1', 'true', 'yes')
    notifications = services.list_notifications(request.user, unread_only=unread_only)

    return Response({
        'count': notifications.count(),
        'unread_count': services.list_notifications(request.user, unread_only=True).count(),
        'notifications': NotificationSerializer(notifications[:100], many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, notification_id):
    try:
        notification = services.mark_read(request.user, notification_id)
    except Notification.DoesNotExist:
        return Response(
            {'error': 'Notification not found', 'code': 'not-found'},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_notifications_read(request):
    updated = services.mark_all_read(request.user)
    return Response({'success': True, 'updated': updated})
