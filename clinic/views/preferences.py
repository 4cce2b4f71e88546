from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Notification
from clinic.services.notifications import serialize_notification
from clinic.services.preferences import get_settings, serialize_settings, update_settings


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def user_settings(request):
    if request.method == 'GET':
        return Response({'ok': True, 'settings': serialize_settings(get_settings(request.user))})
    if not isinstance(request.data, dict):
        return Response({'ok': False, 'detail': 'Expected an object'}, status=400)
    try:
        obj = update_settings(request.user, request.data)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'settings': serialize_settings(obj)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notifications(request):
    qs = Notification.objects.filter(user=request.user).order_by('-created_at', '-id')
    unread = qs.filter(read=False).count()
    return Response({'ok': True, 'data': [serialize_notification(n) for n in qs[:100]], 'unread': unread})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_read(request, notification_id: int):
    updated = Notification.objects.filter(id=notification_id, user=request.user).update(read=True)
    if not updated:
        return Response({'ok': False, 'detail': 'Notification not found'}, status=404)
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notifications_read_all(request):
    updated = Notification.objects.filter(user=request.user, read=False).update(read=True)
    return Response({'ok': True, 'updated': updated})
