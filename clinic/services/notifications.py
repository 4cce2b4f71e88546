from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail

from clinic.logging_config import get_logger
from clinic.models import Notification, VideoMeeting
from clinic.services.preferences import get_settings

logger = get_logger(__name__)


def user_group(user_id: int) -> str:
    return f"user.{user_id}"


def push_event(user_id: int, payload: dict) -> None:
    """Send an event to every open socket of one user."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(user_group(user_id), payload)


def serialize_notification(n: Notification) -> dict:
    return {
        'id': n.id,
        'title': n.title,
        'message': n.message,
        'read': n.read,
        'createdAt': n.created_at.isoformat(),
    }


def notify(user, title: str, message: str, *, email_subject: Optional[str] = None) -> Notification:
    """Record an in-app notification, e-mail it if the user opted in, push it."""
    prefs = get_settings(user)
    notification = Notification.objects.create(user=user, title=title, message=message)
    if prefs.notify_email and user.email:
        sent = send_mail(
            email_subject or title,
            message,
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
            fail_silently=True,
        )
        if sent:
            notification.emailed = True
            notification.save(update_fields=['emailed'])
        else:
            logger.warning('notification_email_failed', user_id=user.id, notification_id=notification.id)
    push_event(user.id, {'type': 'notification.created', 'notification': serialize_notification(notification)})
    return notification


def send_meeting_notification(user, meeting: VideoMeeting) -> Notification:
    message = (
        f"Hello {user.display_name},\n\n"
        f"Your video consultation \"{meeting.topic}\" starts at {meeting.start_time} "
        f"({meeting.duration} minutes).\n"
        f"Join link: {meeting.join_url}\n"
        f"Meeting ID: {meeting.meeting_id}\n"
        f"Password: {meeting.password}\n"
    )
    logger.info('meeting_notification', user_id=user.id, meeting_id=meeting.meeting_id)
    return notify(user, 'Video consultation scheduled', message, email_subject=f"Meeting details: {meeting.topic}")
