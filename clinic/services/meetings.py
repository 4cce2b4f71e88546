"""
Mock video meetings.

No conferencing provider is called: a meeting is a random numeric id, a
short base-36 password and the join/host URLs built from them, persisted
as a :class:`VideoMeeting` so it can be looked up again by id.
"""
from __future__ import annotations

import secrets
import string
from typing import Optional
from urllib.parse import urlparse, parse_qs

from django.conf import settings
from django.db import IntegrityError, transaction

from clinic.logging_config import get_logger
from clinic.models import Appointment, VideoMeeting

logger = get_logger(__name__)

_PASSWORD_ALPHABET = string.digits + string.ascii_lowercase
_MAX_ID_ATTEMPTS = 5


def _random_meeting_id() -> str:
    return str(secrets.randbelow(1_000_000_000))


def _random_password(length: int = 6) -> str:
    return ''.join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def build_join_url(meeting_id: str, password: str) -> str:
    return f"{settings.ZOOM_BASE_URL}/j/{meeting_id}?pwd={password}"


def create_meeting(topic: str, start_time: str, duration: Optional[int] = None, doctor_name: str = '', *,
                   host=None, appointment: Optional[Appointment] = None) -> VideoMeeting:
    """Issue and persist a mock meeting.

    A colliding meeting id is retried a few times before giving up.  Any
    other integrity error (an appointment that already has a meeting)
    propagates to the caller.
    """
    duration = settings.ZOOM_DEFAULT_DURATION if duration is None else duration
    for _ in range(_MAX_ID_ATTEMPTS):
        meeting_id = _random_meeting_id()
        if VideoMeeting.objects.filter(meeting_id=meeting_id).exists():
            continue
        password = _random_password()
        join_url = build_join_url(meeting_id, password)
        try:
            with transaction.atomic():
                meeting = VideoMeeting.objects.create(
                    meeting_id=meeting_id,
                    password=password,
                    join_url=join_url,
                    host_url=f"{join_url}&host=true",
                    topic=topic,
                    start_time=start_time,
                    duration=duration,
                    host=host,
                    appointment=appointment,
                )
        except IntegrityError:
            if VideoMeeting.objects.filter(meeting_id=meeting_id).exists():
                continue
            raise
        logger.info('meeting_created', meeting_id=meeting_id, topic=topic, doctor=doctor_name, duration=duration)
        return meeting
    raise RuntimeError('Could not allocate a unique meeting id')


def appointment_duration(appointment: Appointment) -> int:
    start = appointment.start_time.hour * 60 + appointment.start_time.minute
    end = appointment.end_time.hour * 60 + appointment.end_time.minute
    return end - start


def attach_meeting(appointment: Appointment, meeting: VideoMeeting) -> None:
    appointment.zoom_link = meeting.join_url
    appointment.zoom_meeting_id = meeting.meeting_id
    appointment.zoom_password = meeting.password
    appointment.save(update_fields=['zoom_link', 'zoom_meeting_id', 'zoom_password', 'updated_at'])


def schedule_for_appointment(appointment: Appointment, doctor_name: str) -> VideoMeeting:
    """Create the meeting for an appointment and copy its details onto it.

    The appointment row is locked while the meeting is issued; a caller
    that loses the race gets the meeting the winner created.
    """
    topic = f"Medical Consultation: {doctor_name}"
    start_time = f"{appointment.date.isoformat()}T{appointment.start_time:%H:%M}:00"
    with transaction.atomic():
        Appointment.objects.select_for_update().get(pk=appointment.pk)
        meeting = VideoMeeting.objects.filter(appointment_id=appointment.pk).first()
        if meeting is None:
            meeting = create_meeting(
                topic, start_time, appointment_duration(appointment), doctor_name,
                host=appointment.doctor, appointment=appointment,
            )
        attach_meeting(appointment, meeting)
    return meeting


def parse_meeting_url(url: Optional[str]) -> Optional[dict]:
    """Extract ``meetingId`` and ``password`` from a join URL.

    Returns ``None`` for empty input or anything that is not an absolute URL.
    """
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    meeting_id = parsed.path.rstrip('/').split('/')[-1] if parsed.path else ''
    password = parse_qs(parsed.query).get('pwd', [''])[0]
    return {'meetingId': meeting_id, 'password': password}


def serialize_meeting(meeting: VideoMeeting) -> dict:
    return {
        'meetingId': meeting.meeting_id,
        'password': meeting.password,
        'joinUrl': meeting.join_url,
        'hostUrl': meeting.host_url,
        'link': meeting.join_url,
        'topic': meeting.topic,
        'startTime': meeting.start_time,
        'duration': meeting.duration,
        'appointmentId': meeting.appointment_id,
    }


def can_view_meeting(user, meeting: VideoMeeting) -> bool:
    if getattr(user, 'user_type', '') == 'admin':
        return True
    if meeting.host_id == user.id:
        return True
    appt = meeting.appointment
    return bool(appt and user.id in (appt.patient_id, appt.doctor_id))
