"""
Appointment booking and lifecycle.

Booking checks a requested interval against the doctor's declared weekly
slots and against live (non-cancelled) appointments.  The database
carries a conditional unique constraint on ``(doctor, date, start_time)``
so two concurrent bookings of the same slot cannot both succeed.

Status lifecycle::

    pending   -> confirmed (doctor/admin) | cancelled (any party)
    confirmed -> completed (doctor/admin) | cancelled (any party)
    completed, cancelled: terminal
"""
from __future__ import annotations

import datetime
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from clinic.exceptions import BookingError, TransitionError
from clinic.logging_config import get_logger
from clinic.models import Appointment, DoctorProfile, VideoMeeting, WEEKDAYS
from clinic.services.meetings import parse_meeting_url, schedule_for_appointment
from clinic.services.notifications import notify, push_event, send_meeting_notification

logger = get_logger(__name__)

PENDING, CONFIRMED, COMPLETED, CANCELLED = (
    Appointment.STATUS_PENDING,
    Appointment.STATUS_CONFIRMED,
    Appointment.STATUS_COMPLETED,
    Appointment.STATUS_CANCELLED,
)

# (from, to) -> roles allowed; 'party' means the patient or the doctor of the appointment
TRANSITIONS = {
    (PENDING, CONFIRMED): {'doctor', 'admin'},
    (PENDING, CANCELLED): {'party', 'admin'},
    (CONFIRMED, COMPLETED): {'doctor', 'admin'},
    (CONFIRMED, CANCELLED): {'party', 'admin'},
}


def weekday_name(date: datetime.date) -> str:
    return WEEKDAYS[date.weekday()]


def _booked_starts(doctor_user_id: int, date: datetime.date) -> set[datetime.time]:
    return set(
        Appointment.objects.filter(doctor_id=doctor_user_id, date=date)
        .exclude(status=CANCELLED)
        .values_list('start_time', flat=True)
    )


def slots_for_date(profile: DoctorProfile, date: datetime.date) -> list[dict]:
    """Declared slots for the weekday of ``date`` with their booked flag."""
    booked = _booked_starts(profile.user_id, date)
    slots = profile.available_slots.filter(day=weekday_name(date)).order_by('start_time')
    return [{
        'id': s.id,
        'day': s.day,
        'date': date.isoformat(),
        'startTime': s.start_time.strftime('%H:%M'),
        'endTime': s.end_time.strftime('%H:%M'),
        'isBooked': s.start_time in booked,
    } for s in slots]


def book_appointment(patient, profile: DoctorProfile, *, date: datetime.date, start_time: datetime.time,
                     end_time: datetime.time, type: str, reason: str, notes: str = '') -> Appointment:
    if date < timezone.localdate():
        raise BookingError('Appointments cannot be booked in the past')
    if not profile.is_verified or not profile.user.is_active:
        raise BookingError('This doctor is not accepting appointments')
    if not profile.available_slots.filter(
        day=weekday_name(date), start_time=start_time, end_time=end_time
    ).exists():
        raise BookingError('The doctor is not available at the selected time')

    try:
        with transaction.atomic():
            # concurrent bookings for one doctor queue here before the slot check
            DoctorProfile.objects.select_for_update().get(pk=profile.pk)
            if start_time in _booked_starts(profile.user_id, date):
                raise BookingError('This time slot is already booked')
            appt = Appointment.objects.create(
                patient=patient,
                doctor=profile.user,
                date=date,
                start_time=start_time,
                end_time=end_time,
                type=type,
                status=PENDING,
                reason=reason,
                notes=notes or '',
            )
    except IntegrityError:
        raise BookingError('This time slot is already booked')

    logger.info('appointment_booked', appointment_id=appt.id, doctor_id=profile.user_id,
                patient_id=patient.id, date=str(date), start=f"{start_time:%H:%M}")
    broadcast(appt)
    return appt


def visible_appointments(user) -> QuerySet:
    qs = Appointment.objects.select_related('patient', 'doctor')
    if user.user_type == 'admin':
        return qs
    if user.user_type == 'doctor':
        return qs.filter(doctor=user)
    return qs.filter(patient=user)


def filter_window(qs: QuerySet, window: str, today: Optional[datetime.date] = None) -> QuerySet:
    """Split appointments into the upcoming/past tabs.

    The two windows overlap for today's completed appointments, matching
    the tabs shown to users.
    """
    today = today or timezone.localdate()
    if window == 'upcoming':
        return qs.filter(date__gte=today).exclude(status=CANCELLED)
    if window == 'past':
        return qs.filter(Q(date__lt=today) | Q(status=COMPLETED))
    return qs


def can_view(user, appt: Appointment) -> bool:
    return user.user_type == 'admin' or user.id in (appt.patient_id, appt.doctor_id)


def can_delete(user, appt: Appointment) -> bool:
    if user.user_type == 'admin':
        return True
    return user.id == appt.patient_id and appt.status in (PENDING, CANCELLED)


def _roles_for(user, appt: Appointment) -> set[str]:
    roles = set()
    if user.user_type == 'admin':
        roles.add('admin')
    if user.id == appt.doctor_id:
        roles.update({'doctor', 'party'})
    if user.id == appt.patient_id:
        roles.add('party')
    return roles


def change_status(appt: Appointment, actor, new_status: str) -> Appointment:
    """Apply one lifecycle transition.

    The row is locked and its status re-read before the transition is
    checked, so two concurrent changes are applied one after the other.
    Raises ``TransitionError`` for a transition the lifecycle does not
    allow and ``PermissionError`` when the actor may not perform it.
    """
    with transaction.atomic():
        appt.status, appt.zoom_link = (
            Appointment.objects.select_for_update().values_list('status', 'zoom_link').get(pk=appt.pk)
        )
        old_status = appt.status
        if new_status == old_status:
            return appt
        allowed = TRANSITIONS.get((old_status, new_status))
        if allowed is None:
            raise TransitionError(f'Cannot change status from {old_status} to {new_status}')
        if not (allowed & _roles_for(actor, appt)):
            raise PermissionError('You are not allowed to make this change')
        appt.status = new_status
        appt.save(update_fields=['status', 'updated_at'])
        meeting = None
        if new_status == CONFIRMED and appt.type == Appointment.TYPE_VIRTUAL and not appt.zoom_link:
            meeting = schedule_for_appointment(appt, appt.doctor.display_name)

    logger.info('appointment_status_changed', appointment_id=appt.id, actor_id=actor.id,
                from_status=old_status, to_status=new_status)
    _notify_status(appt, actor, new_status, meeting)
    broadcast(appt)
    return appt


def _notify_status(appt: Appointment, actor, new_status: str, meeting: Optional[VideoMeeting]) -> None:
    when = f"{appt.date.isoformat()} {appt.start_time:%H:%M}"
    if meeting is not None:
        send_meeting_notification(appt.patient, meeting)
        send_meeting_notification(appt.doctor, meeting)
        return
    for party in (appt.patient, appt.doctor):
        if party.id == actor.id:
            continue
        notify(party, f'Appointment {new_status}', f'Your appointment on {when} is now {new_status}.')


def ensure_meeting(appt: Appointment) -> VideoMeeting:
    """Return the appointment's meeting, issuing one if needed."""
    if appt.type != Appointment.TYPE_VIRTUAL:
        raise BookingError('Only virtual appointments have a video meeting')
    if appt.status == CANCELLED:
        raise BookingError('The appointment is cancelled')
    existing = VideoMeeting.objects.filter(appointment=appt).first()
    if existing is not None:
        return existing
    meeting = schedule_for_appointment(appt, appt.doctor.display_name)
    broadcast(appt)
    return meeting


def meeting_details(appt: Appointment) -> dict:
    """Meeting id and password, read from the join link when they were not stored."""
    meeting_id, password = appt.zoom_meeting_id, appt.zoom_password
    if appt.zoom_link and not (meeting_id and password):
        parsed = parse_meeting_url(appt.zoom_link) or {}
        meeting_id = meeting_id or parsed.get('meetingId', '')
        password = password or parsed.get('password', '')
    return {'zoomMeetingId': meeting_id or None, 'zoomPassword': password or None}


def serialize_appointment(appt: Appointment) -> dict:
    return {
        'id': appt.id,
        'patientId': appt.patient_id,
        'patientName': appt.patient.display_name,
        'doctorId': appt.doctor_id,
        'doctorName': appt.doctor.display_name,
        'date': appt.date.isoformat(),
        'startTime': appt.start_time.strftime('%H:%M'),
        'endTime': appt.end_time.strftime('%H:%M'),
        'type': appt.type,
        'status': appt.status,
        'reason': appt.reason,
        'notes': appt.notes,
        'zoomLink': appt.zoom_link or None,
        **meeting_details(appt),
        'createdAt': appt.created_at.isoformat() if appt.created_at else None,
    }


def broadcast(appt: Appointment) -> None:
    payload = {'type': 'appointment.updated', 'appointment': serialize_appointment(appt)}
    for user_id in {appt.patient_id, appt.doctor_id}:
        push_event(user_id, payload)
