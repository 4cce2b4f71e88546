from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import BookingError, TransitionError
from clinic.models import Appointment, DoctorProfile
from clinic.serializers.appointments import (
    AppointmentCreateSerializer, AppointmentListQuerySerializer, AppointmentUpdateSerializer,
)
from clinic.services.appointments import (
    CANCELLED, book_appointment, broadcast, can_delete, can_view, change_status, ensure_meeting,
    filter_window, serialize_appointment, visible_appointments,
)
from clinic.services.audit import log_action
from clinic.services.meetings import serialize_meeting


def _get_visible(request, appointment_id: int):
    appt = Appointment.objects.select_related('patient', 'doctor').filter(id=appointment_id).first()
    if appt is None or not can_view(request.user, appt):
        return None
    return appt


def _apply_status(request, appt: Appointment, new_status: str):
    """Run one status transition and map service errors onto responses."""
    old_status = appt.status
    try:
        change_status(appt, request.user, new_status)
    except TransitionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=409)
    except PermissionError as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    if old_status != appt.status:
        log_action(user=request.user, action='appointment_status', object_type='appointment', object_id=appt.id,
                   detail={'from': old_status, 'to': appt.status})
    return None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    """List visible appointments (GET) or book one as a patient (POST).

    Query params (GET):
      - window: upcoming|past|all
      - status: optional exact status
    """
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = filter_window(visible_appointments(request.user), q.validated_data['window'])
        if q.validated_data.get('status'):
            qs = qs.filter(status=q.validated_data['status'])
        data = [serialize_appointment(a) for a in qs.order_by('date', 'start_time')]
        return Response({'ok': True, 'data': data})

    if request.user.user_type != 'patient':
        return Response({'ok': False, 'detail': 'Only patients can book appointments'}, status=403)
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    profile = DoctorProfile.objects.select_related('user').filter(id=vd['doctorId']).first()
    if profile is None:
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)
    try:
        appt = book_appointment(
            request.user, profile,
            date=vd['date'], start_time=vd['startTime'], end_time=vd['endTime'],
            type=vd['type'], reason=vd['reason'], notes=vd.get('notes', ''),
        )
    except BookingError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=request.user, action='appointment_book', object_type='appointment', object_id=appt.id,
               detail={'doctorId': profile.id, 'date': vd['date'].isoformat()})
    return Response({'ok': True, 'appointment': serialize_appointment(appt)}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: int):
    appt = _get_visible(request, appointment_id)
    if appt is None:
        return Response({'ok': False, 'detail': 'Appointment not found'}, status=404)

    if request.method == 'GET':
        return Response({'ok': True, 'appointment': serialize_appointment(appt)})

    if request.method == 'DELETE':
        if not can_delete(request.user, appt):
            return Response({'ok': False, 'detail': 'You are not allowed to delete this appointment'}, status=403)
        log_action(user=request.user, action='appointment_delete', object_type='appointment', object_id=appt.id)
        appt.delete()
        return Response({'ok': True})

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if 'status' in vd:
        error = _apply_status(request, appt, vd['status'])
        if error is not None:
            return error
    changed = [f for f in ('notes', 'reason') if f in vd]
    if changed:
        for field in changed:
            setattr(appt, field, vd[field])
        appt.save(update_fields=changed + ['updated_at'])
        broadcast(appt)
    appt.refresh_from_db()
    return Response({'ok': True, 'appointment': serialize_appointment(appt)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, appointment_id: int):
    appt = _get_visible(request, appointment_id)
    if appt is None:
        return Response({'ok': False, 'detail': 'Appointment not found'}, status=404)
    error = _apply_status(request, appt, CANCELLED)
    if error is not None:
        return error
    return Response({'ok': True, 'appointment': serialize_appointment(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def appointment_meeting(request, appointment_id: int):
    appt = _get_visible(request, appointment_id)
    if appt is None:
        return Response({'ok': False, 'detail': 'Appointment not found'}, status=404)
    try:
        meeting = ensure_meeting(appt)
    except BookingError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    appt.refresh_from_db()
    return Response({'ok': True, 'meeting': serialize_meeting(meeting), 'appointment': serialize_appointment(appt)})
