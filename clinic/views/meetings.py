from django.db import transaction
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, VideoMeeting
from clinic.permissions import IsDoctorOrAdmin
from clinic.serializers.appointments import MeetingCreateSerializer
from clinic.services.appointments import CANCELLED, broadcast, can_view
from clinic.services.meetings import attach_meeting, can_view_meeting, create_meeting, serialize_meeting


def _appointment_problem(appt: Appointment):
    if appt.type != Appointment.TYPE_VIRTUAL:
        return Response({'ok': False, 'detail': 'Only virtual appointments have a video meeting'}, status=400)
    if appt.status == CANCELLED:
        return Response({'ok': False, 'detail': 'The appointment is cancelled'}, status=400)
    if VideoMeeting.objects.filter(appointment=appt).exists():
        return Response({'ok': False, 'detail': 'This appointment already has a meeting'}, status=409)
    return None


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def meeting_create(request):
    s = MeetingCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if not vd.get('appointmentId'):
        meeting = create_meeting(vd['topic'], vd['startTime'], vd.get('duration'), request.user.display_name,
                                 host=request.user)
        return Response({'ok': True, 'meeting': serialize_meeting(meeting)}, status=201)

    with transaction.atomic():
        appt = Appointment.objects.select_for_update().filter(id=vd['appointmentId']).first()
        if appt is None or not can_view(request.user, appt):
            return Response({'ok': False, 'detail': 'Appointment not found'}, status=404)
        problem = _appointment_problem(appt)
        if problem is not None:
            return problem
        meeting = create_meeting(
            vd['topic'], vd['startTime'], vd.get('duration'), request.user.display_name,
            host=request.user, appointment=appt,
        )
        attach_meeting(appt, meeting)
    broadcast(appt)
    return Response({'ok': True, 'meeting': serialize_meeting(meeting)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def meeting_detail(request, meeting_id: str):
    meeting = VideoMeeting.objects.select_related('appointment').filter(meeting_id=meeting_id).first()
    if meeting is None or not can_view_meeting(request.user, meeting):
        return Response({'ok': False, 'detail': 'Meeting not found'}, status=404)
    return Response({'ok': True, 'meeting': serialize_meeting(meeting)})
