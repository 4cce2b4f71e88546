from django.contrib.auth import get_user_model
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, MedicalReport
from clinic.serializers.records import AttachmentSerializer, ReportListQuerySerializer, ReportSerializer
from clinic.services.audit import log_action
from clinic.services.reports import (
    add_attachment, can_modify, can_view, has_care_relationship, serialize_attachment, serialize_report,
    visible_reports,
)

User = get_user_model()


def _create_report(request):
    s = ReportSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = request.user
    fields = s.model_fields()

    if user.user_type == 'patient':
        patient = user
    elif user.user_type == 'doctor':
        patient = User.objects.filter(id=vd.get('patientId'), user_type='patient').first()
        if patient is None:
            return Response({'ok': False, 'detail': 'Patient not found'}, status=404)
        if not has_care_relationship(user, patient.id):
            return Response({'ok': False, 'detail': 'You have no appointment with this patient'}, status=403)
        fields['author'] = user
        fields.setdefault('doctor_name', '')
        fields['doctor_name'] = fields['doctor_name'] or user.display_name
    else:
        return Response({'ok': False, 'detail': 'Only patients and doctors can create reports'}, status=403)

    if vd.get('appointmentId'):
        appt = Appointment.objects.filter(id=vd['appointmentId'], patient=patient).first()
        if appt is None:
            return Response({'ok': False, 'detail': 'Appointment not found'}, status=404)
        fields['appointment'] = appt

    report = MedicalReport.objects.create(patient=patient, **fields)
    log_action(user=user, action='report_create', object_type='report', object_id=report.id,
               detail={'patientId': patient.id})
    return Response({'ok': True, 'report': serialize_report(report)}, status=201)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def reports(request):
    """List visible reports, newest first (GET) or create one (POST).

    Query params (GET):
      - reportType: exact report type
      - patientId: reports of one patient
    """
    if request.method == 'POST':
        return _create_report(request)
    q = ReportListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = visible_reports(request.user)
    if q.validated_data.get('reportType'):
        qs = qs.filter(report_type=q.validated_data['reportType'])
    if q.validated_data.get('patientId'):
        qs = qs.filter(patient_id=q.validated_data['patientId'])
    data = [serialize_report(r) for r in qs.order_by('-date', '-id')]
    return Response({'ok': True, 'data': data})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def report_detail(request, report_id: int):
    report = MedicalReport.objects.filter(id=report_id).first()
    if report is None or not can_view(request.user, report):
        return Response({'ok': False, 'detail': 'Report not found'}, status=404)

    if request.method == 'GET':
        return Response({'ok': True, 'report': serialize_report(report)})

    if not can_modify(request.user, report):
        return Response({'ok': False, 'detail': 'You are not allowed to change this report'}, status=403)

    if request.method == 'DELETE':
        log_action(user=request.user, action='report_delete', object_type='report', object_id=report.id)
        report.delete()
        return Response({'ok': True})

    s = ReportSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    for field, value in s.model_fields().items():
        setattr(report, field, value)
    report.save()
    log_action(user=request.user, action='report_update', object_type='report', object_id=report.id)
    return Response({'ok': True, 'report': serialize_report(report)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def report_attachments(request, report_id: int):
    report = MedicalReport.objects.filter(id=report_id).first()
    if report is None or not can_view(request.user, report):
        return Response({'ok': False, 'detail': 'Report not found'}, status=404)
    if not can_modify(request.user, report):
        return Response({'ok': False, 'detail': 'You are not allowed to change this report'}, status=403)
    s = AttachmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        attachment = add_attachment(report, s.validated_data['file'])
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'attachment': serialize_attachment(attachment)}, status=201)
