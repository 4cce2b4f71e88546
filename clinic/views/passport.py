from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.models import EmergencyContact
from clinic.permissions import IsDoctorRole, IsPatientRole
from clinic.serializers.records import EmergencyContactSerializer, PassportAccessSerializer
from clinic.services.audit import log_action
from clinic.services.passport import (
    PassportDenied, build_passport, emergency_info, issue_access_code, passport_for_doctor, save_contact,
    serialize_access_code, serialize_contact,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def emergency_contacts(request):
    if request.method == 'GET':
        data = [serialize_contact(c) for c in request.user.emergency_contacts.all()]
        return Response({'ok': True, 'data': data})
    s = EmergencyContactSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    contact = save_contact(request.user, s.model_fields())
    return Response({'ok': True, 'contact': serialize_contact(contact)}, status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsPatientRole])
def emergency_contact_detail(request, contact_id: int):
    contact = EmergencyContact.objects.filter(id=contact_id, patient=request.user).first()
    if contact is None:
        return Response({'ok': False, 'detail': 'Contact not found'}, status=404)
    if request.method == 'DELETE':
        contact.delete()
        return Response({'ok': True})
    s = EmergencyContactSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    contact = save_contact(request.user, s.model_fields(), contact)
    return Response({'ok': True, 'contact': serialize_contact(contact)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def passport(request):
    return Response({'ok': True, 'passport': build_passport(request.user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def passport_access_codes(request):
    code = issue_access_code(request.user)
    log_action(user=request.user, action='passport_code', object_type='user', object_id=request.user.id)
    return Response({'ok': True, **serialize_access_code(code)}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def passport_access(request):
    s = PassportAccessSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        data = passport_for_doctor(request.user, s.validated_data['code'])
    except PassportDenied as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    if data is None:
        return Response({'ok': False, 'detail': 'Invalid or expired access code'}, status=404)
    log_action(user=request.user, action='passport_access', object_type='user', detail={'result': 'ok'})
    return Response({'ok': True, 'passport': data})

passport_access.cls.throttle_scope = 'passport'


@api_view(['GET'])
@permission_classes([AllowAny])
def passport_emergency(request, code: str):
    try:
        data = emergency_info(code)
    except PassportDenied as e:
        return Response({'ok': False, 'detail': str(e)}, status=403)
    if data is None:
        return Response({'ok': False, 'detail': 'Invalid or expired access code'}, status=404)
    return Response({'ok': True, 'emergency': data})

passport_emergency.cls.throttle_scope = 'passport'
