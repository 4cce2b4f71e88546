from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.models import DoctorProfile
from clinic.permissions import IsAdminRole, IsDoctorRole
from clinic.serializers.auth import DOCTOR_FIELD_MAP, DoctorFieldsSerializer, model_fields
from clinic.serializers.doctors import AvailabilityQuerySerializer, AvailabilitySerializer, DoctorListQuerySerializer
from clinic.services.appointments import slots_for_date
from clinic.services.audit import log_action
from clinic.services.doctors import list_doctors, replace_availability, serialize_doctor, update_profile, verify_doctor


def _get_profile(doctor_id):
    return DoctorProfile.objects.select_related('user').filter(id=doctor_id).first()


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_list(request):
    """Public directory of verified doctors.

    Query params:
      - q: name contains
      - specialization: exact match, case-insensitive
      - includeUnverified: admins only
      - page, pageSize: pagination (optional)
    """
    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    include_unverified = bool(vd.get('includeUnverified')) and getattr(request.user, 'user_type', '') == 'admin'
    page, page_size = vd.get('page'), vd.get('pageSize')
    data, total = list_doctors(
        q=(vd.get('q') or '').strip() or None,
        specialization=(vd.get('specialization') or '').strip() or None,
        include_unverified=include_unverified,
        page=page,
        page_size=page_size,
    )
    return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page or 1, 'pageSize': page_size or total}})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_detail(request, doctor_id: int):
    profile = _get_profile(doctor_id)
    is_admin = getattr(request.user, 'user_type', '') == 'admin'
    if profile is None or not (profile.is_verified or is_admin or request.user == profile.user):
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)
    return Response({'ok': True, 'doctor': serialize_doctor(profile, with_slots=True)})


@api_view(['PUT'])
@permission_classes([IsDoctorRole])
def doctor_profile_update(request):
    profile = getattr(request.user, 'doctor_profile', None)
    if profile is None:
        return Response({'ok': False, 'detail': 'Doctor profile not found'}, status=404)
    s = DoctorFieldsSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    changes = model_fields(s.validated_data, DOCTOR_FIELD_MAP)
    if 'license_number' in changes and DoctorProfile.objects.filter(
            license_number=changes['license_number']).exclude(pk=profile.pk).exists():
        return Response({'ok': False, 'detail': 'This license number is already registered'}, status=400)
    update_profile(profile, changes)
    return Response({'ok': True, 'doctor': serialize_doctor(profile, with_slots=True)})


@api_view(['PUT'])
@permission_classes([IsDoctorRole])
def doctor_availability_update(request):
    profile = getattr(request.user, 'doctor_profile', None)
    if profile is None:
        return Response({'ok': False, 'detail': 'Doctor profile not found'}, status=404)
    s = AvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        replace_availability(profile, s.slots())
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'doctor': serialize_doctor(profile, with_slots=True)})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_availability(request, doctor_id: int):
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    profile = _get_profile(doctor_id)
    if profile is None or not profile.is_verified:
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)
    return Response({'ok': True, 'data': slots_for_date(profile, q.validated_data['date'])})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def doctor_verify(request, doctor_id: int):
    profile = _get_profile(doctor_id)
    if profile is None:
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)
    verify_doctor(profile)
    log_action(user=request.user, action='doctor_verify', object_type='doctor', object_id=profile.id)
    return Response({'ok': True, 'doctor': serialize_doctor(profile)})
