from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import DoctorProfile, PatientProfile
from clinic.serializers.auth import (
    DOCTOR_FIELD_MAP, PATIENT_FIELD_MAP, DeleteAccountSerializer, DoctorFieldsSerializer,
    PatientFieldsSerializer, ProfileImageSerializer, UserDetailsSerializer, model_fields,
)
from clinic.services.audit import log_action
from clinic.services.accounts import is_reserved_email, serialize_user
from clinic.services.doctors import invalidate_directory, update_profile

User = get_user_model()


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_details(request):
    s = UserDetailsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = request.user
    if 'email' in vd and vd['email'] != user.email:
        if is_reserved_email(vd['email']):
            return Response({'ok': False, 'detail': 'This email is reserved for the demo accounts'}, status=400)
        if User.objects.filter(email__iexact=vd['email']).exclude(pk=user.pk).exists():
            return Response({'ok': False, 'detail': 'This email is already registered'}, status=400)
        user.email = vd['email']
        user.username = vd['email']
    if 'name' in vd:
        user.first_name = vd['name']
    if 'phoneNumber' in vd:
        user.phone_number = vd['phoneNumber']
    user.save(update_fields=['email', 'username', 'first_name', 'phone_number'])
    if user.user_type == User.TYPE_DOCTOR:
        invalidate_directory()
    return Response({'ok': True, 'user': serialize_user(user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_profile_view(request):
    """Update the doctor or patient profile of the current user."""
    user = request.user
    if user.user_type == User.TYPE_DOCTOR:
        s = DoctorFieldsSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        changes = model_fields(s.validated_data, DOCTOR_FIELD_MAP)
        profile = getattr(user, 'doctor_profile', None)
        if profile is None:
            return Response({'ok': False, 'detail': 'Doctor profile not found'}, status=404)
        if 'license_number' in changes and DoctorProfile.objects.filter(
                license_number=changes['license_number']).exclude(pk=profile.pk).exists():
            return Response({'ok': False, 'detail': 'This license number is already registered'}, status=400)
        update_profile(profile, changes)
    elif user.user_type == User.TYPE_PATIENT:
        s = PatientFieldsSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        profile, _ = PatientProfile.objects.get_or_create(user=user)
        for field, value in model_fields(s.validated_data, PATIENT_FIELD_MAP).items():
            setattr(profile, field, value)
        profile.save()
    else:
        return Response({'ok': False, 'detail': 'Administrators have no profile'}, status=400)
    user.refresh_from_db()
    return Response({'ok': True, 'user': serialize_user(user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_profile_image(request):
    s = ProfileImageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    request.user.profile_image = s.validated_data['imageUrl']
    request.user.save(update_fields=['profile_image'])
    return Response({'ok': True, 'user': serialize_user(request.user)})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_account(request):
    s = DeleteAccountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    if not user.check_password(s.validated_data['password']):
        return Response({'ok': False, 'detail': 'Password is incorrect'}, status=400)
    user_id, was_doctor = user.id, user.user_type == User.TYPE_DOCTOR
    with transaction.atomic():
        log_action(user=None, action='account_delete', object_type='user', object_id=user_id)
        user.delete()
    if was_doctor:
        invalidate_directory()
    return Response({'ok': True})
