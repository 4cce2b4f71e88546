import html

import bleach
from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from clinic.models import PatientProfile
from clinic.services.accounts import is_reserved_email, split_list


def clean_text(v):
    """Strip all markup from free text and store the text itself, not HTML entities."""
    return html.unescape(bleach.clean((v or '').strip(), tags=set(), strip=True)).strip()


class StringListField(serializers.Field):
    """A list of strings given either as an array or as a comma separated string."""
    default_error_messages = {'invalid': 'Expected a list or a comma separated string.'}

    def to_internal_value(self, data):
        if not isinstance(data, (str, list)):
            self.fail('invalid')
        return [clean_text(item) for item in split_list(data)]

    def to_representation(self, value):
        return list(value or [])


class QualificationSerializer(serializers.Serializer):
    degree = serializers.CharField(max_length=120)
    institution = serializers.CharField(max_length=255)
    year = serializers.IntegerField(min_value=1900, max_value=2100)


class SurgerySerializer(serializers.Serializer):
    procedure = serializers.CharField(max_length=255)
    date = serializers.CharField(max_length=32, required=False, allow_blank=True)
    hospital = serializers.CharField(max_length=255, required=False, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField()

    def validate_email(self, v):
        v = (v or '').strip().lower()
        if not v:
            raise serializers.ValidationError('Email is required')
        return v


class DoctorFieldsSerializer(serializers.Serializer):
    specialization = serializers.CharField(max_length=120, required=False)
    qualifications = QualificationSerializer(many=True, required=False)
    experience = serializers.IntegerField(min_value=0, max_value=80, required=False)
    licenseNumber = serializers.CharField(max_length=64, required=False)
    licenseAuthority = serializers.CharField(max_length=255, required=False, allow_blank=True)
    licenseDocumentUrl = serializers.URLField(max_length=512, required=False, allow_blank=True)
    certificateDocumentUrl = serializers.URLField(max_length=512, required=False, allow_blank=True)
    consultationFee = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False)
    bio = serializers.CharField(max_length=500, required=False, allow_blank=True)
    hospital = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_specialization(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Specialization is required')
        return v

    def validate_licenseNumber(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('License number is required')
        return v

    def validate_bio(self, v):
        return clean_text(v)

    def validate_hospital(self, v):
        return clean_text(v)


class PatientFieldsSerializer(serializers.Serializer):
    dateOfBirth = serializers.DateField(input_formats=['%Y-%m-%d'], required=False, allow_null=True)
    bloodType = serializers.ChoiceField(choices=PatientProfile.BLOOD_TYPES, required=False, allow_blank=True)
    height = serializers.FloatField(min_value=50, max_value=300, required=False, allow_null=True)
    weight = serializers.FloatField(min_value=20, max_value=500, required=False, allow_null=True)
    allergies = StringListField(required=False)
    chronicConditions = StringListField(required=False)
    medications = StringListField(required=False)
    surgeries = SurgerySerializer(many=True, required=False)


DOCTOR_FIELD_MAP = {
    'specialization': 'specialization',
    'qualifications': 'qualifications',
    'experience': 'experience',
    'licenseNumber': 'license_number',
    'licenseAuthority': 'license_authority',
    'licenseDocumentUrl': 'license_document_url',
    'certificateDocumentUrl': 'certificate_document_url',
    'consultationFee': 'consultation_fee',
    'bio': 'bio',
    'hospital': 'hospital',
}

PATIENT_FIELD_MAP = {
    'dateOfBirth': 'date_of_birth',
    'bloodType': 'blood_type',
    'height': 'height',
    'weight': 'weight',
    'allergies': 'allergies',
    'chronicConditions': 'chronic_conditions',
    'medications': 'medications',
    'surgeries': 'surgeries',
}


def model_fields(data: dict, field_map: dict) -> dict:
    """Translate validated camelCase keys into model field names."""
    out = {}
    for key, column in field_map.items():
        if key in data:
            value = data[key]
            if isinstance(value, list):
                value = [dict(v) if isinstance(v, dict) else v for v in value]
            out[column] = value
    return out


class RegisterSerializer(DoctorFieldsSerializer, PatientFieldsSerializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    userType = serializers.ChoiceField(choices=['patient', 'doctor'])
    phoneNumber = serializers.CharField(max_length=32)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_email(self, v):
        v = v.strip().lower()
        if is_reserved_email(v):
            raise serializers.ValidationError('This email is reserved for the demo accounts')
        return v

    def validate_phoneNumber(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Phone number is required')
        return v

    def validate_password(self, v):
        try:
            password_validation.validate_password(v)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return v

    def validate(self, attrs):
        if attrs.get('userType') == 'doctor':
            missing = [k for k in ('specialization', 'experience', 'licenseNumber', 'consultationFee')
                       if attrs.get(k) in (None, '')]
            if missing:
                raise serializers.ValidationError({k: 'This field is required for doctors.' for k in missing})
        return attrs


class UserDetailsSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False)
    phoneNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_email(self, v):
        return v.strip().lower()

    def validate_phoneNumber(self, v):
        return clean_text(v)


class ProfileImageSerializer(serializers.Serializer):
    imageUrl = serializers.CharField(max_length=512)

    def validate_imageUrl(self, v):
        v = v.strip()
        if v.startswith(('http://', 'https://')):
            return serializers.URLField().run_validation(v)
        if v.startswith('/') or (v and '://' not in v and ' ' not in v):
            return v
        raise serializers.ValidationError('Enter a URL or a relative path')


class DeleteAccountSerializer(serializers.Serializer):
    password = serializers.CharField()


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()
