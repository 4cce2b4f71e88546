"""Registration, demo accounts, token issuance and user payloads."""
from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.authtoken.models import Token
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.logging_config import get_logger
from clinic.models import DoctorProfile, PatientProfile, TimeSlot, UserSettings

User = get_user_model()
logger = get_logger(__name__)

DEMO_PASSWORD = 'password123'

DEMO_DOCTOR = {
    'name': 'Dr. Sarah Smith',
    'email': 'dr.smith@example.com',
    'user_type': 'doctor',
    'phone_number': '555-123-4567',
    'doctor': {
        'specialization': 'Cardiology',
        'qualifications': [
            {'degree': 'MD', 'institution': 'Harvard Medical School', 'year': 2010},
            {'degree': 'PhD', 'institution': 'Johns Hopkins University', 'year': 2012},
        ],
        'experience': 12,
        'license_number': 'MD12345678',
        'license_authority': 'American Medical Association',
        'license_document_url': 'https://example.com/uploads/license.pdf',
        'certificate_document_url': 'https://example.com/uploads/certificate.pdf',
        'is_verified': True,
        'consultation_fee': Decimal('150'),
        'hospital': 'General Hospital',
        'bio': 'Board-certified cardiologist with over 12 years of experience in treating '
               'heart conditions and performing cardiac procedures.',
    },
    'slots': [
        ('Monday', '09:00', '17:00'),
        ('Wednesday', '09:00', '17:00'),
        ('Friday', '09:00', '13:00'),
    ],
}

DEMO_PATIENT = {
    'name': 'John Doe',
    'email': 'john@example.com',
    'user_type': 'patient',
    'phone_number': '555-987-6543',
    'patient': {
        'date_of_birth': datetime.date(1985, 5, 15),
        'blood_type': 'A+',
        'height': 175,
        'weight': 70,
        'allergies': ['Peanuts', 'Penicillin'],
        'chronic_conditions': ['Asthma'],
        'medications': ['Albuterol', 'Vitamin D'],
    },
}

DEMO_ACCOUNTS = {account['email']: account for account in (DEMO_DOCTOR, DEMO_PATIENT)}


def split_list(value) -> list[str]:
    """Accept a list or a comma separated string; trim items and drop empties."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


def _parse_hhmm(value: str) -> datetime.time:
    return datetime.datetime.strptime(value, '%H:%M').time()


@transaction.atomic
def register_user(*, name: str, email: str, password: str, user_type: str, phone_number: str = '',
                  doctor: Optional[dict] = None, patient: Optional[dict] = None):
    """Create a user with its type-specific profile and default settings.

    Doctors are always created unverified.  Callers validate input; this
    function only enforces the e-mail/license uniqueness that depends on
    the database.
    """
    email = email.strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ValueError('This email is already registered')
    user = User.objects.create_user(
        username=email, email=email, password=password, first_name=name.strip(),
        user_type=user_type, phone_number=phone_number or '',
    )
    if user_type == User.TYPE_DOCTOR:
        doctor = dict(doctor or {})
        if DoctorProfile.objects.filter(license_number=doctor.get('license_number')).exists():
            raise ValueError('This license number is already registered')
        doctor['is_verified'] = False
        DoctorProfile.objects.create(user=user, **doctor)
    elif user_type == User.TYPE_PATIENT:
        PatientProfile.objects.create(user=user, **(patient or {}))
    UserSettings.objects.create(user=user)
    logger.info('user_registered', user_id=user.id, user_type=user_type)
    return user


@transaction.atomic
def ensure_demo_account(email: str, *, repair: bool = False):
    """Create one of the demo accounts if it is missing and return it.

    An existing demo user is reused as it is; only a missing profile, slot
    list or settings row is filled in.  With ``repair=True`` (the
    ``ensure_demo_users`` command) the password, role and profile are reset
    to the documented values.
    """
    from clinic.services.doctors import invalidate_directory

    account = DEMO_ACCOUNTS[email]
    user, created = User.objects.get_or_create(
        username=account['email'],
        defaults={
            'email': account['email'],
            'first_name': account['name'],
            'user_type': account['user_type'],
            'phone_number': account['phone_number'],
        },
    )
    if created or repair:
        user.set_password(DEMO_PASSWORD)
        user.user_type = account['user_type']
        user.is_active = True
        user.save()
    elif user.user_type != account['user_type']:
        return user

    if account['user_type'] == User.TYPE_DOCTOR:
        if repair:
            profile, profile_created = DoctorProfile.objects.update_or_create(user=user, defaults=account['doctor'])
        else:
            profile, profile_created = DoctorProfile.objects.get_or_create(user=user, defaults=account['doctor'])
        if not profile.available_slots.exists():
            TimeSlot.objects.bulk_create([
                TimeSlot(doctor=profile, day=day, start_time=_parse_hhmm(start), end_time=_parse_hhmm(end))
                for day, start, end in account['slots']
            ])
            profile_created = True
        if profile_created or repair:
            invalidate_directory()
    elif repair:
        PatientProfile.objects.update_or_create(user=user, defaults=account['patient'])
    else:
        PatientProfile.objects.get_or_create(user=user, defaults=account['patient'])
    UserSettings.objects.get_or_create(user=user)
    if created:
        logger.info('demo_account_created', user_id=user.id, email=email)
    elif repair:
        logger.info('demo_account_repaired', user_id=user.id, email=email)
    return user


def is_reserved_email(email: str) -> bool:
    """Demo logins reset these accounts, so nobody else may claim the addresses."""
    return bool(settings.DEMO_ACCOUNTS_ENABLE and (email or '').strip().lower() in DEMO_ACCOUNTS)


def is_demo_login(email: str, password: str) -> bool:
    return bool(settings.DEMO_ACCOUNTS_ENABLE and email in DEMO_ACCOUNTS and password == DEMO_PASSWORD)


def issue_tokens(user) -> dict:
    """Legacy DRF token plus a SimpleJWT access/refresh pair."""
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
    }


def serialize_qualifications(items) -> list[dict]:
    return [
        {'degree': q.get('degree', ''), 'institution': q.get('institution', ''), 'year': q.get('year')}
        for q in (items or [])
    ]


def serialize_user(user) -> dict:
    """Flatten a user and its profile into the shape the client stores.

    Doctor-only keys are ``None`` for patients and vice versa, so both user
    types share one payload layout.
    """
    data: dict[str, object] = {
        'id': user.id,
        'name': user.display_name,
        'email': user.email,
        'userType': user.user_type,
        'phoneNumber': user.phone_number,
        'profileImage': user.profile_image,
        'specialization': None,
        'qualifications': None,
        'experience': None,
        'consultationFee': None,
        'bio': None,
        'isVerified': None,
        'dateOfBirth': None,
        'bloodType': None,
        'height': None,
        'weight': None,
        'allergies': [],
        'chronicConditions': [],
        'medications': [],
    }
    doctor = getattr(user, 'doctor_profile', None) if user.user_type == User.TYPE_DOCTOR else None
    if doctor is not None:
        data.update({
            'specialization': doctor.specialization,
            'qualifications': serialize_qualifications(doctor.qualifications),
            'experience': doctor.experience,
            'consultationFee': float(doctor.consultation_fee),
            'bio': doctor.bio,
            'isVerified': doctor.is_verified,
        })
    patient = getattr(user, 'patient_profile', None) if user.user_type == User.TYPE_PATIENT else None
    if patient is not None:
        data.update({
            'dateOfBirth': patient.date_of_birth.isoformat() if patient.date_of_birth else None,
            'bloodType': patient.blood_type or None,
            'height': patient.height,
            'weight': patient.weight,
            'allergies': list(patient.allergies or []),
            'chronicConditions': list(patient.chronic_conditions or []),
            'medications': list(patient.medications or []),
        })
    return data
