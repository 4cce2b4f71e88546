"""
Health passport, access codes and emergency contacts.

A passport aggregates a patient's profile, metrics, latest reports and
emergency contacts.  Patients read their own; a doctor reads one through a
short-lived access code the patient issued, and emergency responders get a
reduced view through the same code when the patient allows it.
"""
from __future__ import annotations

import datetime
import secrets
import string
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from clinic.logging_config import get_logger
from clinic.models import EmergencyContact, MedicalReport, PassportAccessCode, PatientProfile
from clinic.services.metrics import list_metrics, serialize_metric
from clinic.services.preferences import get_settings
from clinic.services.reports import serialize_report

logger = get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
RECENT_REPORTS = 3


class PassportDenied(PermissionError):
    """The patient's privacy settings do not allow this kind of access."""


def serialize_contact(c: EmergencyContact) -> dict:
    return {
        'id': c.id,
        'name': c.name,
        'relationship': c.relationship,
        'phoneNumber': c.phone_number,
        'email': c.email,
        'isPrimary': c.is_primary,
    }


@transaction.atomic
def save_contact(patient, data: dict, contact: Optional[EmergencyContact] = None) -> EmergencyContact:
    """Create or update a contact; a new primary demotes the previous one."""
    contact = contact or EmergencyContact(patient=patient)
    for field, value in data.items():
        setattr(contact, field, value)
    contact.save()
    if contact.is_primary:
        EmergencyContact.objects.filter(patient=patient, is_primary=True).exclude(pk=contact.pk).update(
            is_primary=False
        )
    return contact


def serialize_profile(user) -> dict:
    profile = PatientProfile.objects.filter(user=user).first()
    data = {
        'name': user.display_name,
        'email': user.email,
        'phoneNumber': user.phone_number,
        'profileImage': user.profile_image,
        'dateOfBirth': None,
        'bloodType': None,
        'height': None,
        'weight': None,
        'allergies': [],
        'chronicConditions': [],
        'medications': [],
        'surgeries': [],
    }
    if profile is not None:
        data.update({
            'dateOfBirth': profile.date_of_birth.isoformat() if profile.date_of_birth else None,
            'bloodType': profile.blood_type or None,
            'height': profile.height,
            'weight': profile.weight,
            'allergies': list(profile.allergies or []),
            'chronicConditions': list(profile.chronic_conditions or []),
            'medications': list(profile.medications or []),
            'surgeries': list(profile.surgeries or []),
        })
    return data


def build_passport(patient, *, include_private: bool = True) -> dict:
    reports = MedicalReport.objects.filter(patient=patient).prefetch_related('attachments')
    if not include_private:
        reports = reports.filter(is_private=False)
    reports = reports.order_by('-date', '-id')[:RECENT_REPORTS]
    return {
        'profile': serialize_profile(patient),
        'metrics': [serialize_metric(m) for m in list_metrics(patient)],
        'recentReports': [serialize_report(r) for r in reports],
        'emergencyContacts': [serialize_contact(c) for c in patient.emergency_contacts.all()],
    }


def _random_code() -> str:
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def issue_access_code(patient) -> PassportAccessCode:
    """Issue a fresh code, revoking every earlier code of the patient."""
    expires_at = timezone.now() + datetime.timedelta(minutes=settings.PASSPORT_CODE_TTL_MINUTES)
    for _ in range(5):
        try:
            with transaction.atomic():
                PassportAccessCode.objects.filter(patient=patient, revoked=False).update(revoked=True)
                code = PassportAccessCode.objects.create(patient=patient, code=_random_code(), expires_at=expires_at)
        except IntegrityError:
            continue
        logger.info('passport_code_issued', patient_id=patient.id, expires_at=expires_at.isoformat())
        return code
    raise RuntimeError('Could not allocate a unique access code')


def resolve_code(code: str) -> Optional[PassportAccessCode]:
    """Return the live access code matching ``code`` or ``None``."""
    if not code:
        return None
    return (
        PassportAccessCode.objects.select_related('patient')
        .filter(code=code.strip().upper(), revoked=False, expires_at__gt=timezone.now())
        .first()
    )


def serialize_access_code(c: PassportAccessCode) -> dict:
    return {'code': c.code, 'expiresAt': c.expires_at.isoformat()}


def passport_for_doctor(doctor, code: str) -> Optional[dict]:
    access = resolve_code(code)
    if access is None:
        return None
    patient = access.patient
    if not get_settings(patient).share_with_doctors:
        raise PassportDenied('The patient does not share their records with doctors')
    logger.info('passport_accessed', patient_id=patient.id, doctor_id=doctor.id)
    return build_passport(patient, include_private=False)


def emergency_info(code: str) -> Optional[dict]:
    access = resolve_code(code)
    if access is None:
        return None
    patient = access.patient
    if not get_settings(patient).allow_emergency_access:
        raise PassportDenied('Emergency access is disabled for this patient')
    profile = serialize_profile(patient)
    logger.info('passport_emergency_access', patient_id=patient.id)
    return {
        'name': profile['name'],
        'bloodType': profile['bloodType'],
        'allergies': profile['allergies'],
        'chronicConditions': profile['chronicConditions'],
        'medications': profile['medications'],
        'emergencyContacts': [serialize_contact(c) for c in patient.emergency_contacts.all()],
    }
