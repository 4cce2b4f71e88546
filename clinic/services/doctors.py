from typing import Optional
import datetime

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Q

from clinic.logging_config import get_logger
from clinic.models import DoctorProfile, TimeSlot, WEEKDAYS
from clinic.services.accounts import serialize_qualifications

logger = get_logger(__name__)

CACHE_VERSION_KEY = 'doctors:version'


def _cache_version() -> int:
    version = cache.get(CACHE_VERSION_KEY)
    if version is None:
        cache.add(CACHE_VERSION_KEY, 1, None)
        version = cache.get(CACHE_VERSION_KEY) or 1
    return version


def invalidate_directory() -> None:
    """Bump the directory version so every cached listing goes stale."""
    try:
        cache.incr(CACHE_VERSION_KEY)
    except ValueError:
        cache.set(CACHE_VERSION_KEY, 2, None)


def serialize_slot(slot: TimeSlot) -> dict:
    return {
        'id': slot.id,
        'day': slot.day,
        'startTime': slot.start_time.strftime('%H:%M'),
        'endTime': slot.end_time.strftime('%H:%M'),
    }


def serialize_doctor(profile: DoctorProfile, *, with_slots: bool = False) -> dict:
    user = profile.user
    data = {
        'id': profile.id,
        'userId': user.id,
        'name': user.display_name,
        'email': user.email,
        'phoneNumber': user.phone_number,
        'profileImage': user.profile_image,
        'specialization': profile.specialization,
        'qualifications': serialize_qualifications(profile.qualifications),
        'experience': profile.experience,
        'consultationFee': float(profile.consultation_fee),
        'bio': profile.bio,
        'hospital': profile.hospital,
        'licenseNumber': profile.license_number,
        'licenseAuthority': profile.license_authority,
        'isVerified': profile.is_verified,
    }
    if with_slots:
        slots = sorted(profile.available_slots.all(), key=lambda s: (WEEKDAYS.index(s.day), s.start_time))
        data['availableSlots'] = [serialize_slot(s) for s in slots]
    return data


def list_doctors(*, q: Optional[str] = None, specialization: Optional[str] = None,
                 include_unverified: bool = False, page: Optional[int] = None,
                 page_size: Optional[int] = None) -> tuple[list[dict], int]:
    cache_key = (
        f"doctors:v={_cache_version()}:q={q or ''}:spec={(specialization or '').lower()}"
        f":all={int(include_unverified)}:p={page}:ps={page_size}"
    )
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    qs = DoctorProfile.objects.select_related('user').filter(user__is_active=True)
    if not include_unverified:
        qs = qs.filter(is_verified=True)
    if specialization:
        qs = qs.filter(specialization__iexact=specialization)
    if q:
        qs = qs.filter(Q(user__first_name__icontains=q) | Q(user__last_name__icontains=q))

    total = qs.count()
    qs = qs.order_by('id')
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]

    result = ([serialize_doctor(p) for p in qs], total)
    cache.set(cache_key, result, settings.DOCTORS_CACHE_TTL)
    return result


def update_profile(profile: DoctorProfile, changes: dict) -> DoctorProfile:
    for field, value in changes.items():
        setattr(profile, field, value)
    profile.save()
    invalidate_directory()
    return profile


def _check_overlaps(slots: list[dict]) -> None:
    by_day: dict[str, list[tuple[datetime.time, datetime.time]]] = {}
    for slot in slots:
        by_day.setdefault(slot['day'], []).append((slot['start_time'], slot['end_time']))
    for day, intervals in by_day.items():
        intervals.sort()
        for (_, prev_end), (next_start, _) in zip(intervals, intervals[1:]):
            if next_start < prev_end:
                raise ValueError(f'Overlapping slots on {day}')


@transaction.atomic
def replace_availability(profile: DoctorProfile, slots: list[dict]) -> list[TimeSlot]:
    """Replace all declared slots of a doctor.

    ``slots`` holds validated dicts with ``day``, ``start_time`` and
    ``end_time``; slots on the same day must not overlap.
    """
    _check_overlaps(slots)
    profile.available_slots.all().delete()
    created = TimeSlot.objects.bulk_create([
        TimeSlot(doctor=profile, day=s['day'], start_time=s['start_time'], end_time=s['end_time'])
        for s in sorted(slots, key=lambda s: (WEEKDAYS.index(s['day']), s['start_time']))
    ])
    invalidate_directory()
    logger.info('availability_replaced', doctor_id=profile.id, slots=len(created))
    return created


def verify_doctor(profile: DoctorProfile) -> DoctorProfile:
    profile.is_verified = True
    profile.save(update_fields=['is_verified', 'updated_at'])
    invalidate_directory()
    logger.info('doctor_verified', doctor_id=profile.id)
    return profile
