import datetime
from decimal import Decimal

from django.utils import timezone

from clinic.models import DoctorProfile, PatientProfile, TimeSlot, User, UserSettings

PASSWORD = 'Str0ng-Passw0rd!'

DEFAULT_SLOTS = (
    ('Monday', datetime.time(9, 0), datetime.time(9, 30)),
    ('Monday', datetime.time(9, 30), datetime.time(10, 0)),
    ('Wednesday', datetime.time(14, 0), datetime.time(14, 30)),
)


def next_weekday(weekday: int, start=None) -> datetime.date:
    """The next date strictly after ``start`` (default today) falling on ``weekday``."""
    start = start or timezone.localdate()
    return start + datetime.timedelta(days=(weekday - start.weekday()) % 7 or 7)


def _user(email, name, user_type):
    user = User.objects.create_user(
        username=email, email=email, password=PASSWORD, first_name=name, user_type=user_type,
    )
    UserSettings.objects.create(user=user)
    return user


def make_patient(email='pat@example.com', name='Pat Patient', **profile):
    user = _user(email, name, User.TYPE_PATIENT)
    PatientProfile.objects.create(user=user, **profile)
    return user


def make_doctor(email='doc@example.com', name='Dr. Gregory House', *, verified=True, slots=DEFAULT_SLOTS,
                specialization='Cardiology'):
    user = _user(email, name, User.TYPE_DOCTOR)
    profile = DoctorProfile.objects.create(
        user=user,
        specialization=specialization,
        experience=10,
        license_number=f'LIC-{email}',
        consultation_fee=Decimal('120.00'),
        is_verified=verified,
    )
    TimeSlot.objects.bulk_create([
        TimeSlot(doctor=profile, day=day, start_time=start, end_time=end) for day, start, end in slots
    ])
    return profile


def make_admin(email='admin@example.com', name='Ada Admin'):
    return _user(email, name, User.TYPE_ADMIN)
