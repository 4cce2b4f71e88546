"""Notification and privacy preferences.

The wire shape groups the flat model columns into two sections so the
settings page can bind switches directly::

    {"notifications": {"email", "push", "sms"},
     "privacy": {"shareWithDoctors", "shareAnonymizedData", "allowEmergencyAccess"}}
"""
from __future__ import annotations

from clinic.models import UserSettings

FIELD_MAP = {
    'notifications': {
        'email': 'notify_email',
        'push': 'notify_push',
        'sms': 'notify_sms',
    },
    'privacy': {
        'shareWithDoctors': 'share_with_doctors',
        'shareAnonymizedData': 'share_anonymized_data',
        'allowEmergencyAccess': 'allow_emergency_access',
    },
}


def get_settings(user) -> UserSettings:
    obj, _ = UserSettings.objects.get_or_create(user=user)
    return obj


def serialize_settings(obj: UserSettings) -> dict:
    return {
        section: {key: getattr(obj, column) for key, column in columns.items()}
        for section, columns in FIELD_MAP.items()
    }


def update_settings(user, changes: dict) -> UserSettings:
    """Merge a partial nested update; unknown sections or keys raise ValueError."""
    obj = get_settings(user)
    updated: list[str] = []
    for section, values in (changes or {}).items():
        columns = FIELD_MAP.get(section)
        if columns is None or not isinstance(values, dict):
            raise ValueError(f'Unknown settings section: {section}')
        for key, value in values.items():
            if key not in columns:
                raise ValueError(f'Unknown setting: {section}.{key}')
            if not isinstance(value, bool):
                raise ValueError(f'{section}.{key} must be a boolean')
            setattr(obj, columns[key], value)
            updated.append(columns[key])
    if updated:
        obj.save(update_fields=updated + ['updated_at'])
    return obj
