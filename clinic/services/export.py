"""
Health data export.

``build_export`` assembles the export structure for one patient and
``render_export`` turns it into a downloadable body.  The ``pdf`` format
produces an HTML document; no PDF renderer is involved.
"""
from __future__ import annotations

import csv
import io
import json
from typing import NamedTuple

from django.template.loader import render_to_string
from django.utils import timezone

from clinic.models import Appointment, HealthMetric, MedicalReport, PatientProfile

EXPORT_FILENAME = 'health-data-export'

# metric type -> vital sign key
VITAL_KEYS = {
    'blood-pressure': 'bloodPressure',
    'heart-rate': 'heartRate',
    'temperature': 'temperature',
    'oxygen-level': 'oxygenSaturation',
}


class ExportFile(NamedTuple):
    body: str
    content_type: str
    filename: str


def _vital_signs(patient) -> list[dict]:
    by_date: dict[str, dict] = {}
    # ascending order so the latest reading of a day wins
    qs = HealthMetric.objects.filter(patient=patient, type__in=list(VITAL_KEYS)).order_by('date', 'time', 'id')
    for m in qs:
        day = by_date.setdefault(m.date.isoformat(), {
            'date': m.date.isoformat(),
            'bloodPressure': None,
            'heartRate': None,
            'temperature': None,
            'oxygenSaturation': None,
        })
        day[VITAL_KEYS[m.type]] = f"{m.value:g}" if m.type == 'blood-pressure' else m.value
    return [by_date[d] for d in sorted(by_date)]


def _summary(report: MedicalReport) -> str:
    if report.content:
        return report.content
    if report.diagnosis:
        return ', '.join(str(d) for d in report.diagnosis)
    return report.notes


def build_export(patient) -> dict:
    profile = PatientProfile.objects.filter(user=patient).first()
    appointments = Appointment.objects.filter(patient=patient).select_related('doctor').order_by('date', 'start_time')
    reports = MedicalReport.objects.filter(patient=patient).order_by('-date', '-id')
    return {
        'profile': {
            'name': patient.display_name,
            'dateOfBirth': profile.date_of_birth.isoformat() if profile and profile.date_of_birth else '',
            'bloodType': profile.blood_type if profile else '',
            'height': profile.height if profile else None,
            'weight': profile.weight if profile else None,
        },
        'medicalHistory': {
            'allergies': list(profile.allergies or []) if profile else [],
            'chronicConditions': list(profile.chronic_conditions or []) if profile else [],
            'medications': list(profile.medications or []) if profile else [],
            'surgeries': list(profile.surgeries or []) if profile else [],
        },
        'vitalSigns': _vital_signs(patient),
        'appointments': [{
            'doctorName': a.doctor.display_name,
            'date': a.date.isoformat(),
            'type': a.type,
            'notes': a.notes,
        } for a in appointments],
        'reports': [{
            'title': r.title,
            'date': r.date.isoformat(),
            'doctor': r.doctor_name,
            'reportType': r.report_type,
            'summary': _summary(r),
        } for r in reports],
    }


def to_csv(data: dict) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(['Category', 'Key', 'Value'])
    for key, value in data['profile'].items():
        writer.writerow(['Profile', key, '' if value is None else value])
    history = data['medicalHistory']
    for category, key in (('Allergies', 'allergies'), ('Medications', 'medications'),
                          ('ChronicConditions', 'chronicConditions')):
        for item in history.get(key) or []:
            writer.writerow([category, 'item', item])
    return buf.getvalue()


def to_html(data: dict) -> str:
    return render_to_string('clinic/health_export.html', {
        'data': data,
        'generated_on': timezone.localdate(),
    })


def render_export(data: dict, fmt: str) -> ExportFile:
    if fmt == 'json':
        return ExportFile(json.dumps(data, indent=2, ensure_ascii=False), 'application/json',
                          f'{EXPORT_FILENAME}.json')
    if fmt == 'csv':
        return ExportFile(to_csv(data), 'text/csv', f'{EXPORT_FILENAME}.csv')
    if fmt == 'pdf':
        return ExportFile(to_html(data), 'text/html', f'{EXPORT_FILENAME}.html')
    raise ValueError('Unsupported export format')
