from typing import Optional

from django.db.models import QuerySet

from clinic.models import HealthMetric

METRIC_TYPES = [t for t, _ in HealthMetric.TYPE_CHOICES]


def default_unit(metric_type: str) -> str:
    return HealthMetric.DEFAULT_UNITS.get(metric_type, '')


def list_metrics(patient, metric_type: Optional[str] = None) -> QuerySet:
    qs = HealthMetric.objects.filter(patient=patient)
    if metric_type:
        qs = qs.filter(type=metric_type)
    return qs.order_by('-date', '-time', '-id')


def record_metric(patient, *, type: str, value: float, date, time, unit: str = '', notes: str = '') -> HealthMetric:
    return HealthMetric.objects.create(
        patient=patient,
        type=type,
        value=value,
        unit=unit or default_unit(type),
        date=date,
        time=time,
        notes=notes or '',
    )


def series(patient, metric_type: str) -> list[dict]:
    """Chart points for one metric type, oldest first."""
    if metric_type not in METRIC_TYPES:
        raise ValueError(f'Unknown metric type: {metric_type}')
    qs = HealthMetric.objects.filter(patient=patient, type=metric_type).order_by('date', 'time', 'id')
    return [{
        'date': m.date.isoformat(),
        'time': m.time.strftime('%H:%M'),
        'value': m.value,
        'unit': m.unit,
    } for m in qs]


def serialize_metric(m: HealthMetric) -> dict:
    return {
        'id': m.id,
        'patientId': m.patient_id,
        'type': m.type,
        'value': m.value,
        'unit': m.unit,
        'date': m.date.isoformat(),
        'time': m.time.strftime('%H:%M'),
        'notes': m.notes,
    }
