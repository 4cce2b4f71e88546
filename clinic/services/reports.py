from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Exists, OuterRef, Q, QuerySet

from clinic.models import Appointment, MedicalReport, ReportAttachment, UserSettings

User = get_user_model()


def has_care_relationship(doctor, patient_id: int) -> bool:
    """A doctor treats a patient once a non-cancelled appointment links them."""
    return Appointment.objects.filter(doctor=doctor, patient_id=patient_id).exclude(
        status=Appointment.STATUS_CANCELLED
    ).exists()


def visible_reports(user) -> QuerySet:
    qs = MedicalReport.objects.select_related('patient', 'author').prefetch_related('attachments')
    if user.user_type == 'admin':
        return qs
    if user.user_type == 'patient':
        return qs.filter(patient=user)
    treated = Appointment.objects.filter(doctor=user, patient=OuterRef('patient')).exclude(
        status=Appointment.STATUS_CANCELLED
    )
    # missing settings rows mean defaults, and sharing defaults to on
    opted_out = UserSettings.objects.filter(user=OuterRef('patient'), share_with_doctors=False)
    return qs.filter(
        Q(author=user)
        | (Q(is_private=False) & Exists(treated) & ~Exists(opted_out))
    )


def can_view(user, report: MedicalReport) -> bool:
    return visible_reports(user).filter(pk=report.pk).exists()


def can_modify(user, report: MedicalReport) -> bool:
    return user.id in (report.patient_id, report.author_id)


def format_file_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    if num_bytes < 1024 * 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):.1f} MB"
    return f"{num_bytes / (1024 * 1024 * 1024):.1f} GB"


def _type_matches(content_type: str, allowed: str) -> bool:
    # entries ending in "/" allow a whole family, e.g. "image/"
    if allowed.endswith('/'):
        return content_type.startswith(allowed)
    return content_type == allowed


def validate_upload(f, allowed_types: Optional[list[str]] = None, max_size_mb: Optional[int] = None) -> None:
    """Reject uploads that are too large or whose content type is not allowed."""
    allowed_types = settings.ALLOWED_UPLOAD_TYPES if allowed_types is None else allowed_types
    max_size_mb = settings.UPLOAD_MAX_MB if max_size_mb is None else max_size_mb
    if (f.size or 0) > max_size_mb * 1024 * 1024:
        raise ValueError(f'File is too large. Maximum size is {max_size_mb} MB.')
    ctype = getattr(f, 'content_type', '') or ''
    if allowed_types and not any(_type_matches(ctype, allowed) for allowed in allowed_types):
        raise ValueError(f"Invalid file type. Allowed types: {', '.join(allowed_types)}")


def add_attachment(report: MedicalReport, f) -> ReportAttachment:
    validate_upload(f)
    return ReportAttachment.objects.create(
        report=report,
        name=getattr(f, 'name', '') or 'attachment',
        file=f,
        file_type=getattr(f, 'content_type', '') or '',
        size=f.size or 0,
    )


def serialize_attachment(a: ReportAttachment) -> dict:
    return {
        'id': a.id,
        'name': a.name,
        'fileUrl': a.file.url if a.file else '',
        'fileType': a.file_type,
        'size': a.size,
        'sizeLabel': format_file_size(a.size),
    }


def serialize_report(r: MedicalReport) -> dict:
    return {
        'id': r.id,
        'patientId': r.patient_id,
        'doctorId': r.author_id,
        'appointmentId': r.appointment_id,
        'title': r.title,
        'date': r.date.isoformat(),
        'reportType': r.report_type,
        'symptoms': list(r.symptoms or []),
        'diagnosis': list(r.diagnosis or []),
        'treatment': r.treatment or {},
        'notes': r.notes,
        'content': r.content,
        'attachments': [serialize_attachment(a) for a in r.attachments.all()],
        'isPrivate': r.is_private,
        'doctor': r.doctor_name,
        'hospital': r.hospital,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
    }
