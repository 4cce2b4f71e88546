"""
Database models for the telehealth backend.

These models capture the core concepts of the system such as users and
their doctor/patient profiles, declared availability, appointments with
their mock video meetings, medical reports, health metrics, emergency
contacts and per-user notification/privacy settings.  Where possible the
data model mirrors the fields exposed by the front-end types to simplify
the transformation to JSON responses.
"""
from __future__ import annotations

import datetime
import os
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


class User(AbstractUser):
    """Custom user model with a user type.

    The e-mail address is the login identifier; ``username`` always holds
    the lower-cased e-mail so Django's ``authenticate`` keeps working.
    The display name is stored in ``first_name``.
    """
    TYPE_PATIENT = 'patient'
    TYPE_DOCTOR = 'doctor'
    TYPE_ADMIN = 'admin'
    USER_TYPE_CHOICES = [
        (TYPE_PATIENT, 'Patient'),
        (TYPE_DOCTOR, 'Doctor'),
        (TYPE_ADMIN, 'Administrator'),
    ]
    email = models.EmailField(unique=True)
    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default=TYPE_PATIENT, db_index=True)
    phone_number = models.CharField(max_length=32, blank=True)
    profile_image = models.CharField(max_length=512, default='default-profile.jpg', blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.user_type})"


class DoctorProfile(models.Model):
    """Professional details for a user with the doctor type.

    New doctors start unverified; only verified doctors are listed in the
    public directory and can be booked.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=120, db_index=True)
    qualifications = models.JSONField(default=list, blank=True)
    experience = models.PositiveIntegerField(help_text="Years of experience")
    license_number = models.CharField(max_length=64, unique=True)
    license_authority = models.CharField(max_length=255, blank=True)
    license_document_url = models.URLField(max_length=512, blank=True)
    certificate_document_url = models.URLField(max_length=512, blank=True)
    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2)
    bio = models.CharField(max_length=500, blank=True)
    hospital = models.CharField(max_length=255, blank=True)
    is_verified = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.user.display_name} ({self.specialization})"


class PatientProfile(models.Model):
    """Stores patient specific information separate from the User model."""
    BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']
    BLOOD_TYPE_CHOICES = [(b, b) for b in BLOOD_TYPES]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    date_of_birth = models.DateField(null=True, blank=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True)
    height = models.FloatField(null=True, blank=True, help_text="cm")
    weight = models.FloatField(null=True, blank=True, help_text="kg")
    allergies = models.JSONField(default=list, blank=True)
    chronic_conditions = models.JSONField(default=list, blank=True)
    medications = models.JSONField(default=list, blank=True)
    # [{procedure, date, hospital}]
    surgeries = models.JSONField(default=list, blank=True)

    def __str__(self) -> str:
        return f"{self.user.display_name} (patient)"


class TimeSlot(models.Model):
    """A weekly availability interval declared by a doctor."""
    DAY_CHOICES = [(d, d) for d in WEEKDAYS]

    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='available_slots')
    day = models.CharField(max_length=9, choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        ordering = ['doctor', 'day', 'start_time']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'day', 'start_time'], name='uniq_slot_start_per_day'),
            models.CheckConstraint(condition=Q(start_time__lt=models.F('end_time')), name='slot_start_before_end'),
        ]

    def __str__(self) -> str:
        return f"{self.day} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class Appointment(models.Model):
    TYPE_VIRTUAL = 'virtual'
    TYPE_IN_PERSON = 'in-person'
    TYPE_CHOICES = ((TYPE_VIRTUAL, 'virtual'), (TYPE_IN_PERSON, 'in-person'))

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_CONFIRMED, 'confirmed'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_VIRTUAL)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reason = models.CharField(max_length=500)
    notes = models.TextField(blank=True)
    zoom_link = models.URLField(max_length=512, blank=True)
    zoom_meeting_id = models.CharField(max_length=32, blank=True)
    zoom_password = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['date', 'start_time']
        indexes = [
            models.Index(fields=['patient', 'date'], name='clinic_appo_patient_5d1f0a_idx'),
            models.Index(fields=['doctor', 'date'], name='clinic_appo_doctor__8c2e4b_idx'),
        ]
        constraints = [
            # one live booking per doctor slot; cancelled rows free the slot again
            models.UniqueConstraint(
                fields=['doctor', 'date', 'start_time'],
                condition=~Q(status='cancelled'),
                name='uniq_live_booking_per_slot',
            ),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} {self.date} {self.start_time:%H:%M} ({self.status})"


class VideoMeeting(models.Model):
    """A mock video-conferencing meeting; no real provider backs it."""
    meeting_id = models.CharField(max_length=16, unique=True)
    password = models.CharField(max_length=16)
    join_url = models.URLField(max_length=512)
    host_url = models.URLField(max_length=512)
    topic = models.CharField(max_length=255)
    start_time = models.CharField(max_length=32)
    duration = models.PositiveIntegerField(default=30)
    host = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='hosted_meetings')
    appointment = models.OneToOneField(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='meeting'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"meeting {self.meeting_id} ({self.topic})"


class MedicalReport(models.Model):
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_reports')
    author = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='authored_reports'
    )
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='reports'
    )
    title = models.CharField(max_length=255)
    date = models.DateField()
    report_type = models.CharField(max_length=120, db_index=True)
    symptoms = models.JSONField(default=list, blank=True)
    diagnosis = models.JSONField(default=list, blank=True)
    # {medications: [{name, dosage, frequency, duration}], procedures: [], recommendations: []}
    treatment = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    content = models.TextField(blank=True)
    is_private = models.BooleanField(default=False)
    doctor_name = models.CharField(max_length=255, blank=True)
    hospital = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'date'], name='clinic_medi_patient_3b7c21_idx')]

    def __str__(self) -> str:
        return f"{self.title} ({self.patient_id})"


def _attachment_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    return f"reports/{datetime.date.today().strftime('%Y/%m')}/{uuid.uuid4().hex}{ext}"


class ReportAttachment(models.Model):
    report = models.ForeignKey(MedicalReport, on_delete=models.CASCADE, related_name='attachments')
    name = models.CharField(max_length=255)
    file = models.FileField(upload_to=_attachment_upload, max_length=512)
    file_type = models.CharField(max_length=128, blank=True)
    size = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"att {self.id} report={self.report_id}"


class HealthMetric(models.Model):
    TYPE_CHOICES = [
        ('blood-pressure', 'Blood pressure'),
        ('heart-rate', 'Heart rate'),
        ('blood-sugar', 'Blood sugar'),
        ('temperature', 'Temperature'),
        ('weight', 'Weight'),
        ('oxygen-level', 'Oxygen level'),
    ]
    DEFAULT_UNITS = {
        'blood-pressure': 'mmHg',
        'heart-rate': 'bpm',
        'blood-sugar': 'mg/dL',
        'temperature': '°C',
        'weight': 'kg',
        'oxygen-level': '%',
    }

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='health_metrics')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    value = models.FloatField()
    unit = models.CharField(max_length=16, blank=True)
    date = models.DateField()
    time = models.TimeField()
    notes = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'type', 'date', 'time'], name='clinic_heal_patient_9e4d52_idx')]

    def __str__(self) -> str:
        return f"{self.type}={self.value}{self.unit} p={self.patient_id} @ {self.date}"


class EmergencyContact(models.Model):
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='emergency_contacts')
    name = models.CharField(max_length=150)
    relationship = models.CharField(max_length=64, blank=True)
    phone_number = models.CharField(max_length=32)
    email = models.EmailField(blank=True)
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-is_primary', 'name']

    def __str__(self) -> str:
        return f"{self.name} ({self.relationship}) for {self.patient_id}"


class UserSettings(models.Model):
    """Notification and privacy preferences; created lazily with defaults."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='settings')
    notify_email = models.BooleanField(default=True)
    notify_push = models.BooleanField(default=True)
    notify_sms = models.BooleanField(default=False)
    share_with_doctors = models.BooleanField(default=True)
    share_anonymized_data = models.BooleanField(default=False)
    allow_emergency_access = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"settings for {self.user_id}"


class PassportAccessCode(models.Model):
    """Short-lived code a patient hands to a doctor or emergency responder."""
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='passport_codes')
    code = models.CharField(max_length=16, unique=True)
    expires_at = models.DateTimeField()
    revoked = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"passport code for {self.patient_id} (revoked={self.revoked})"


class Notification(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=255)
    message = models.TextField()
    read = models.BooleanField(default=False)
    emailed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['user', 'read', 'created_at'], name='clinic_noti_user_id_4a8f10_idx')]

    def __str__(self) -> str:
        return f"notif {self.id} -> {self.user_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audi_action_7f3a2e_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audi_object__b61c09_idx'),
        ]
