"""
Management command to populate the database with sample data for the demo accounts.
"""
import datetime

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment, EmergencyContact, HealthMetric, MedicalReport
from clinic.services.accounts import DEMO_DOCTOR, DEMO_PATIENT, ensure_demo_account
from clinic.services.appointments import weekday_name
from clinic.services.meetings import schedule_for_appointment


def _next_weekday(start: datetime.date, weekday: int) -> datetime.date:
    return start + datetime.timedelta(days=(weekday - start.weekday()) % 7 or 7)


def _previous_weekday(start: datetime.date, weekday: int) -> datetime.date:
    return start - datetime.timedelta(days=(start.weekday() - weekday) % 7 or 7)


class Command(BaseCommand):
    help = 'Populate database with sample appointments, reports, metrics and contacts'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Creating sample data...')
        doctor = ensure_demo_account(DEMO_DOCTOR['email'])
        patient = ensure_demo_account(DEMO_PATIENT['email'])

        self.create_appointments(doctor, patient)
        self.create_reports(doctor, patient)
        self.create_metrics(patient)
        self.create_contacts(patient)

        self.stdout.write(self.style.SUCCESS('Sample data created.'))

    def create_appointments(self, doctor, patient):
        """Book sample appointments into the demo doctor's declared slots."""
        today = timezone.localdate()
        samples = [
            (_previous_weekday(today, 0), Appointment.TYPE_VIRTUAL, Appointment.STATUS_COMPLETED, 'Annual checkup'),
            (_next_weekday(today, 2), Appointment.TYPE_IN_PERSON, Appointment.STATUS_PENDING,
             'Follow-up appointment'),
            (_next_weekday(today, 4), Appointment.TYPE_VIRTUAL, Appointment.STATUS_CONFIRMED,
             'Blood pressure review'),
        ]
        profile = getattr(doctor, 'doctor_profile', None)
        if profile is None:
            self.stdout.write(self.style.WARNING(f'  {doctor.email} has no doctor profile, skipping appointments'))
            return
        for date, kind, status, reason in samples:
            slot = profile.available_slots.filter(day=weekday_name(date)).order_by('start_time').first()
            if slot is None:
                self.stdout.write(self.style.WARNING(f'  no {weekday_name(date)} slot, skipping "{reason}"'))
                continue
            appt, created = Appointment.objects.get_or_create(
                doctor=doctor,
                date=date,
                start_time=slot.start_time,
                defaults={
                    'patient': patient,
                    'end_time': slot.end_time,
                    'type': kind,
                    'status': status,
                    'reason': reason,
                },
            )
            if created and kind == Appointment.TYPE_VIRTUAL and status != Appointment.STATUS_PENDING:
                schedule_for_appointment(appt, doctor.display_name)
        self.stdout.write(f'  appointments: {Appointment.objects.filter(patient=patient).count()}')

    def create_reports(self, doctor, patient):
        today = timezone.localdate()
        samples = [
            {
                'title': 'Annual Physical Examination',
                'date': today - datetime.timedelta(days=60),
                'report_type': 'Physical Examination',
                'notes': 'Patient is in good health overall.',
                'content': 'Detailed examination results...',
                'doctor_name': doctor.display_name,
                'hospital': 'General Hospital',
                'author': doctor,
            },
            {
                'title': 'Blood Test Results',
                'date': today - datetime.timedelta(days=30),
                'report_type': 'Laboratory',
                'notes': 'All values within normal range.',
                'content': 'Detailed blood test results...',
                'doctor_name': 'Dr. John Brown',
                'hospital': 'City Medical Center',
                'author': None,
            },
        ]
        for data in samples:
            MedicalReport.objects.get_or_create(patient=patient, title=data.pop('title'), defaults=data)
        self.stdout.write(f'  reports: {MedicalReport.objects.filter(patient=patient).count()}')

    def create_metrics(self, patient):
        if HealthMetric.objects.filter(patient=patient).exists():
            return
        today = timezone.localdate()
        rows = []
        for offset in range(7, 0, -1):
            day = today - datetime.timedelta(days=offset)
            rows += [
                HealthMetric(patient=patient, type='blood-pressure', value=118 + offset % 4, unit='mmHg',
                             date=day, time=datetime.time(9, 0), notes='Morning reading'),
                HealthMetric(patient=patient, type='heart-rate', value=70 + offset % 5, unit='bpm',
                             date=day, time=datetime.time(9, 5), notes='Resting'),
                HealthMetric(patient=patient, type='oxygen-level', value=97 + offset % 2, unit='%',
                             date=day, time=datetime.time(9, 10)),
            ]
        HealthMetric.objects.bulk_create(rows)
        self.stdout.write(f'  metrics: {len(rows)}')

    def create_contacts(self, patient):
        EmergencyContact.objects.get_or_create(
            patient=patient, name='Jane Doe',
            defaults={'relationship': 'Spouse', 'phone_number': '555-222-3333',
                      'email': 'jane@example.com', 'is_primary': True},
        )
        EmergencyContact.objects.get_or_create(
            patient=patient, name='Robert Doe',
            defaults={'relationship': 'Brother', 'phone_number': '555-444-5555'},
        )
