import datetime

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import (
    Appointment, AuditEvent, EmergencyContact, MedicalReport, PassportAccessCode, User, UserSettings,
)
from clinic.tests.factories import PASSWORD, make_doctor, make_patient

pytestmark = pytest.mark.django_db


def _report(patient, **extra):
    fields = {'title': 'Blood panel', 'date': datetime.date(2024, 3, 1), 'report_type': 'Lab Results'}
    fields.update(extra)
    return MedicalReport.objects.create(patient=patient, **fields)


def _treats(doctor_profile, patient, status=Appointment.STATUS_CONFIRMED):
    return Appointment.objects.create(
        patient=patient, doctor=doctor_profile.user, date=timezone.localdate(),
        start_time=datetime.time(9, 0), end_time=datetime.time(9, 30), reason='Checkup', status=status,
    )


def test_login_wrong_password_is_401():
    make_patient(email='pat@example.com')
    r = APIClient().post(reverse('login_view'), {'email': 'pat@example.com', 'password': 'nope'}, format='json')
    assert r.status_code == 401
    assert r.data == {'ok': False, 'detail': 'Invalid credentials'}


def test_login_missing_fields_is_400():
    r = APIClient().post(reverse('login_view'), {'email': 'pat@example.com'}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False


def test_demo_password_does_not_open_other_accounts():
    make_patient(email='pat@example.com')
    r = APIClient().post(reverse('login_view'), {'email': 'pat@example.com', 'password': 'password123'},
                         format='json')
    assert r.status_code == 401


def test_register_cannot_create_admins():
    payload = {'name': 'Mallory', 'email': 'm@example.com', 'password': PASSWORD,
               'userType': 'admin', 'phoneNumber': '555'}
    r = APIClient().post(reverse('register_view'), payload, format='json')
    assert r.status_code == 400


def test_register_rejects_weak_password():
    payload = {'name': 'Weak', 'email': 'w@example.com', 'password': '123',
               'userType': 'patient', 'phoneNumber': '555'}
    r = APIClient().post(reverse('register_view'), payload, format='json')
    assert r.status_code == 400


def test_register_strips_markup():
    payload = {'name': '<b>Eve</b> Example', 'email': 'eve@example.com', 'password': PASSWORD,
               'userType': 'patient', 'phoneNumber': '555'}
    r = APIClient().post(reverse('register_view'), payload, format='json')
    assert r.status_code == 201
    assert r.data['user']['name'] == 'Eve Example'


def test_anonymous_requests_are_rejected():
    client = APIClient()
    assert client.get(reverse('appointments')).status_code == 401
    assert client.get(reverse('reports')).status_code == 401
    assert client.get(reverse('me_view')).status_code == 401


def test_patient_sees_only_own_reports(patient, client_for):
    other = make_patient(email='other@example.com')
    mine = _report(patient)
    theirs = _report(other)
    r = client_for(patient).get(reverse('reports'))
    assert [x['id'] for x in r.data['data']] == [mine.id]
    assert client_for(patient).get(reverse('report_detail', args=[theirs.id])).status_code == 404


def test_doctor_sees_reports_of_treated_patients_only(patient, doctor, client_for):
    stranger = make_patient(email='stranger@example.com')
    shared = _report(patient)
    private = _report(patient, title='Therapy notes', is_private=True)
    unrelated = _report(stranger)
    client = client_for(doctor.user)

    assert client.get(reverse('reports')).data['data'] == []

    _treats(doctor, patient)
    ids = {x['id'] for x in client.get(reverse('reports')).data['data']}
    assert ids == {shared.id}
    assert client.get(reverse('report_detail', args=[private.id])).status_code == 404
    assert client.get(reverse('report_detail', args=[unrelated.id])).status_code == 404


def test_cancelled_appointment_is_not_a_care_relationship(patient, doctor, client_for):
    _report(patient)
    _treats(doctor, patient, status=Appointment.STATUS_CANCELLED)
    assert client_for(doctor.user).get(reverse('reports')).data['data'] == []


def test_sharing_opt_out_hides_reports_from_doctors(patient, doctor, client_for):
    _report(patient)
    _treats(doctor, patient)
    r = client_for(patient).put(reverse('settings'), {'privacy': {'shareWithDoctors': False}}, format='json')
    assert r.status_code == 200
    assert r.data['settings']['privacy']['shareWithDoctors'] is False
    assert client_for(doctor.user).get(reverse('reports')).data['data'] == []


def test_doctor_authored_report_stays_visible_and_editable(patient, doctor, client_for):
    _treats(doctor, patient)
    client = client_for(doctor.user)
    payload = {'patientId': patient.id, 'title': 'Follow-up', 'date': '2024-04-02', 'reportType': 'Consultation',
               'diagnosis': 'Hypertension', 'isPrivate': True}
    r = client.post(reverse('reports'), payload, format='json')
    assert r.status_code == 201
    report_id = r.data['report']['id']
    assert r.data['report']['doctor'] == 'Dr. Gregory House'
    assert r.data['report']['diagnosis'] == ['Hypertension']

    r = client.put(reverse('report_detail', args=[report_id]), {'notes': 'Recheck in 3 months'}, format='json')
    assert r.status_code == 200
    assert r.data['report']['notes'] == 'Recheck in 3 months'


def test_doctor_cannot_write_reports_for_strangers(doctor, client_for):
    stranger = make_patient(email='stranger@example.com')
    payload = {'patientId': stranger.id, 'title': 'X', 'date': '2024-04-02', 'reportType': 'Consultation'}
    r = client_for(doctor.user).post(reverse('reports'), payload, format='json')
    assert r.status_code == 403


def test_doctor_cannot_edit_patient_authored_report(patient, doctor, client_for):
    _treats(doctor, patient)
    report = _report(patient)
    r = client_for(doctor.user).put(reverse('report_detail', args=[report.id]), {'notes': 'x'}, format='json')
    assert r.status_code == 403


def test_attachment_upload_limits(patient, client_for, settings):
    settings.UPLOAD_MAX_MB = 1
    report = _report(patient)
    client = client_for(patient)
    url = reverse('report_attachments', args=[report.id])

    ok = SimpleUploadedFile('scan.pdf', b'%PDF-1.4 test', content_type='application/pdf')
    r = client.post(url, {'file': ok}, format='multipart')
    assert r.status_code == 201
    assert r.data['attachment']['fileType'] == 'application/pdf'
    assert r.data['attachment']['sizeLabel'] == '13 B'

    big = SimpleUploadedFile('big.png', b'0' * (1024 * 1024 + 1), content_type='image/png')
    r = client.post(url, {'file': big}, format='multipart')
    assert r.status_code == 400
    assert r.data['detail'] == 'File is too large. Maximum size is 1 MB.'

    exe = SimpleUploadedFile('run.exe', b'MZ', content_type='application/x-msdownload')
    r = client.post(url, {'file': exe}, format='multipart')
    assert r.status_code == 400
    assert r.data['detail'].startswith('Invalid file type.')

    assert client.get(reverse('report_detail', args=[report.id])).data['report']['attachments'][0]['name'] == 'scan.pdf'


def test_passport_code_grants_doctor_access_without_private_reports(patient, doctor, client_for):
    _report(patient, title='Public')
    _report(patient, title='Secret', is_private=True)
    code = client_for(patient).post(reverse('passport_access_codes')).data['code']
    assert len(code) == 8

    r = client_for(doctor.user).post(reverse('passport_access'), {'code': code.lower()}, format='json')
    assert r.status_code == 200
    titles = [x['title'] for x in r.data['passport']['recentReports']]
    assert titles == ['Public']
    assert r.data['passport']['profile']['bloodType'] == 'O+'


def test_new_code_revokes_previous(patient, doctor, client_for):
    client = client_for(patient)
    first = client.post(reverse('passport_access_codes')).data['code']
    second = client.post(reverse('passport_access_codes')).data['code']
    assert first != second
    assert PassportAccessCode.objects.get(code=first).revoked
    r = client_for(doctor.user).post(reverse('passport_access'), {'code': first}, format='json')
    assert r.status_code == 404


def test_passport_respects_sharing_setting(patient, doctor, client_for):
    code = client_for(patient).post(reverse('passport_access_codes')).data['code']
    UserSettings.objects.filter(user=patient).update(share_with_doctors=False)
    r = client_for(doctor.user).post(reverse('passport_access'), {'code': code}, format='json')
    assert r.status_code == 403


def test_patients_cannot_use_access_codes(patient, client_for):
    code = client_for(patient).post(reverse('passport_access_codes')).data['code']
    r = client_for(patient).post(reverse('passport_access'), {'code': code}, format='json')
    assert r.status_code == 403


def test_emergency_view(patient, client_for):
    EmergencyContact.objects.create(patient=patient, name='Sam', phone_number='555-1', is_primary=True)
    code = client_for(patient).post(reverse('passport_access_codes')).data['code']
    r = APIClient().get(reverse('passport_emergency', args=[code]))
    assert r.status_code == 200
    assert r.data['emergency']['allergies'] == ['Peanuts']
    assert r.data['emergency']['emergencyContacts'][0]['name'] == 'Sam'
    assert 'recentReports' not in r.data['emergency']

    UserSettings.objects.filter(user=patient).update(allow_emergency_access=False)
    assert APIClient().get(reverse('passport_emergency', args=[code])).status_code == 403


def test_expired_code_is_not_found(patient):
    PassportAccessCode.objects.create(
        patient=patient, code='EXPIRED1', expires_at=timezone.now() - datetime.timedelta(minutes=1),
    )
    r = APIClient().get(reverse('passport_emergency', args=['EXPIRED1']))
    assert r.status_code == 404


def test_metrics_are_patient_only(patient, doctor, client_for):
    r = client_for(doctor.user).get(reverse('metrics'))
    assert r.status_code == 403

    client = client_for(patient)
    payload = {'type': 'heart-rate', 'value': 72, 'date': '2024-05-01', 'time': '08:30'}
    r = client.post(reverse('metrics'), payload, format='json')
    assert r.status_code == 201
    assert r.data['metric']['unit'] == 'bpm'
    metric_id = r.data['metric']['id']

    other = make_patient(email='other@example.com')
    assert client_for(other).delete(reverse('metric_detail', args=[metric_id])).status_code == 404
    assert client.delete(reverse('metric_detail', args=[metric_id])).status_code == 200


def test_metric_series_rejects_unknown_type(patient, client_for):
    r = client_for(patient).get(reverse('metric_series'), {'type': 'mood'})
    assert r.status_code == 400


def test_export_is_patient_only(patient, doctor, client_for):
    assert client_for(doctor.user).get(reverse('export')).status_code == 403
    r = client_for(patient).get(reverse('export'), {'format': 'csv'})
    assert r.status_code == 200
    assert r['Content-Disposition'] == 'attachment; filename="health-data-export.csv"'
    assert r.content.decode().splitlines()[0] == 'Category,Key,Value'
    assert client_for(patient).get(reverse('export'), {'format': 'xml'}).status_code == 400


def test_settings_reject_unknown_keys(patient, client_for):
    client = client_for(patient)
    r = client.get(reverse('settings'))
    assert r.data['settings']['notifications'] == {'email': True, 'push': True, 'sms': False}
    r = client.put(reverse('settings'), {'privacy': {'sellData': True}}, format='json')
    assert r.status_code == 400
    r = client.put(reverse('settings'), {'notifications': {'sms': 'yes'}}, format='json')
    assert r.status_code == 400


def test_notifications_are_private(patient, client_for):
    other = make_patient(email='other@example.com')
    n = other.notifications.create(title='Hi', message='Private')
    client = client_for(patient)
    assert client.get(reverse('notifications')).data['data'] == []
    assert client.post(reverse('notification_read', args=[n.id])).status_code == 404
    assert client_for(other).post(reverse('notification_read', args=[n.id])).status_code == 200
    assert client_for(other).get(reverse('notifications')).data['unread'] == 0


def test_unverified_doctor_hidden_from_directory():
    pending = make_doctor(email='pending@example.com', verified=False)
    r = APIClient().get(reverse('doctor_list'), {'includeUnverified': 'true'})
    assert pending.id not in [d['id'] for d in r.data['data']]


def test_failed_login_is_audited_with_request_id():
    r = APIClient().post(reverse('login_view'), {'email': 'ghost@example.com', 'password': 'x'}, format='json',
                         HTTP_X_REQUEST_ID='req-audit-1')
    assert r.status_code == 401
    event = AuditEvent.objects.get(action='login')
    assert event.user is None
    assert event.detail['result'] == 'fail'
    assert event.detail['requestId'] == 'req-audit-1'


def test_report_text_is_stored_as_typed(patient, client_for):
    client = client_for(patient)
    payload = {'title': 'Glucose < 100 & HbA1c ok', 'date': '2024-04-02', 'reportType': 'Lab Results',
               'notes': 'fasting glucose < 100 & "stable"', 'content': '<script>alert(1)</script>Normal'}
    r = client.post(reverse('reports'), payload, format='json')
    assert r.status_code == 201
    report = MedicalReport.objects.get(id=r.data['report']['id'])
    assert report.title == 'Glucose < 100 & HbA1c ok'
    assert report.notes == 'fasting glucose < 100 & "stable"'
    assert report.content == 'alert(1)Normal'
    assert r.data['report']['notes'] == 'fasting glucose < 100 & "stable"'

    html = client.get(reverse('export'), {'format': 'pdf'}).content.decode()
    assert 'Glucose &lt; 100 &amp; HbA1c ok' in html
    assert '&amp;lt;' not in html


def test_register_rejects_demo_emails(settings):
    settings.DEMO_ACCOUNTS_ENABLE = True
    payload = {'name': 'Mallory', 'email': 'John@Example.com', 'password': PASSWORD,
               'userType': 'patient', 'phoneNumber': '555'}
    r = APIClient().post(reverse('register_view'), payload, format='json')
    assert r.status_code == 400
    assert not User.objects.filter(email='john@example.com').exists()


def test_email_change_cannot_claim_demo_address(patient, client_for, settings):
    settings.DEMO_ACCOUNTS_ENABLE = True
    r = client_for(patient).put(reverse('user_details'), {'email': 'dr.smith@example.com'}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'This email is reserved for the demo accounts'


def test_demo_emails_are_open_when_demo_accounts_are_off(settings):
    settings.DEMO_ACCOUNTS_ENABLE = False
    payload = {'name': 'John Doe', 'email': 'john@example.com', 'password': PASSWORD,
               'userType': 'patient', 'phoneNumber': '555'}
    assert APIClient().post(reverse('register_view'), payload, format='json').status_code == 201


def test_demo_login_keeps_profile_edits(settings):
    settings.DEMO_ACCOUNTS_ENABLE = True
    creds = {'email': 'john@example.com', 'password': 'password123'}
    r = APIClient().post(reverse('login_view'), creds, format='json')
    assert r.status_code == 200

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
    r = client.put(reverse('user_profile'), {'allergies': ['Latex'], 'bloodType': 'O-'}, format='json')
    assert r.status_code == 200
    r = client.put(reverse('user_details'), {'name': 'Johnny Doe', 'email': 'john@example.com'}, format='json')
    assert r.status_code == 200

    again = APIClient().post(reverse('login_view'), creds, format='json')
    assert again.status_code == 200
    assert again.data['user']['name'] == 'Johnny Doe'
    assert again.data['user']['allergies'] == ['Latex']
    assert again.data['user']['bloodType'] == 'O-'
