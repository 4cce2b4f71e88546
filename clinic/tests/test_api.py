"""
Integration tests for the telehealth API.

These tests exercise the main flows end to end: registration and login,
the doctor directory, booking and the appointment lifecycle including the
mock video meeting issued on confirmation.  They use Django REST
framework's APIClient within the APITestCase base class.

To run the tests:

```
pytest -q clinic/tests
```
"""

import datetime

from django.core import mail
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import Appointment, DoctorProfile, Notification, User, UserSettings, VideoMeeting
from clinic.tests.factories import PASSWORD, make_admin, make_doctor, make_patient, next_weekday


class AuthAPITests(APITestCase):
    def test_patient_registration_returns_tokens_and_profile(self):
        payload = {
            'name': 'Alice Patient',
            'email': 'Alice@Example.com',
            'password': PASSWORD,
            'userType': 'patient',
            'phoneNumber': '555-000-1111',
            'bloodType': 'B+',
            'height': 168,
            'allergies': 'Peanuts, , Dust',
        }
        r = self.client.post(reverse('register_view'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data['token'])
        self.assertTrue(r.data['jwt_access'])
        self.assertEqual(r.data['user']['email'], 'alice@example.com')
        self.assertEqual(r.data['user']['allergies'], ['Peanuts', 'Dust'])
        user = User.objects.get(email='alice@example.com')
        self.assertEqual(user.username, 'alice@example.com')
        self.assertTrue(UserSettings.objects.filter(user=user).exists())

    def test_doctor_registration_starts_unverified(self):
        payload = {
            'name': 'Dr. Bob',
            'email': 'bob@example.com',
            'password': PASSWORD,
            'userType': 'doctor',
            'phoneNumber': '555-000-2222',
            'specialization': 'Dermatology',
            'experience': 4,
            'licenseNumber': 'DERM-1',
            'consultationFee': '80.00',
            'qualifications': [{'degree': 'MD', 'institution': 'State U', 'year': 2015}],
        }
        r = self.client.post(reverse('register_view'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertFalse(r.data['user']['isVerified'])
        profile = DoctorProfile.objects.get(user__email='bob@example.com')
        self.assertFalse(profile.is_verified)
        self.assertEqual(profile.qualifications[0]['degree'], 'MD')

    def test_doctor_registration_requires_license(self):
        payload = {
            'name': 'Dr. Bob',
            'email': 'bob@example.com',
            'password': PASSWORD,
            'userType': 'doctor',
            'phoneNumber': '555-000-2222',
            'specialization': 'Dermatology',
            'experience': 4,
            'consultationFee': '80.00',
        }
        r = self.client.post(reverse('register_view'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='bob@example.com').exists())

    def test_duplicate_email_is_rejected_case_insensitively(self):
        make_patient(email='taken@example.com')
        payload = {
            'name': 'Someone', 'email': 'TAKEN@example.com', 'password': PASSWORD,
            'userType': 'patient', 'phoneNumber': '555',
        }
        r = self.client.post(reverse('register_view'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'This email is already registered')

    def test_login_me_and_logout(self):
        make_patient(email='pat@example.com')
        r = self.client.post(reverse('login_view'), {'email': 'PAT@example.com', 'password': PASSWORD}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        token, refresh = r.data['token'], r.data['jwt_refresh']

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
        me = client.get(reverse('me_view'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['user']['userType'], 'patient')
        self.assertEqual(me.data['user']['bloodType'], None)

        bearer = APIClient()
        bearer.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
        self.assertEqual(bearer.get(reverse('me_view')).status_code, status.HTTP_200_OK)

        out = client.post(reverse('logout_view'), {'refresh': refresh}, format='json')
        self.assertEqual(out.status_code, status.HTTP_200_OK)
        self.assertEqual(out.data['blacklisted'], 1)
        # the legacy token is gone and the refresh token is blacklisted
        self.assertEqual(client.get(reverse('me_view')).status_code, status.HTTP_401_UNAUTHORIZED)
        again = self.client.post(reverse('jwt_refresh_view'), {'refresh': refresh}, format='json')
        self.assertEqual(again.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_issues_a_working_access_token(self):
        make_patient(email='pat@example.com')
        r = self.client.post(reverse('login_view'), {'email': 'pat@example.com', 'password': PASSWORD}, format='json')
        fresh = self.client.post(reverse('jwt_refresh_view'), {'refresh': r.data['jwt_refresh']}, format='json')
        self.assertEqual(fresh.status_code, status.HTTP_200_OK)
        self.assertTrue(fresh.data['ok'])

        bearer = APIClient()
        bearer.credentials(HTTP_AUTHORIZATION=f"Bearer {fresh.data['jwt_access']}")
        me = bearer.get(reverse('me_view'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['user']['email'], 'pat@example.com')

        bad = self.client.post(reverse('jwt_refresh_view'), {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(bad.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_demo_accounts_are_created_on_first_login(self):
        r = self.client.post(reverse('login_view'), {'email': 'dr.smith@example.com', 'password': 'password123'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['user']['specialization'], 'Cardiology')
        self.assertTrue(r.data['user']['isVerified'])
        profile = DoctorProfile.objects.get(user__email='dr.smith@example.com')
        self.assertEqual(
            sorted(profile.available_slots.values_list('day', flat=True)),
            ['Friday', 'Monday', 'Wednesday'],
        )

        # second login reuses the same account
        r2 = self.client.post(reverse('login_view'), {'email': 'dr.smith@example.com', 'password': 'password123'},
                              format='json')
        self.assertEqual(r2.status_code, status.HTTP_200_OK)
        self.assertEqual(User.objects.filter(email='dr.smith@example.com').count(), 1)
        self.assertEqual(profile.available_slots.count(), 3)

        patient = self.client.post(reverse('login_view'), {'email': 'john@example.com', 'password': 'password123'},
                                   format='json')
        self.assertEqual(patient.data['user']['bloodType'], 'A+')
        self.assertEqual(patient.data['user']['allergies'], ['Peanuts', 'Penicillin'])


class DoctorDirectoryTests(APITestCase):
    def setUp(self) -> None:
        self.verified = make_doctor(email='cardio@example.com', name='Dr. Heart')
        self.other = make_doctor(email='skin@example.com', name='Dr. Skin', specialization='Dermatology')
        self.pending = make_doctor(email='new@example.com', name='Dr. Newcomer', verified=False)
        self.admin = make_admin()

    def test_public_list_shows_only_verified_doctors(self):
        r = self.client.get(reverse('doctor_list'))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        ids = {d['id'] for d in r.data['data']}
        self.assertEqual(ids, {self.verified.id, self.other.id})

    def test_filters_by_specialization_and_name(self):
        r = self.client.get(reverse('doctor_list'), {'specialization': 'dermatology'})
        self.assertEqual([d['id'] for d in r.data['data']], [self.other.id])
        r = self.client.get(reverse('doctor_list'), {'q': 'heart'})
        self.assertEqual([d['id'] for d in r.data['data']], [self.verified.id])

    def test_pagination(self):
        r = self.client.get(reverse('doctor_list'), {'page': 2, 'pageSize': 1})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([d['id'] for d in r.data['data']], [self.other.id])
        self.assertEqual(r.data['pagination'], {'total': 2, 'page': 2, 'pageSize': 1})

        r = self.client.get(reverse('doctor_list'))
        self.assertEqual(r.data['pagination'], {'total': 2, 'page': 1, 'pageSize': 2})

    def test_admin_verification_refreshes_cached_directory(self):
        self.client.get(reverse('doctor_list'))  # warm the cache
        admin = APIClient()
        admin.force_authenticate(user=self.admin)
        r = admin.post(reverse('doctor_verify', args=[self.pending.id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        ids = {d['id'] for d in self.client.get(reverse('doctor_list')).data['data']}
        self.assertIn(self.pending.id, ids)

    def test_only_admins_verify(self):
        client = APIClient()
        client.force_authenticate(user=self.verified.user)
        r = client.post(reverse('doctor_verify', args=[self.pending.id]))
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_includes_slots_sorted_by_weekday(self):
        r = self.client.get(reverse('doctor_detail', args=[self.verified.id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        days = [s['day'] for s in r.data['doctor']['availableSlots']]
        self.assertEqual(days, ['Monday', 'Monday', 'Wednesday'])
        self.assertEqual(r.data['doctor']['availableSlots'][0]['startTime'], '09:00')

    def test_unverified_detail_is_hidden(self):
        r = self.client.get(reverse('doctor_detail', args=[self.pending.id]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_doctor_replaces_availability(self):
        client = APIClient()
        client.force_authenticate(user=self.verified.user)
        payload = {'availableSlots': [
            {'day': 'Tuesday', 'startTime': '10:00', 'endTime': '11:00'},
            {'day': 'Tuesday', 'startTime': '11:00', 'endTime': '12:00'},
        ]}
        r = client.put(reverse('doctor_availability_update'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(self.verified.available_slots.count(), 2)

        overlapping = {'availableSlots': [
            {'day': 'Tuesday', 'startTime': '10:00', 'endTime': '11:00'},
            {'day': 'Tuesday', 'startTime': '10:30', 'endTime': '11:30'},
        ]}
        r = client.put(reverse('doctor_availability_update'), overlapping, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'Overlapping slots on Tuesday')
        self.assertEqual(self.verified.available_slots.count(), 2)

        backwards = {'availableSlots': [{'day': 'Tuesday', 'startTime': '11:00', 'endTime': '10:00'}]}
        r = client.put(reverse('doctor_availability_update'), backwards, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)


class AppointmentFlowTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.other_patient = make_patient(email='other@example.com', name='Other Patient')
        self.admin = make_admin()
        self.monday = next_weekday(0)

    def as_user(self, user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def book(self, user=None, **overrides):
        payload = {
            'doctorId': self.doctor.id,
            'date': self.monday.isoformat(),
            'startTime': '09:00',
            'endTime': '09:30',
            'type': 'virtual',
            'reason': 'Chest pain',
        }
        payload.update(overrides)
        return self.as_user(user or self.patient).post(reverse('appointments'), payload, format='json')

    def test_booking_marks_slot_booked(self):
        r = self.book()
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data['appointment']['status'], 'pending')
        slots = self.client.get(reverse('doctor_availability', args=[self.doctor.id]),
                                {'date': self.monday.isoformat()}).data['data']
        booked = {s['startTime']: s['isBooked'] for s in slots}
        self.assertEqual(booked, {'09:00': True, '09:30': False})

    def test_double_booking_is_rejected(self):
        self.assertEqual(self.book().status_code, status.HTTP_201_CREATED)
        r = self.book(user=self.other_patient)
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'This time slot is already booked')

    def test_cancelled_booking_frees_the_slot(self):
        appt_id = self.book().data['appointment']['id']
        r = self.as_user(self.patient).put(reverse('appointment_cancel', args=[appt_id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(self.book(user=self.other_patient).status_code, status.HTTP_201_CREATED)

    def test_booking_outside_declared_slots_fails(self):
        r = self.book(startTime='09:00', endTime='10:00')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'The doctor is not available at the selected time')
        r = self.book(date=next_weekday(1).isoformat())
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_booking_in_the_past_fails(self):
        last_monday = self.monday - datetime.timedelta(days=7)
        if last_monday == datetime.date.today():
            last_monday -= datetime.timedelta(days=7)
        r = self.book(date=last_monday.isoformat())
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unverified_doctor_cannot_be_booked(self):
        self.doctor.is_verified = False
        self.doctor.save()
        r = self.book()
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'This doctor is not accepting appointments')

    def test_doctors_cannot_book(self):
        r = self.book(user=self.doctor.user)
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_confirming_virtual_appointment_issues_meeting_and_notifies(self):
        appt_id = self.book().data['appointment']['id']
        mail.outbox.clear()
        r = self.as_user(self.doctor.user).put(reverse('appointment_detail', args=[appt_id]),
                                               {'status': 'confirmed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        appt = r.data['appointment']
        self.assertEqual(appt['status'], 'confirmed')
        self.assertTrue(appt['zoomLink'].startswith('https://zoom.us/j/'))
        self.assertIn(f"pwd={appt['zoomPassword']}", appt['zoomLink'])

        meeting = VideoMeeting.objects.get(appointment_id=appt_id)
        self.assertEqual(meeting.topic, f'Medical Consultation: {self.doctor.user.display_name}')
        self.assertEqual(meeting.start_time, f'{self.monday.isoformat()}T09:00:00')
        self.assertEqual(meeting.duration, 30)

        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual({m.to[0] for m in mail.outbox}, {self.patient.email, self.doctor.user.email})
        self.assertIn(meeting.join_url, mail.outbox[0].body)
        self.assertTrue(Notification.objects.filter(user=self.patient, emailed=True).exists())

    def test_email_respects_notification_preference(self):
        UserSettings.objects.filter(user=self.patient).update(notify_email=False)
        appt_id = self.book().data['appointment']['id']
        mail.outbox.clear()
        self.as_user(self.doctor.user).put(reverse('appointment_detail', args=[appt_id]),
                                           {'status': 'confirmed'}, format='json')
        self.assertEqual([m.to[0] for m in mail.outbox], [self.doctor.user.email])
        self.assertTrue(Notification.objects.filter(user=self.patient, emailed=False).exists())

    def test_patient_cannot_confirm(self):
        appt_id = self.book().data['appointment']['id']
        r = self.as_user(self.patient).put(reverse('appointment_detail', args=[appt_id]),
                                           {'status': 'confirmed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_terminal_status_cannot_change(self):
        appt_id = self.book().data['appointment']['id']
        doctor = self.as_user(self.doctor.user)
        url = reverse('appointment_detail', args=[appt_id])
        self.assertEqual(doctor.put(url, {'status': 'confirmed'}, format='json').status_code, 200)
        self.assertEqual(doctor.put(url, {'status': 'completed'}, format='json').status_code, 200)
        r = self.as_user(self.patient).put(reverse('appointment_cancel', args=[appt_id]))
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        r = doctor.put(url, {'status': 'pending'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_listing_is_scoped_and_windowed(self):
        appt_id = self.book().data['appointment']['id']
        Appointment.objects.create(
            patient=self.other_patient, doctor=self.doctor.user, date=self.monday,
            start_time=datetime.time(9, 30), end_time=datetime.time(10, 0), reason='Other',
        )
        mine = self.as_user(self.patient).get(reverse('appointments')).data['data']
        self.assertEqual([a['id'] for a in mine], [appt_id])
        self.assertEqual(len(self.as_user(self.doctor.user).get(reverse('appointments')).data['data']), 2)
        self.assertEqual(len(self.as_user(self.admin).get(reverse('appointments')).data['data']), 2)

        upcoming = self.as_user(self.patient).get(reverse('appointments'), {'window': 'upcoming'}).data['data']
        self.assertEqual(len(upcoming), 1)
        past = self.as_user(self.patient).get(reverse('appointments'), {'window': 'past'}).data['data']
        self.assertEqual(past, [])

        r = self.as_user(self.other_patient).get(reverse('appointment_detail', args=[appt_id]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_rules(self):
        appt_id = self.book().data['appointment']['id']
        url = reverse('appointment_detail', args=[appt_id])
        self.as_user(self.doctor.user).put(url, {'status': 'confirmed'}, format='json')
        self.assertEqual(self.as_user(self.patient).delete(url).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.as_user(self.admin).delete(url).status_code, status.HTTP_200_OK)
        self.assertFalse(Appointment.objects.filter(id=appt_id).exists())

    def test_meeting_endpoint(self):
        virtual_id = self.book().data['appointment']['id']
        in_person_id = self.book(startTime='09:30', endTime='10:00', type='in-person').data['appointment']['id']
        client = self.as_user(self.patient)

        r = client.post(reverse('appointment_meeting', args=[virtual_id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        first = r.data['meeting']['meetingId']
        again = client.post(reverse('appointment_meeting', args=[virtual_id]))
        self.assertEqual(again.data['meeting']['meetingId'], first)

        r = client.post(reverse('appointment_meeting', args=[in_person_id]))
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        detail = self.as_user(self.doctor.user).get(reverse('meeting_detail', args=[first]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        hidden = self.as_user(self.other_patient).get(reverse('meeting_detail', args=[first]))
        self.assertEqual(hidden.status_code, status.HTTP_404_NOT_FOUND)

    def test_doctor_creates_meeting_for_appointment(self):
        virtual_id = self.book().data['appointment']['id']
        payload = {'topic': 'Follow-up call', 'startTime': f'{self.monday.isoformat()}T09:00:00',
                   'duration': 20, 'appointmentId': virtual_id}
        doctor = self.as_user(self.doctor.user)

        r = doctor.post(reverse('meeting_create'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        meeting = r.data['meeting']
        self.assertEqual(meeting['appointmentId'], virtual_id)
        self.assertEqual(meeting['duration'], 20)
        appt = Appointment.objects.get(id=virtual_id)
        self.assertEqual(appt.zoom_link, meeting['joinUrl'])
        self.assertEqual(appt.zoom_meeting_id, meeting['meetingId'])

        again = doctor.post(reverse('meeting_create'), payload, format='json')
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(VideoMeeting.objects.filter(appointment_id=virtual_id).count(), 1)

    def test_meeting_create_rejects_in_person_and_cancelled(self):
        in_person_id = self.book(type='in-person').data['appointment']['id']
        cancelled_id = self.book(startTime='09:30', endTime='10:00').data['appointment']['id']
        Appointment.objects.filter(id=cancelled_id).update(status=Appointment.STATUS_CANCELLED)
        doctor = self.as_user(self.doctor.user)
        base = {'topic': 'Call', 'startTime': f'{self.monday.isoformat()}T09:00:00'}

        r = doctor.post(reverse('meeting_create'), {**base, 'appointmentId': in_person_id}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'Only virtual appointments have a video meeting')
        r = doctor.post(reverse('meeting_create'), {**base, 'appointmentId': cancelled_id}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['detail'], 'The appointment is cancelled')
        self.assertFalse(VideoMeeting.objects.exists())

    def test_meeting_create_permissions(self):
        virtual_id = self.book().data['appointment']['id']
        payload = {'topic': 'Call', 'startTime': f'{self.monday.isoformat()}T09:00:00', 'appointmentId': virtual_id}
        r = self.as_user(self.patient).post(reverse('meeting_create'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

        stranger = make_doctor(email='stranger@example.com', name='Dr. Stranger')
        r = self.as_user(stranger.user).post(reverse('meeting_create'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

        standalone = {'topic': 'Team sync', 'startTime': '2030-01-07T10:00:00'}
        r = self.as_user(self.admin).post(reverse('meeting_create'), standalone, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(r.data['meeting']['appointmentId'])

    def test_meeting_details_are_read_from_a_bare_link(self):
        appt_id = self.book().data['appointment']['id']
        Appointment.objects.filter(id=appt_id).update(zoom_link='https://zoom.us/j/555123987?pwd=s3cret')
        r = self.as_user(self.patient).get(reverse('appointment_detail', args=[appt_id]))
        self.assertEqual(r.data['appointment']['zoomMeetingId'], '555123987')
        self.assertEqual(r.data['appointment']['zoomPassword'], 's3cret')

    def test_request_id_header(self):
        r = self.client.get(reverse('healthz'))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r['X-Request-ID'].startswith('req-'))
        r = self.client.get(reverse('healthz'), HTTP_X_REQUEST_ID='upstream-1')
        self.assertEqual(r['X-Request-ID'], 'upstream-1')


class SelfServiceTests(APITestCase):
    def setUp(self) -> None:
        self.patient = make_patient()
        self.client.force_authenticate(user=self.patient)

    def test_update_details_and_profile(self):
        r = self.client.put(reverse('user_details'), {'name': 'Pat Renamed', 'phoneNumber': '555-999'},
                            format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['user']['name'], 'Pat Renamed')

        r = self.client.put(reverse('user_profile'), {'weight': 72.5, 'medications': ['Aspirin']}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['user']['weight'], 72.5)
        self.assertEqual(r.data['user']['medications'], ['Aspirin'])

        r = self.client.put(reverse('user_profile'), {'weight': 5}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_email_change_must_be_unique(self):
        make_patient(email='taken@example.com', name='Someone Else')
        r = self.client.put(reverse('user_details'), {'email': 'taken@example.com'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_profile_image(self):
        r = self.client.put(reverse('user_profile_image'), {'imageUrl': 'https://cdn.example.com/me.png'},
                            format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['user']['profileImage'], 'https://cdn.example.com/me.png')
        r = self.client.put(reverse('user_profile_image'), {'imageUrl': 'not a path'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_account_requires_password(self):
        r = self.client.delete(reverse('user_delete'), {'password': 'wrong'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = self.client.delete(reverse('user_delete'), {'password': PASSWORD}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.patient.pk).exists())

    def test_notifications_read_all(self):
        self.patient.notifications.create(title='A', message='a')
        self.patient.notifications.create(title='B', message='b')
        r = self.client.get(reverse('notifications'))
        self.assertEqual(r.data['unread'], 2)
        r = self.client.post(reverse('notifications_read_all'))
        self.assertEqual(r.data['updated'], 2)
        self.assertEqual(self.client.get(reverse('notifications')).data['unread'], 0)
