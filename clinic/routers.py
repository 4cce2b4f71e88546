"""
URL mappings for the telehealth API.

Paths mirror the front-end API client; trailing slashes are omitted on
purpose (``APPEND_SLASH`` is off).
"""
from django.urls import path, include

from .auth_views import jwt_refresh_view, login_view, logout_view, me_view, register_view
from .views import appointments, doctors, export, health, meetings, metrics, passport, preferences, reports, users


urlpatterns = [
    # django_prometheus serves /metrics itself
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    # Self-service profile
    path('api/users/details', users.update_details, name='user_details'),
    path('api/users/profile', users.update_profile_view, name='user_profile'),
    path('api/users/profile-image', users.update_profile_image, name='user_profile_image'),
    path('api/users/me', users.delete_account, name='user_delete'),
    # Doctors
    path('api/doctors', doctors.doctor_list, name='doctor_list'),
    path('api/doctors/profile', doctors.doctor_profile_update, name='doctor_profile'),
    path('api/doctors/availability', doctors.doctor_availability_update, name='doctor_availability_update'),
    path('api/doctors/<int:doctor_id>', doctors.doctor_detail, name='doctor_detail'),
    path('api/doctors/<int:doctor_id>/availability', doctors.doctor_availability, name='doctor_availability'),
    path('api/doctors/<int:doctor_id>/verify', doctors.doctor_verify, name='doctor_verify'),
    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:appointment_id>/cancel', appointments.appointment_cancel, name='appointment_cancel'),
    path('api/appointments/<int:appointment_id>/meeting', appointments.appointment_meeting,
         name='appointment_meeting'),
    # Mock video meetings
    path('api/zoom/meetings', meetings.meeting_create, name='meeting_create'),
    path('api/zoom/meetings/<str:meeting_id>', meetings.meeting_detail, name='meeting_detail'),
    # Medical reports
    path('api/reports', reports.reports, name='reports'),
    path('api/reports/<int:report_id>', reports.report_detail, name='report_detail'),
    path('api/reports/<int:report_id>/attachments', reports.report_attachments, name='report_attachments'),
    # Health metrics
    path('api/metrics', metrics.metrics, name='metrics'),
    path('api/metrics/series', metrics.metric_series, name='metric_series'),
    path('api/metrics/<int:metric_id>', metrics.metric_detail, name='metric_detail'),
    # Health passport
    path('api/emergency-contacts', passport.emergency_contacts, name='emergency_contacts'),
    path('api/emergency-contacts/<int:contact_id>', passport.emergency_contact_detail, name='emergency_contact_detail'),
    path('api/passport', passport.passport, name='passport'),
    path('api/passport/access-codes', passport.passport_access_codes, name='passport_access_codes'),
    path('api/passport/access', passport.passport_access, name='passport_access'),
    path('api/passport/emergency/<str:code>', passport.passport_emergency, name='passport_emergency'),
    # Export, settings, notifications
    path('api/export', export.export_health_data, name='export'),
    path('api/settings', preferences.user_settings, name='settings'),
    path('api/notifications', preferences.notifications, name='notifications'),
    path('api/notifications/<int:notification_id>/read', preferences.notification_read, name='notification_read'),
    path('api/notifications/read-all', preferences.notifications_read_all, name='notifications_read_all'),
]
