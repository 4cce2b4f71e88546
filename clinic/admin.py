"""
Django admin registrations for the clinic models.

Administrators use ``/admin/`` to verify newly registered doctors and to
inspect bookings, reports and audit events during development.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    DoctorProfile,
    EmergencyContact,
    HealthMetric,
    MedicalReport,
    Notification,
    PassportAccessCode,
    PatientProfile,
    ReportAttachment,
    TimeSlot,
    User,
    UserSettings,
    VideoMeeting,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'first_name', 'user_type', 'is_active', 'is_staff')
    list_filter = ('user_type', 'is_active')
    search_fields = ('username', 'email', 'first_name')


class TimeSlotInline(admin.TabularInline):
    model = TimeSlot
    extra = 0


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'license_number', 'is_verified', 'created_at')
    list_filter = ('is_verified', 'specialization')
    search_fields = ('user__email', 'user__first_name', 'license_number')
    inlines = [TimeSlotInline]
    actions = ['mark_verified']

    @admin.action(description='Mark selected doctors as verified')
    def mark_verified(self, request, queryset):
        from clinic.services.doctors import invalidate_directory
        queryset.update(is_verified=True)
        invalidate_directory()


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'date_of_birth', 'blood_type')
    search_fields = ('user__email', 'user__first_name')


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'day', 'start_time', 'end_time')
    list_filter = ('day',)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'date', 'start_time', 'type', 'status')
    list_filter = ('status', 'type', 'date')
    search_fields = ('patient__email', 'doctor__email', 'reason')


@admin.register(VideoMeeting)
class VideoMeetingAdmin(admin.ModelAdmin):
    list_display = ('meeting_id', 'topic', 'start_time', 'duration', 'host', 'appointment')
    search_fields = ('meeting_id', 'topic')


class ReportAttachmentInline(admin.TabularInline):
    model = ReportAttachment
    extra = 0


@admin.register(MedicalReport)
class MedicalReportAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'patient', 'author', 'report_type', 'date', 'is_private')
    list_filter = ('report_type', 'is_private')
    search_fields = ('title', 'patient__email')
    inlines = [ReportAttachmentInline]


@admin.register(ReportAttachment)
class ReportAttachmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'report', 'name', 'file_type', 'size')


@admin.register(HealthMetric)
class HealthMetricAdmin(admin.ModelAdmin):
    list_display = ('patient', 'type', 'value', 'unit', 'date', 'time')
    list_filter = ('type',)


@admin.register(EmergencyContact)
class EmergencyContactAdmin(admin.ModelAdmin):
    list_display = ('patient', 'name', 'relationship', 'phone_number', 'is_primary')


@admin.register(UserSettings)
class UserSettingsAdmin(admin.ModelAdmin):
    list_display = ('user', 'notify_email', 'notify_push', 'notify_sms', 'share_with_doctors',
                    'allow_emergency_access')


@admin.register(PassportAccessCode)
class PassportAccessCodeAdmin(admin.ModelAdmin):
    list_display = ('patient', 'code', 'expires_at', 'revoked')
    list_filter = ('revoked',)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'read', 'emailed', 'created_at')
    list_filter = ('read', 'emailed')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'action', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
