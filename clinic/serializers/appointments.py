from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers.auth import clean_text


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
    startTime = serializers.TimeField(input_formats=['%H:%M'])
    endTime = serializers.TimeField(input_formats=['%H:%M'])
    type = serializers.ChoiceField(choices=[Appointment.TYPE_VIRTUAL, Appointment.TYPE_IN_PERSON],
                                   required=False, default=Appointment.TYPE_VIRTUAL)
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')

    def validate_reason(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Reason is required')
        return v

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if attrs['startTime'] >= attrs['endTime']:
            raise serializers.ValidationError('startTime must be before endTime')
        return attrs


class AppointmentUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in Appointment.STATUS_CHOICES], required=False)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    reason = serializers.CharField(max_length=500, required=False)

    def validate_notes(self, v):
        return clean_text(v)

    def validate_reason(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Reason cannot be empty')
        return v


class AppointmentListQuerySerializer(serializers.Serializer):
    window = serializers.ChoiceField(choices=['upcoming', 'past', 'all'], required=False, default='all')
    status = serializers.ChoiceField(choices=[s for s, _ in Appointment.STATUS_CHOICES], required=False)


class MeetingCreateSerializer(serializers.Serializer):
    topic = serializers.CharField(max_length=255)
    startTime = serializers.CharField(max_length=32)
    duration = serializers.IntegerField(min_value=1, max_value=600, required=False)
    appointmentId = serializers.IntegerField(min_value=1, required=False)

    def validate_topic(self, v):
        return clean_text(v)
