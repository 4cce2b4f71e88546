from rest_framework import serializers

from clinic.models import HealthMetric
from clinic.serializers.auth import StringListField, clean_text


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=120, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=120, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=120, required=False, allow_blank=True)


class TreatmentSerializer(serializers.Serializer):
    medications = MedicationSerializer(many=True, required=False)
    procedures = StringListField(required=False)
    recommendations = StringListField(required=False)


class ReportSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1, required=False)
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    title = serializers.CharField(max_length=255)
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
    reportType = serializers.CharField(max_length=120)
    symptoms = StringListField(required=False)
    diagnosis = StringListField(required=False)
    treatment = TreatmentSerializer(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    content = serializers.CharField(required=False, allow_blank=True, max_length=20000)
    isPrivate = serializers.BooleanField(required=False)
    doctor = serializers.CharField(max_length=255, required=False, allow_blank=True)
    hospital = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_title(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Title is required')
        return v

    def validate_reportType(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)

    def validate_content(self, v):
        return clean_text(v)

    def validate_doctor(self, v):
        return clean_text(v)

    def validate_hospital(self, v):
        return clean_text(v)

    def model_fields(self) -> dict:
        vd = self.validated_data
        mapping = {
            'title': 'title', 'date': 'date', 'reportType': 'report_type', 'symptoms': 'symptoms',
            'diagnosis': 'diagnosis', 'notes': 'notes', 'content': 'content', 'isPrivate': 'is_private',
            'doctor': 'doctor_name', 'hospital': 'hospital',
        }
        out = {column: vd[key] for key, column in mapping.items() if key in vd}
        if 'treatment' in vd:
            treatment = vd['treatment']
            out['treatment'] = {
                'medications': [dict(m) for m in treatment.get('medications', [])],
                'procedures': list(treatment.get('procedures', [])),
                'recommendations': list(treatment.get('recommendations', [])),
            }
        return out


class ReportListQuerySerializer(serializers.Serializer):
    reportType = serializers.CharField(max_length=120, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)


class AttachmentSerializer(serializers.Serializer):
    file = serializers.FileField()


class MetricSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[t for t, _ in HealthMetric.TYPE_CHOICES])
    value = serializers.FloatField()
    unit = serializers.CharField(max_length=16, required=False, allow_blank=True)
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
    time = serializers.TimeField(input_formats=['%H:%M', '%H:%M:%S'])
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_notes(self, v):
        return clean_text(v)


class MetricQuerySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[t for t, _ in HealthMetric.TYPE_CHOICES], required=False)


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    relationship = serializers.CharField(max_length=64, required=False, allow_blank=True)
    phoneNumber = serializers.CharField(max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)
    isPrimary = serializers.BooleanField(required=False)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Name is required')
        return v

    def validate_relationship(self, v):
        return clean_text(v)

    def validate_phoneNumber(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Phone number is required')
        return v

    def model_fields(self) -> dict:
        mapping = {'name': 'name', 'relationship': 'relationship', 'phoneNumber': 'phone_number',
                   'email': 'email', 'isPrimary': 'is_primary'}
        return {column: self.validated_data[key] for key, column in mapping.items() if key in self.validated_data}


class PassportAccessSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=16)
