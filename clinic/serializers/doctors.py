from rest_framework import serializers

from clinic.models import WEEKDAYS


class DoctorListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    specialization = serializers.CharField(max_length=120, required=False, allow_blank=True)
    includeUnverified = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=100, required=False)


class SlotSerializer(serializers.Serializer):
    day = serializers.ChoiceField(choices=WEEKDAYS)
    startTime = serializers.TimeField(input_formats=['%H:%M'])
    endTime = serializers.TimeField(input_formats=['%H:%M'])

    def validate(self, attrs):
        if attrs['startTime'] >= attrs['endTime']:
            raise serializers.ValidationError('startTime must be before endTime')
        return attrs


class AvailabilitySerializer(serializers.Serializer):
    availableSlots = SlotSerializer(many=True, allow_empty=True)

    def slots(self):
        return [
            {'day': s['day'], 'start_time': s['startTime'], 'end_time': s['endTime']}
            for s in self.validated_data['availableSlots']
        ]


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
