from rest_framework import serializers

from .models import RenewalConfig, check_cadence


class RenewalConfigSerializer(serializers.ModelSerializer):
    cadence_days = serializers.ListField(
        child=serializers.IntegerField(min_value=0), required=False, allow_empty=True,
    )
    reminder_buckets = serializers.SerializerMethodField()

    class Meta:
        model = RenewalConfig
        fields = [
            'id',
            'service_type',
            'service_name',
            'reminder_times',
            'reminder_days',
            'cadence_days',
            'reminder_buckets',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_reminder_buckets(self, obj):
        # Lowest day count that still falls in each reminder, first reminder first
        return obj.cadence.describe()

    def validate(self, attrs):
        instance = self.instance
        reminder_times = attrs.get('reminder_times', getattr(instance, 'reminder_times', None))
        reminder_days = attrs.get('reminder_days', getattr(instance, 'reminder_days', None))
        cadence_days = attrs.get('cadence_days', getattr(instance, 'cadence_days', None))
        errors = check_cadence(reminder_times, reminder_days, cadence_days)
        if errors:
            raise serializers.ValidationError({'cadence_days': errors})
        return attrs
