from rest_framework import serializers
from .models import ReminderLog


class ReminderLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReminderLog
        fields = [
            'id', 'policy_id', 'policy_type', 'reminder_number', 'channel',
            'sent_at', 'sent_on', 'days_until_expiry', 'expiry_date', 'status',
            'client_name', 'client_email', 'client_phone', 'email_subject',
            'response_data', 'error_message',
        ]
        read_only_fields = fields
