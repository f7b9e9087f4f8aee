from django.db import models

from apps.core.models import AppendOnlyModel


class ReminderLog(AppendOnlyModel):
    """
    One row per reminder attempt. `sent_on` is the local calendar day of
    `sent_at`; the unique constraint makes a second attempt for the same
    record on the same day fail at the database.
    """

    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_FAILED = 'failed'
    STATUS_OPENED = 'opened'
    STATUS_CLICKED = 'clicked'

    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_OPENED, 'Opened'),
        (STATUS_CLICKED, 'Clicked'),
    ]

    CHANNEL_CHOICES = [
        ('email', 'Email'),
        ('sms', 'SMS'),
        ('whatsapp', 'WhatsApp'),
    ]

    policy_id = models.BigIntegerField()
    policy_type = models.CharField(max_length=50)
    reminder_number = models.PositiveIntegerField(null=True, blank=True)
    channel = models.CharField(max_length=20, choices=CHANNEL_CHOICES, default='email')
    sent_at = models.DateTimeField(db_index=True)
    sent_on = models.DateField()
    days_until_expiry = models.IntegerField()
    expiry_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, db_index=True)
    client_name = models.CharField(max_length=255, blank=True)
    client_email = models.CharField(max_length=255, blank=True)
    client_phone = models.CharField(max_length=20, blank=True)
    email_subject = models.CharField(max_length=255, blank=True)
    response_data = models.JSONField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        db_table = 'reminder_logs'
        ordering = ['-sent_at', '-id']
        indexes = [
            models.Index(fields=['policy_type', 'policy_id', 'sent_at']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['policy_type', 'policy_id', 'sent_on'],
                name='unique_reminder_per_record_per_day',
            ),
        ]

    def __str__(self):
        return f"{self.policy_type}#{self.policy_id} reminder {self.reminder_number or '-'} {self.status} at {self.sent_at}"

    @property
    def succeeded(self):
        return self.status != self.STATUS_FAILED
