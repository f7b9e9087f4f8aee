from datetime import date
from unittest.mock import patch

from django.core import mail
from django.db import IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.customers.services import Contact
from .models import ReminderLog
from .senders import EmailNotificationSender, SendResult, get_default_sender


def log_fields(**overrides):
    now = timezone.now()
    fields = dict(
        policy_id=1,
        policy_type='vehicle',
        reminder_number=1,
        sent_at=now,
        sent_on=timezone.localdate(now),
        days_until_expiry=25,
        expiry_date=date(2030, 1, 1),
        status=ReminderLog.STATUS_SENT,
    )
    fields.update(overrides)
    return fields


class ReminderLogTests(TestCase):
    def test_one_row_per_record_per_day(self):
        ReminderLog.objects.create(**log_fields())
        with self.assertRaises(IntegrityError):
            ReminderLog.objects.create(**log_fields(status=ReminderLog.STATUS_FAILED))

    def test_same_record_on_another_type_is_independent(self):
        ReminderLog.objects.create(**log_fields())
        ReminderLog.objects.create(**log_fields(policy_type='health'))
        self.assertEqual(ReminderLog.objects.count(), 2)

    def test_rows_are_append_only(self):
        log = ReminderLog.objects.create(**log_fields())
        log.status = ReminderLog.STATUS_DELIVERED
        with self.assertRaises(TypeError):
            log.save()
        with self.assertRaises(TypeError):
            log.delete()


@override_settings(
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
    DEFAULT_FROM_EMAIL='renewals@example.com',
    RENEWAL_NOTIFICATION_SUBJECT_PREFIX='[Renewal] ',
)
class EmailNotificationSenderTests(TestCase):
    payload = {
        'label': 'Vehicle Insurance',
        'reference_label': 'policy',
        'reference': 'VEH-001',
        'expiry_date': date(2030, 1, 1),
        'days_until_expiry': 25,
        'reminder_number': 1,
        'reminder_times': 3,
        'vehicle_number': 'KA01AB1234',
        'net_premium': '1000.00',
        'gst': '180.00',
        'gross_premium': '1180.00',
    }

    def setUp(self):
        self.recipient = Contact(name='Asha Rao', email='asha@example.com', phone='9800000000')

    def test_send_renders_template_and_returns_message_id(self):
        result = EmailNotificationSender().send('vehicle_policy_reminder', self.recipient, self.payload)

        self.assertTrue(result.success)
        self.assertTrue(result.message_id)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['asha@example.com'])
        self.assertEqual(message.subject, '[Renewal] Vehicle Insurance Renewal Reminder - 25 days remaining')
        self.assertIn('Dear Asha Rao', message.body)
        self.assertIn('VEH-001', message.body)
        self.assertIn('KA01AB1234', message.body)
        self.assertIn('in 25 days', message.body)

    def test_last_day_wording(self):
        payload = dict(self.payload, days_until_expiry=0)
        EmailNotificationSender().send('vehicle_policy_reminder', self.recipient, payload)
        self.assertIn('which is today', mail.outbox[0].body)

    def test_backend_error_becomes_failed_result(self):
        with patch('apps.notifications.senders.EmailMessage.send', side_effect=ConnectionRefusedError('smtp down')):
            result = EmailNotificationSender().send('vehicle_policy_reminder', self.recipient, self.payload)
        self.assertFalse(result.success)
        self.assertIn('smtp down', result.error)
        self.assertIsNone(result.as_response_data())

    def test_missing_template_becomes_failed_result(self):
        result = EmailNotificationSender().send('no_such_template', self.recipient, self.payload)
        self.assertFalse(result.success)
        self.assertEqual(len(mail.outbox), 0)

    def test_response_data_records_message_id(self):
        self.assertEqual(SendResult(True, message_id='abc').as_response_data(), {'messageId': 'abc'})

    @override_settings(RENEWAL_NOTIFICATION_SENDER='apps.notifications.senders.EmailNotificationSender')
    def test_default_sender_comes_from_settings(self):
        self.assertIsInstance(get_default_sender(), EmailNotificationSender)
