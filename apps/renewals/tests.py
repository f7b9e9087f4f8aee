import os
import shutil
import tempfile
import threading
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import StringIO
from unittest.mock import Mock, patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.compliance.models import DigitalSignatureCertificate, LabourLicense
from apps.core.exceptions import (
    ValidationError, NotFoundError, ConflictError, DependencyFailure, PersistenceFailure,
)
from apps.core.models import AuditLog
from apps.customers.models import Company, Consumer
from apps.notifications.models import ReminderLog
from apps.notifications.senders import NotificationSender, SendResult
from apps.policies.models import (
    VehiclePolicy, PreviousVehiclePolicy, LifePolicy, HealthPolicy, FirePolicy,
)
from apps.policies.registry import POLICY_KINDS
from apps.renewal_settings.models import RenewalConfig
from .eligibility import (
    ReminderCadence, EligibilityDecision, already_sent_today, evaluate, is_due_today,
)
from .expiry import days_until_expiry, derive_end_date, subtract_years, start_of_day
from .scheduler import RenewalReminderScheduler, MISSING_CONTACT
from .selectors import (
    get_eligible_policies, get_policies_in_period, get_renewal_counts, recent_reminder_logs,
)
from .services import PolicyRenewalService
from .tasks import process_renewal_reminders

User = get_user_model()

NOW = timezone.make_aware(datetime(2024, 6, 10, 9, 30))
TODAY = date(2024, 6, 10)


def fixed_clock():
    return NOW


def make_policy(kind_key, number, end_date, **overrides):
    fields = dict(
        customer_type='Individual',
        policy_number=number,
        proposer_name='Policy Holder',
        email='holder@example.com',
        mobile_number='9000000000',
        policy_start_date=end_date - timedelta(days=365),
        policy_end_date=end_date,
        net_premium=Decimal('1000.00'),
        gst=Decimal('180.00'),
        gross_premium=Decimal('1180.00'),
    )
    if kind_key == 'vehicle':
        fields['vehicle_number'] = 'KA01AB1234'
    fields.update(overrides)
    return POLICY_KINDS[kind_key].model.objects.create(**fields)


def make_config(service_type, reminder_times=3, reminder_days=30, **overrides):
    return RenewalConfig.objects.create(
        service_type=service_type,
        service_name=service_type.title(),
        reminder_times=reminder_times,
        reminder_days=reminder_days,
        **overrides,
    )


class RecordingSender(NotificationSender):
    def __init__(self, fail_for=(), raise_for=()):
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.sent = []

    def send(self, template_kind, recipient, payload):
        self.sent.append((template_kind, recipient, payload))
        if recipient.email in self.raise_for:
            raise ConnectionError('provider unreachable')
        if recipient.email in self.fail_for:
            return SendResult(success=False, error='rejected by provider')
        return SendResult(success=True, message_id=f'msg-{len(self.sent)}')


class GatewayDownSender(RecordingSender):
    def send(self, template_kind, recipient, payload):
        raise DependencyFailure('Mail gateway unavailable')


class SendOnlySender:
    def __init__(self):
        self.sent = []

    def send(self, template_kind, recipient, payload):
        self.sent.append(recipient.email)
        return SendResult(success=True, message_id=f'plain-{len(self.sent)}')


class BrokenSubjectSender(RecordingSender):
    def subject_for(self, template_kind, payload):
        raise KeyError('label')


class BlockingSender(RecordingSender):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def send(self, template_kind, recipient, payload):
        self.release.wait(5)
        return super().send(template_kind, recipient, payload)


class CancellingSender(RecordingSender):
    def __init__(self, cancel_event):
        super().__init__()
        self.cancel_event = cancel_event

    def send(self, template_kind, recipient, payload):
        self.cancel_event.set()
        return super().send(template_kind, recipient, payload)


# =========================================================
#  EXPIRY ARITHMETIC
# =========================================================

class ExpiryTests(TestCase):
    def test_days_until_date_expiry_rounds_up(self):
        self.assertEqual(days_until_expiry(TODAY + timedelta(days=25), NOW), 25)
        self.assertEqual(days_until_expiry(TODAY + timedelta(days=1), NOW), 1)

    def test_expiry_today_is_zero_and_past_is_negative(self):
        self.assertEqual(days_until_expiry(TODAY, NOW), 0)
        self.assertEqual(days_until_expiry(TODAY - timedelta(days=1), NOW), -1)

    def test_datetime_expiry(self):
        self.assertEqual(days_until_expiry(NOW + timedelta(hours=1), NOW), 1)
        self.assertEqual(days_until_expiry(NOW + timedelta(days=2), NOW), 2)

    def test_start_of_day_uses_local_calendar(self):
        late_utc = datetime(2024, 6, 9, 20, 0, tzinfo=dt_timezone.utc)  # 01:30 on the 10th in Kolkata
        midnight = start_of_day(late_utc)
        self.assertEqual(timezone.localtime(midnight).date(), TODAY)
        self.assertEqual((timezone.localtime(midnight).hour, timezone.localtime(midnight).minute), (0, 0))

    def test_derive_end_date_round_trip(self):
        for start in (date(2023, 1, 31), date(2024, 3, 1), date(2024, 12, 31)):
            for years in (0, 1, 4, 15):
                self.assertEqual(subtract_years(derive_end_date(start, years), years), start)

    def test_leap_day_start(self):
        self.assertEqual(derive_end_date(date(2024, 2, 29), 1), date(2025, 2, 28))
        self.assertEqual(derive_end_date(date(2024, 2, 29), 4), date(2028, 2, 29))
        # Not an identity for 29 Feb when the target year is not a leap year
        self.assertEqual(subtract_years(derive_end_date(date(2024, 2, 29), 1), 1), date(2024, 2, 28))

    def test_negative_term_rejected(self):
        with self.assertRaises(ValueError):
            derive_end_date(TODAY, -1)


# =========================================================
#  ELIGIBILITY
# =========================================================

class ReminderCadenceTests(TestCase):
    def test_equal_width_buckets(self):
        cadence = ReminderCadence(3, 30, ReminderCadence.equal_boundaries(3, 30))
        self.assertEqual(cadence.boundaries, (20, 10))
        self.assertEqual(cadence.reminder_number(25), 1)
        self.assertEqual(cadence.reminder_number(20), 2)
        self.assertEqual(cadence.reminder_number(10), 3)
        self.assertEqual(cadence.reminder_number(0), 3)
        self.assertIsNone(cadence.reminder_number(-1))
        self.assertIsNone(cadence.reminder_number(31))

    def test_single_reminder(self):
        cadence = ReminderCadence(1, 15, ReminderCadence.equal_boundaries(1, 15))
        self.assertEqual(cadence.boundaries, ())
        self.assertEqual(cadence.reminder_number(15), 1)
        self.assertEqual(cadence.describe(), [{'reminder_number': 1, 'from_days': 15, 'to_days': 0}])

    def test_buckets_partition_the_window(self):
        config = RenewalConfig(service_type='x', service_name='X', reminder_times=4, reminder_days=45, cadence_days=[7, 30, 15])
        cadence = config.cadence
        self.assertEqual(cadence.boundaries, (30, 15, 7))
        numbers = [cadence.reminder_number(day) for day in range(46)]
        self.assertTrue(all(n is not None for n in numbers))
        # Non-increasing days map to non-decreasing reminder numbers
        self.assertEqual(numbers[::-1], sorted(numbers[::-1]))
        self.assertEqual(set(numbers), {1, 2, 3, 4})


class EligibilityTests(TestCase):
    def setUp(self):
        self.config = make_config('vehicle', reminder_times=3, reminder_days=30)

    def log(self, sent_at, policy_id=1, policy_type='vehicle'):
        return ReminderLog.objects.create(
            policy_id=policy_id, policy_type=policy_type, sent_at=sent_at,
            sent_on=timezone.localtime(sent_at).date(), days_until_expiry=10,
            expiry_date=TODAY + timedelta(days=10), status=ReminderLog.STATUS_SENT,
        )

    def test_window_edges(self):
        self.assertFalse(is_due_today(1, 'vehicle', -1, self.config, NOW))
        self.assertTrue(is_due_today(1, 'vehicle', 0, self.config, NOW))
        self.assertTrue(is_due_today(1, 'vehicle', 30, self.config, NOW))
        self.assertFalse(is_due_today(1, 'vehicle', 31, self.config, NOW))

    def test_log_today_blocks_second_reminder(self):
        self.log(NOW - timedelta(hours=2))
        self.assertTrue(already_sent_today(1, 'vehicle', NOW))
        decision = evaluate(1, 'vehicle', 10, self.config, NOW)
        self.assertEqual(decision, EligibilityDecision(False, 'already sent today'))

    def test_failed_attempt_today_also_blocks(self):
        ReminderLog.objects.create(
            policy_id=1, policy_type='vehicle', sent_at=NOW, sent_on=TODAY, days_until_expiry=10,
            expiry_date=TODAY + timedelta(days=10), status=ReminderLog.STATUS_FAILED,
        )
        self.assertFalse(is_due_today(1, 'vehicle', 10, self.config, NOW))

    def test_yesterdays_log_does_not_block(self):
        self.log(start_of_day(NOW) - timedelta(minutes=1))
        self.assertFalse(already_sent_today(1, 'vehicle', NOW))
        decision = evaluate(1, 'vehicle', 10, self.config, NOW)
        self.assertTrue(decision.due)
        self.assertEqual(decision.reminder_number, 3)

    def test_logs_are_scoped_by_type_and_id(self):
        self.log(NOW, policy_id=2)
        self.log(NOW, policy_type='health')
        self.assertTrue(is_due_today(1, 'vehicle', 10, self.config, NOW))


# =========================================================
#  SCHEDULER
# =========================================================

class RenewalReminderSchedulerTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(
            company_name='Acme Traders', company_email='accounts@acme.example', contact_number='9800000001',
        )
        self.sender = RecordingSender()
        make_config('vehicle', reminder_times=3, reminder_days=30)

    def scheduler(self, sender=None, **kwargs):
        kwargs.setdefault('clock', fixed_clock)
        kwargs.setdefault('lookahead_days', 30)
        return RenewalReminderScheduler(sender or self.sender, **kwargs)

    def test_due_policy_gets_one_reminder_and_one_log(self):
        policy = make_policy(
            'vehicle', 'VEH-1', TODAY + timedelta(days=25),
            customer_type='Organisation', company=self.company,
        )

        report = self.scheduler().run_all(service_types=['vehicle'])

        result = report.results['vehicle']
        self.assertEqual((result.processed, result.successful, result.errors), (1, 1, 0))
        self.assertEqual(len(self.sender.sent), 1)
        template_kind, recipient, payload = self.sender.sent[0]
        self.assertEqual(template_kind, 'vehicle_policy_reminder')
        self.assertEqual(recipient.email, 'accounts@acme.example')
        self.assertEqual(payload['days_until_expiry'], 25)
        self.assertEqual(payload['reference'], 'VEH-1')
        self.assertEqual(payload['vehicle_number'], 'KA01AB1234')

        log = ReminderLog.objects.get()
        self.assertEqual(log.policy_id, policy.pk)
        self.assertEqual(log.policy_type, 'vehicle')
        self.assertEqual(log.status, ReminderLog.STATUS_SENT)
        self.assertEqual(log.days_until_expiry, 25)
        self.assertEqual(log.reminder_number, 1)
        self.assertEqual(log.sent_on, TODAY)
        self.assertEqual(log.client_name, 'Acme Traders')
        self.assertEqual(log.response_data, {'messageId': 'msg-1'})

    def test_second_run_same_day_sends_nothing(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=25))
        self.scheduler().run_all(service_types=['vehicle'])

        report = self.scheduler().run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].skipped, 1)
        self.assertEqual(report.results['vehicle'].processed, 0)
        self.assertEqual(len(self.sender.sent), 1)
        self.assertEqual(ReminderLog.objects.count(), 1)

    def test_next_day_sends_again(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=25))
        self.scheduler().run_all(service_types=['vehicle'])

        tomorrow = NOW + timedelta(days=1)
        self.scheduler(clock=lambda: tomorrow).run_all(service_types=['vehicle'])

        self.assertEqual(ReminderLog.objects.count(), 2)
        self.assertEqual(
            list(ReminderLog.objects.order_by('sent_at').values_list('days_until_expiry', flat=True)),
            [25, 24],
        )

    def test_type_without_config_is_skipped(self):
        make_policy('fire', 'FIRE-1', TODAY + timedelta(days=5))
        make_config('health', is_active=False)
        make_policy('health', 'HEALTH-1', TODAY + timedelta(days=5))

        report = self.scheduler().run_all(service_types=['fire', 'health'])

        self.assertEqual(report.results['fire'].status, 'skipped')
        self.assertEqual(report.results['health'].status, 'skipped')
        self.assertEqual(self.sender.sent, [])
        self.assertFalse(ReminderLog.objects.exists())

    def test_window_edges_and_inactive_policies(self):
        make_policy('vehicle', 'TODAY', TODAY)
        make_policy('vehicle', 'EDGE', TODAY + timedelta(days=30))
        make_policy('vehicle', 'EXPIRED', TODAY - timedelta(days=1))
        make_policy('vehicle', 'CANCELLED', TODAY + timedelta(days=3), status='cancelled')

        self.scheduler().run_all(service_types=['vehicle'])

        self.assertEqual(
            sorted(ReminderLog.objects.values_list('days_until_expiry', flat=True)),
            [0, 30],
        )

    def test_lookahead_beyond_reminder_days_skips_early_candidates(self):
        RenewalConfig.objects.filter(service_type='vehicle').update(reminder_days=10, reminder_times=1)
        make_policy('vehicle', 'EARLY', TODAY + timedelta(days=20))

        report = self.scheduler().run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].skipped, 1)
        self.assertFalse(ReminderLog.objects.exists())

    def test_failures_are_isolated_per_candidate(self):
        make_policy('vehicle', 'NO-CONTACT', TODAY + timedelta(days=5), email='')
        make_policy('vehicle', 'REJECTED', TODAY + timedelta(days=6), email='rejected@example.com')
        make_policy('vehicle', 'RAISES', TODAY + timedelta(days=7), email='raises@example.com')
        make_policy('vehicle', 'OK', TODAY + timedelta(days=8), email='ok@example.com')
        sender = RecordingSender(fail_for=['rejected@example.com'], raise_for=['raises@example.com'])

        report = self.scheduler(sender).run_all(service_types=['vehicle'])

        result = report.results['vehicle']
        self.assertEqual((result.processed, result.successful, result.errors), (4, 1, 3))
        self.assertEqual(ReminderLog.objects.count(), 4)
        errors = dict(ReminderLog.objects.values_list('days_until_expiry', 'error_message'))
        self.assertEqual(errors[5], MISSING_CONTACT)
        self.assertEqual(errors[6], 'rejected by provider')
        self.assertIn('provider unreachable', errors[7])
        self.assertEqual(errors[8], '')
        self.assertEqual(
            ReminderLog.objects.filter(status=ReminderLog.STATUS_FAILED).count(), 3,
        )

    def test_dependency_failure_is_recorded_per_candidate(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))
        make_policy('vehicle', 'VEH-2', TODAY + timedelta(days=6))

        report = self.scheduler(GatewayDownSender()).run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].errors, 2)
        self.assertEqual(report.results['vehicle'].status, 'completed')
        self.assertEqual(
            set(ReminderLog.objects.values_list('error_message', flat=True)),
            {'Mail gateway unavailable'},
        )

    def test_slow_send_times_out_as_failure(self):
        sender = BlockingSender()
        self.addCleanup(sender.release.set)
        make_policy('vehicle', 'SLOW', TODAY + timedelta(days=5))

        report = self.scheduler(sender, send_timeout=0.05).run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].errors, 1)
        log = ReminderLog.objects.get()
        self.assertEqual(log.status, ReminderLog.STATUS_FAILED)
        self.assertIn('timed out', log.error_message)

    def test_cancellation_stops_after_current_candidate(self):
        make_config('fire')
        make_policy('vehicle', 'A', TODAY + timedelta(days=5))
        make_policy('vehicle', 'B', TODAY + timedelta(days=6))
        make_policy('fire', 'C', TODAY + timedelta(days=6))
        cancel_event = threading.Event()

        report = self.scheduler(CancellingSender(cancel_event)).run_all(
            service_types=['vehicle', 'fire'], cancel_event=cancel_event,
        )

        self.assertTrue(report.cancelled)
        self.assertEqual(report.results['vehicle'].status, 'cancelled')
        self.assertNotIn('fire', report.results)
        self.assertEqual(ReminderLog.objects.count(), 1)

    def test_database_failure_in_one_type_does_not_stop_others(self):
        make_config('fire')
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))

        def flaky(policy_type, window_days, now=None):
            if policy_type == 'fire':
                raise DatabaseError('connection lost')
            return get_eligible_policies(policy_type, window_days, now)

        with patch('apps.renewals.scheduler.get_eligible_policies', side_effect=flaky):
            report = self.scheduler().run_all(service_types=['fire', 'vehicle'])

        self.assertEqual(report.results['fire'].status, 'failed')
        self.assertIn('connection lost', report.results['fire'].message)
        self.assertEqual(report.results['vehicle'].successful, 1)

    def test_every_type_failing_raises_persistence_failure(self):
        config_store = Mock()
        config_store.get_config.side_effect = DatabaseError('database unreachable')

        with self.assertRaises(PersistenceFailure):
            self.scheduler(config_store=config_store).run_all(service_types=['vehicle', 'fire'])

    def test_concurrent_duplicate_log_counts_as_skipped(self):
        policy = make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))
        ReminderLog.objects.create(
            policy_id=policy.pk, policy_type='vehicle', sent_at=NOW, sent_on=TODAY,
            days_until_expiry=5, expiry_date=policy.policy_end_date, status=ReminderLog.STATUS_SENT,
        )

        # Simulate a run that evaluated before the other run's log was visible
        with patch('apps.renewals.scheduler.evaluate', return_value=EligibilityDecision(True, 'due', 3)):
            report = self.scheduler().run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].skipped, 1)
        self.assertEqual(report.results['vehicle'].errors, 0)
        self.assertEqual(ReminderLog.objects.count(), 1)

    def test_dry_run_sends_and_logs_nothing(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))
        make_policy('vehicle', 'VEH-2', TODAY + timedelta(days=6), email='')

        report = self.scheduler().run_all(service_types=['vehicle'], dry_run=True)

        result = report.results['vehicle']
        self.assertEqual((result.processed, result.successful, result.errors), (2, 1, 1))
        self.assertEqual(self.sender.sent, [])
        self.assertFalse(ReminderLog.objects.exists())

    def test_all_tracked_types_use_their_own_cadence_and_template(self):
        make_config('health', reminder_times=2, reminder_days=20)
        make_config('labour_license', reminder_times=3, reminder_days=30, cadence_days=[15, 7])
        make_config('dsc', reminder_times=1, reminder_days=15)
        consumer = Consumer.objects.create(name='Ravi', email='ravi@example.com')
        make_policy('health', 'HEALTH-1', TODAY + timedelta(days=4))
        with patch('apps.compliance.models.timezone.localdate', return_value=TODAY):
            LabourLicense.objects.create(
                company=self.company, license_number='LL-1', expiry_date=TODAY + timedelta(days=5),
            )
        DigitalSignatureCertificate.objects.create(
            consumer=consumer, certification_name='Class 3 DSC', expiry_date=TODAY + timedelta(days=12), status='out',
        )

        report = self.scheduler().run_all()

        self.assertEqual(report.results['labour_license'].successful, 1)
        self.assertEqual(report.results['dsc'].successful, 1)
        self.assertEqual(report.results['health'].successful, 1)
        self.assertEqual(report.results['fire'].status, 'skipped')
        templates = {kind for kind, _, _ in self.sender.sent}
        self.assertEqual(templates, {'health_policy_reminder', 'labour_license_reminder', 'dsc_reminder'})
        self.assertEqual(ReminderLog.objects.get(policy_type='labour_license').reminder_number, 3)
        self.assertEqual(ReminderLog.objects.get(policy_type='health').reminder_number, 2)
        self.assertEqual(ReminderLog.objects.get(policy_type='dsc').client_email, 'ravi@example.com')

    def test_report_shape(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))

        data = self.scheduler().run_all(service_types=['vehicle']).as_dict()

        self.assertEqual(
            data['perServiceType']['vehicle'],
            {'processed': 1, 'successful': 1, 'errors': 0, 'skipped': 0, 'status': 'completed', 'message': ''},
        )
        self.assertEqual(data['total'], {'processed': 1, 'successful': 1, 'errors': 0, 'skipped': 0})

    def test_unknown_service_type_rejected_before_running(self):
        with self.assertRaises(NotFoundError):
            self.scheduler().run_all(service_types=['marine'])

    def test_sender_implementing_only_send(self):
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5), email='one@example.com')
        make_policy('vehicle', 'VEH-2', TODAY + timedelta(days=6), email='two@example.com')
        sender = SendOnlySender()

        report = self.scheduler(sender).run_all(service_types=['vehicle'])

        self.assertEqual(report.results['vehicle'].successful, 2)
        self.assertEqual(sender.sent, ['one@example.com', 'two@example.com'])
        logs = ReminderLog.objects.order_by('days_until_expiry')
        self.assertEqual([log.status for log in logs], ['sent', 'sent'])
        self.assertEqual(logs[0].channel, 'email')
        self.assertIn('Renewal Reminder - 5 days remaining', logs[0].email_subject)

    def test_reminder_that_cannot_be_prepared_is_logged_and_not_sent(self):
        make_config('fire')
        make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))
        make_policy('vehicle', 'VEH-2', TODAY + timedelta(days=6))
        make_policy('fire', 'FIRE-1', TODAY + timedelta(days=6))
        sender = BrokenSubjectSender()

        report = self.scheduler(sender).run_all(service_types=['vehicle', 'fire'])

        self.assertEqual(report.results['vehicle'].errors, 2)
        self.assertEqual(report.results['fire'].errors, 1)
        self.assertEqual(sender.sent, [])
        self.assertEqual(ReminderLog.objects.filter(status=ReminderLog.STATUS_FAILED).count(), 3)
        self.assertIn('could not be prepared', ReminderLog.objects.first().error_message)

        # Logged as attempted, so a second run the same day does not retry
        report = self.scheduler(RecordingSender()).run_all(service_types=['vehicle'])
        self.assertEqual(report.results['vehicle'].skipped, 2)

    def test_remind_one_sends_and_logs(self):
        policy = make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=25))

        result, log = self.scheduler().remind_one('vehicle', policy.pk)

        self.assertEqual(result.successful, 1)
        self.assertEqual(log.policy_id, policy.pk)
        self.assertEqual(log.status, ReminderLog.STATUS_SENT)
        self.assertEqual(log.reminder_number, 1)
        self.assertEqual(len(self.sender.sent), 1)

    def test_remind_one_follows_daily_rules(self):
        policy = make_policy('vehicle', 'VEH-1', TODAY + timedelta(days=5))
        early = make_policy('vehicle', 'VEH-EARLY', TODAY + timedelta(days=45))
        cancelled = make_policy('vehicle', 'VEH-X', TODAY + timedelta(days=5), status='cancelled')
        unconfigured = make_policy('fire', 'FIRE-1', TODAY + timedelta(days=5))
        self.scheduler().remind_one('vehicle', policy.pk)

        with self.assertRaises(ConflictError):
            self.scheduler().remind_one('vehicle', policy.pk)
        with self.assertRaises(ConflictError):
            self.scheduler().remind_one('vehicle', early.pk)
        with self.assertRaises(NotFoundError):
            self.scheduler().remind_one('vehicle', cancelled.pk)
        with self.assertRaises(NotFoundError):
            self.scheduler().remind_one('fire', unconfigured.pk)
        self.assertEqual(len(self.sender.sent), 1)
        self.assertEqual(ReminderLog.objects.count(), 1)


# =========================================================
#  RENEWAL TRANSACTOR
# =========================================================

class PolicyRenewalServiceTests(TestCase):
    def setUp(self):
        self.service = PolicyRenewalService(clock=fixed_clock)
        self.company = Company.objects.create(company_name='Acme Traders', company_email='accounts@acme.example')
        self.consumer = Consumer.objects.create(name='Asha Rao', email='asha@example.com')
        self.policy = make_policy(
            'vehicle', 'VEH-2024', date(2024, 12, 31),
            customer_type='Organisation', company=self.company, remarks='first term',
        )

    def payload(self, **overrides):
        data = {
            'customer_type': 'Organisation',
            'company_id': self.company.pk,
            'policy_number': 'VEH-2025',
            'policy_start_date': '2025-01-01',
            'policy_end_date': '2025-12-31',
            'net_premium': '1100.00',
            'gst': '198.00',
            'gross_premium': '1298.00',
            'vehicle_number': 'KA01AB1234',
        }
        data.update(overrides)
        return data

    def assert_untouched(self):
        policy = VehiclePolicy.objects.get(pk=self.policy.pk)
        self.assertEqual(policy.policy_number, 'VEH-2024')
        self.assertEqual(policy.status, 'active')
        self.assertFalse(PreviousVehiclePolicy.objects.exists())
        self.assertEqual(VehiclePolicy.objects.count(), 1)
        self.assertFalse(AuditLog.objects.exists())

    def test_renewal_archives_and_replaces(self):
        old_id = self.policy.pk

        result = self.service.renew('vehicle', old_id, self.payload(), 'policy_documents/vehicle/new.pdf', actor='ops')

        archive = result.previous_policy
        new_policy = result.new_policy
        self.assertFalse(VehiclePolicy.objects.filter(pk=old_id).exists())
        self.assertEqual(PreviousVehiclePolicy.objects.count(), 1)
        self.assertEqual(VehiclePolicy.objects.count(), 1)

        self.assertEqual(archive.original_policy_id, old_id)
        self.assertEqual(archive.status, 'expired')
        self.assertEqual(archive.renewed_at, NOW)
        self.assertEqual(archive.policy_number, 'VEH-2024')
        self.assertEqual(archive.remarks, 'first term')
        self.assertEqual(archive.company_id, self.company.pk)
        self.assertEqual(archive.gross_premium, Decimal('1180.00'))

        self.assertEqual(new_policy.previous_policy_id, archive.pk)
        self.assertEqual(new_policy.business_type, 'Renewal/Rollover')
        self.assertEqual(new_policy.status, 'active')
        self.assertEqual(new_policy.policy_number, 'VEH-2025')
        self.assertEqual(new_policy.policy_document_path, 'policy_documents/vehicle/new.pdf')
        self.assertEqual(new_policy.company_id, self.company.pk)
        self.assertIsNone(new_policy.consumer_id)

        audit = AuditLog.objects.get()
        self.assertEqual(audit.action, 'renew')
        self.assertEqual(audit.actor, 'ops')
        self.assertEqual(audit.changes['policy_number'], {'old': 'VEH-2024', 'new': 'VEH-2025'})
        self.assertEqual(audit.additional_data['premium_change'], '118.00')

    def test_individual_renewal_nulls_company(self):
        result = self.service.renew(
            'vehicle', self.policy.pk,
            self.payload(customer_type='Individual', company_id=None, consumer_id=self.consumer.pk),
            'doc.pdf',
        )
        self.assertIsNone(result.new_policy.company_id)
        self.assertEqual(result.new_policy.consumer_id, self.consumer.pk)
        self.assertEqual(result.new_policy.customer_type, 'Individual')

    def test_renewal_may_keep_policy_number(self):
        result = self.service.renew('vehicle', self.policy.pk, self.payload(policy_number='VEH-2024'), 'doc.pdf')
        self.assertEqual(result.new_policy.policy_number, 'VEH-2024')

    def test_repeated_renewals_form_a_lineage(self):
        first = self.service.renew('vehicle', self.policy.pk, self.payload(), 'doc-2025.pdf')
        second = self.service.renew(
            'vehicle', first.new_policy.pk,
            self.payload(policy_number='VEH-2026', policy_start_date='2026-01-01', policy_end_date='2026-12-31'),
            'doc-2026.pdf',
        )

        self.assertEqual(second.previous_policy.original_policy_id, first.new_policy.pk)
        self.assertEqual(second.previous_policy.previous_policy_id, first.previous_policy.pk)
        chain = self.service.lineage('vehicle', second.new_policy.pk)
        self.assertEqual([a.policy_number for a in chain], ['VEH-2025', 'VEH-2024'])

    def test_second_renewal_of_same_row_is_not_found(self):
        self.service.renew('vehicle', self.policy.pk, self.payload(), 'doc.pdf')
        with self.assertRaises(NotFoundError):
            self.service.renew('vehicle', self.policy.pk, self.payload(policy_number='VEH-X'), 'doc.pdf')
        self.assertEqual(PreviousVehiclePolicy.objects.count(), 1)

    def test_missing_document(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.renew('vehicle', self.policy.pk, self.payload(), '')
        self.assertIn('policy_document', ctx.exception.errors)
        self.assert_untouched()

    def test_invalid_inputs_write_nothing(self):
        cases = {
            'no holder': self.payload(company_id=None),
            'both holders': self.payload(consumer_id=self.consumer.pk),
            'type mismatch': self.payload(customer_type='Individual'),
            'unknown company': self.payload(company_id=99999),
            'end before start': self.payload(policy_end_date='2024-12-31'),
            'premium arithmetic': self.payload(gross_premium='1300.00'),
            'non numeric premium': self.payload(net_premium='a lot'),
            'negative premium': self.payload(gst='-1.00'),
            'bad date': self.payload(policy_start_date='31/01/2025'),
            'missing vehicle number': self.payload(vehicle_number=''),
        }
        for label, payload in cases.items():
            with self.subTest(label):
                with self.assertRaises(ValidationError):
                    self.service.renew('vehicle', self.policy.pk, payload, 'doc.pdf')
                self.assert_untouched()

    def test_premium_tolerance(self):
        result = self.service.renew('vehicle', self.policy.pk, self.payload(gross_premium='1298.01'), 'doc.pdf')
        self.assertEqual(result.new_policy.gross_premium, Decimal('1298.01'))

    def test_non_active_policy_conflicts(self):
        VehiclePolicy.objects.filter(pk=self.policy.pk).update(status='cancelled')
        with self.assertRaises(ConflictError):
            self.service.renew('vehicle', self.policy.pk, self.payload(), 'doc.pdf')
        self.assertFalse(PreviousVehiclePolicy.objects.exists())

    def test_unknown_policy(self):
        with self.assertRaises(NotFoundError):
            self.service.renew('vehicle', 99999, self.payload(), 'doc.pdf')
        with self.assertRaises(NotFoundError):
            self.service.renew('marine', self.policy.pk, self.payload(), 'doc.pdf')

    def test_failure_mid_transaction_rolls_back_everything(self):
        with patch('apps.renewals.services.AuditLog.objects.create', side_effect=DatabaseError('disk full')):
            with self.assertRaises(PersistenceFailure):
                self.service.renew('vehicle', self.policy.pk, self.payload(), 'doc.pdf')
        self.assert_untouched()

    def test_life_renewal_derives_end_date(self):
        life = make_policy('life', 'LIFE-1', date(2024, 12, 31), term_years=1)
        result = self.service.renew('life', life.pk, {
            'customer_type': 'Individual',
            'consumer_id': self.consumer.pk,
            'policy_number': 'LIFE-2',
            'policy_start_date': '2024-02-29',
            'term_years': 1,
            'net_premium': '500.00',
            'gst': '90.00',
            'gross_premium': '590.00',
        }, 'life.pdf')
        self.assertEqual(result.new_policy.policy_end_date, date(2025, 2, 28))
        self.assertIsInstance(result.new_policy, LifePolicy)

    def test_cancel(self):
        policy = self.service.cancel('vehicle', self.policy.pk, reason='vehicle sold', actor='ops')
        self.assertEqual(policy.status, 'cancelled')
        self.assertEqual(policy.cancelled_at, NOW)
        self.assertEqual(AuditLog.objects.get().action, 'cancel')

        with self.assertRaises(ConflictError):
            self.service.cancel('vehicle', self.policy.pk)

    def test_policy_number_held_by_another_live_policy(self):
        other = make_policy('vehicle', 'VEH-OTHER', date(2024, 11, 30))

        with self.assertRaises(ValidationError) as ctx:
            self.service.renew('vehicle', self.policy.pk, self.payload(policy_number='VEH-OTHER'), 'doc.pdf')

        self.assertIn('policy_number', ctx.exception.errors)
        self.assertTrue(VehiclePolicy.objects.filter(pk=self.policy.pk, status='active').exists())
        self.assertTrue(VehiclePolicy.objects.filter(pk=other.pk).exists())
        self.assertFalse(PreviousVehiclePolicy.objects.exists())

    def test_constraint_violation_at_insert_is_a_conflict(self):
        # A number taken between validation and insert
        with patch.object(VehiclePolicy.objects, 'create', side_effect=IntegrityError('UNIQUE constraint failed')):
            with self.assertRaises(ConflictError) as ctx:
                self.service.renew('vehicle', self.policy.pk, self.payload(), 'doc.pdf')
        self.assertIn('policy_number', ctx.exception.errors)
        self.assert_untouched()

    def test_lineage_of_fresh_policy_is_empty(self):
        self.assertEqual(self.service.lineage('vehicle', self.policy.pk), [])
        with self.assertRaises(NotFoundError):
            self.service.lineage('vehicle', 99999)


# =========================================================
#  SELECTORS
# =========================================================

class SelectorTests(TestCase):
    def test_eligible_policies_window_and_order(self):
        later = make_policy('health', 'H-LATER', TODAY + timedelta(days=20))
        sooner = make_policy('health', 'H-SOON', TODAY + timedelta(days=2))
        make_policy('health', 'H-OUT', TODAY + timedelta(days=40))
        make_policy('health', 'H-PAST', TODAY - timedelta(days=1))
        make_policy('health', 'H-CANCELLED', TODAY + timedelta(days=3), status='cancelled')

        eligible = list(get_eligible_policies('health', 30, NOW))

        self.assertEqual(eligible, [sooner, later])

    def test_renewal_counts_buckets(self):
        for days, number in ((0, 'A'), (6, 'B'), (7, 'C'), (29, 'D'), (30, 'E'), (364, 'F'), (365, 'G')):
            make_policy('fire', f'FIRE-{number}', TODAY + timedelta(days=days))
        company = Company.objects.create(company_name='Acme')
        with patch('apps.compliance.models.timezone.localdate', return_value=TODAY):
            LabourLicense.objects.create(company=company, license_number='LL-1', expiry_date=TODAY + timedelta(days=3))

        counts = get_renewal_counts(NOW)

        self.assertEqual(counts['fire'], {'week': 2, 'month': 2, 'year': 2})
        self.assertEqual(counts['labour_license'], {'week': 1, 'month': 0, 'year': 0})
        self.assertEqual(counts['vehicle'], {'week': 0, 'month': 0, 'year': 0})
        self.assertEqual(counts['total'], {'week': 3, 'month': 2, 'year': 2})

    def test_policies_in_period_match_count_buckets(self):
        for days, number in ((0, 'A'), (6, 'B'), (7, 'C'), (29, 'D'), (30, 'E'), (365, 'F')):
            make_policy('fire', f'FIRE-{number}', TODAY + timedelta(days=days))
        make_policy('fire', 'FIRE-CANCELLED', TODAY + timedelta(days=8), status='cancelled')

        def numbers(period):
            return [p.policy_number for p in get_policies_in_period('fire', period, NOW)]

        self.assertEqual(numbers('week'), ['FIRE-A', 'FIRE-B'])
        self.assertEqual(numbers('month'), ['FIRE-C', 'FIRE-D'])
        self.assertEqual(numbers('year'), ['FIRE-E'])
        counts = get_renewal_counts(NOW)['fire']
        self.assertEqual({period: len(numbers(period)) for period in counts}, counts)
        with self.assertRaises(ValueError):
            get_policies_in_period('fire', 'decade', NOW)

    def test_recent_reminder_logs(self):
        for policy_id in range(3):
            ReminderLog.objects.create(
                policy_id=policy_id, policy_type='fire' if policy_id else 'dsc', sent_at=NOW + timedelta(minutes=policy_id),
                sent_on=TODAY, days_until_expiry=3, expiry_date=TODAY, status=ReminderLog.STATUS_SENT,
            )
        self.assertEqual([log.policy_id for log in recent_reminder_logs(limit=2)], [2, 1])
        self.assertEqual([log.policy_id for log in recent_reminder_logs(policy_type='dsc')], [0])


# =========================================================
#  HTTP SURFACE
# =========================================================

class RenewalApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='ops', password='testpassword123')
        self.admin = User.objects.create_superuser(username='admin', email='admin@example.com', password='testpassword123')
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.company = Company.objects.create(company_name='Acme Traders', company_email='accounts@acme.example')
        self.today = timezone.localdate()
        self.policy = make_policy(
            'fire', 'FIRE-2024', self.today + timedelta(days=10),
            customer_type='Organisation', company=self.company,
        )

    def renewal_data(self, **overrides):
        data = {
            'customer_type': 'Organisation',
            'company_id': self.company.pk,
            'policy_number': 'FIRE-2025',
            'policy_start_date': (self.today + timedelta(days=11)).isoformat(),
            'policy_end_date': (self.today + timedelta(days=376)).isoformat(),
            'net_premium': '2000.00',
            'gst': '360.00',
            'gross_premium': '2360.00',
            'total_sum_insured': '5000000.00',
            'policy_document_path': 'policy_documents/fire/renewal.pdf',
        }
        data.update(overrides)
        return data

    def test_renew_endpoint(self):
        response = self.client.patch(
            f'/api/renewals/fire/{self.policy.pk}/renew/', self.renewal_data(), format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['previousPolicy']['original_policy_id'], self.policy.pk)
        self.assertEqual(response.data['newPolicy']['policy_number'], 'FIRE-2025')
        self.assertEqual(response.data['newPolicy']['business_type'], 'Renewal/Rollover')
        new_policy = FirePolicy.objects.get(policy_number='FIRE-2025')
        self.assertEqual(new_policy.total_sum_insured, Decimal('5000000.00'))
        self.assertEqual(AuditLog.objects.get().actor, 'ops')

    def test_renew_validation_error_envelope(self):
        response = self.client.patch(
            f'/api/renewals/fire/{self.policy.pk}/renew/',
            self.renewal_data(gross_premium='1.00'), format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
        self.assertIn('gross_premium', response.data['errors'])
        self.assertTrue(FirePolicy.objects.filter(pk=self.policy.pk).exists())

    def test_renew_without_document(self):
        response = self.client.patch(
            f'/api/renewals/fire/{self.policy.pk}/renew/',
            self.renewal_data(policy_document_path=''), format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('policy_document', response.data['errors'])

    def stored_files(self, media_root):
        return [name for _, _, names in os.walk(media_root) for name in names]

    def test_uploaded_document_is_removed_when_renewal_rejected(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        data = self.renewal_data(gross_premium='1.00', policy_document_path='')
        data['policy_document'] = SimpleUploadedFile('renewal.pdf', b'%PDF-1.4 renewal', content_type='application/pdf')

        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.patch(
                f'/api/renewals/fire/{self.policy.pk}/renew/', data, format='multipart',
            )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gross_premium', response.data['errors'])
        self.assertEqual(self.stored_files(media_root), [])

    def test_uploaded_document_is_kept_on_success(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        data = self.renewal_data(policy_document_path='')
        data['policy_document'] = SimpleUploadedFile('renewal.pdf', b'%PDF-1.4 renewal', content_type='application/pdf')

        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.patch(
                f'/api/renewals/fire/{self.policy.pk}/renew/', data, format='multipart',
            )
            self.assertTrue(default_storage.exists('policy_documents/fire/renewal.pdf'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        new_policy = FirePolicy.objects.get(policy_number='FIRE-2025')
        self.assertEqual(new_policy.policy_document_path, 'policy_documents/fire/renewal.pdf')
        self.assertEqual(self.stored_files(media_root), ['renewal.pdf'])

    def test_renew_unknown_type_and_policy(self):
        response = self.client.patch('/api/renewals/marine/1/renew/', self.renewal_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.patch('/api/renewals/fire/99999/renew/', self.renewal_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_cancel_then_renew_conflicts(self):
        response = self.client.post(
            f'/api/renewals/fire/{self.policy.pk}/cancel/', {'reason': 'premises sold'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['policy']['status'], 'cancelled')

        response = self.client.patch(
            f'/api/renewals/fire/{self.policy.pk}/renew/', self.renewal_data(), format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_lineage_endpoint(self):
        self.client.patch(f'/api/renewals/fire/{self.policy.pk}/renew/', self.renewal_data(), format='json')
        new_policy = FirePolicy.objects.get(policy_number='FIRE-2025')

        response = self.client.get(f'/api/renewals/fire/{new_policy.pk}/lineage/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([term['policy_number'] for term in response.data['previousTerms']], ['FIRE-2024'])

    def test_eligible_endpoint(self):
        make_policy('fire', 'FIRE-LATER', self.today + timedelta(days=60))

        response = self.client.get('/api/renewals/fire/eligible/', {'days': 30})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        row = response.data['results'][0]
        self.assertEqual(row['reference'], 'FIRE-2024')
        self.assertEqual(row['daysUntilExpiry'], 10)
        self.assertEqual(row['holderName'], 'Acme Traders')

        response = self.client.get('/api/renewals/fire/eligible/', {'days': 'soon'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_eligible_window_is_bounded(self):
        response = self.client.get('/api/renewals/fire/eligible/', {'days': 99999999})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('days', response.data['errors'])

        response = self.client.get('/api/renewals/fire/eligible/', {'days': -1})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/renewals/fire/eligible/', {'days': 3650})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_period_listing(self):
        response = self.client.get('/api/renewals/fire/period/month/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        row = response.data['results'][0]
        self.assertEqual(row['reference'], 'FIRE-2024')
        self.assertEqual(row['email'], 'accounts@acme.example')
        self.assertEqual(row['daysUntilExpiry'], 10)

        response = self.client.get('/api/renewals/fire/period/week/')
        self.assertEqual(response.data['count'], 0)

    def test_period_listing_across_types(self):
        LabourLicense.objects.create(
            company=self.company, license_number='LL-7', expiry_date=self.today + timedelta(days=20),
        )

        response = self.client.get('/api/renewals/all/period/month/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [(row['policyType'], row['reference']) for row in response.data['results']],
            [('fire', 'FIRE-2024'), ('labour_license', 'LL-7')],
        )

    def test_period_listing_rejects_unknown_period_and_type(self):
        response = self.client.get('/api/renewals/fire/period/decade/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('period', response.data['errors'])

        response = self.client.get('/api/renewals/marine/period/week/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remind_endpoint_sends_once_a_day(self):
        make_config('fire', reminder_times=2, reminder_days=30)

        response = self.client.post(f'/api/renewals/fire/{self.policy.pk}/remind/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reminderLog']['status'], 'sent')
        self.assertEqual(response.data['reminderLog']['reminder_number'], 2)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['accounts@acme.example'])

        response = self.client.post(f'/api/renewals/fire/{self.policy.pk}/remind/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(ReminderLog.objects.count(), 1)

    def test_remind_endpoint_without_configuration(self):
        response = self.client.post(f'/api/renewals/fire/{self.policy.pk}/remind/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(ReminderLog.objects.exists())

    def test_remind_endpoint_reports_failed_send(self):
        make_config('fire', reminder_times=2, reminder_days=30)
        unreachable = make_policy('fire', 'FIRE-NOMAIL', self.today + timedelta(days=12), email='')

        response = self.client.post(f'/api/renewals/fire/{unreachable.pk}/remind/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['code'], 'dependency_failure')
        self.assertEqual(response.data['errors']['reminderLog']['status'], 'failed')
        self.assertEqual(ReminderLog.objects.get().error_message, MISSING_CONTACT)
        self.assertEqual(len(mail.outbox), 0)

    def test_counts_endpoint(self):
        response = self.client.get('/api/renewals/counts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fire'], {'week': 0, 'month': 1, 'year': 0})

    def test_run_reminders_requires_admin(self):
        response = self.client.post('/api/renewals/reminders/run/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_run_reminders_and_list_logs(self):
        make_config('fire', reminder_times=2, reminder_days=30)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/renewals/reminders/run/', {'service_types': ['fire']}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['perServiceType']['fire']['successful'], 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['accounts@acme.example'])

        response = self.client.get('/api/renewals/reminders/logs/', {'policy_type': 'fire'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['status'], 'sent')
        self.assertEqual(response.data[0]['reminder_number'], 2)

    def test_log_limit_is_bounded(self):
        for limit in (-1, 0, 1001, 'all'):
            response = self.client.get('/api/renewals/reminders/logs/', {'limit': limit})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, limit)
            self.assertIn('limit', response.data['errors'])


# =========================================================
#  TASK AND COMMAND
# =========================================================

class ReminderEntryPointTests(TestCase):
    def setUp(self):
        today = timezone.localdate()
        make_config('vehicle', reminder_times=3, reminder_days=30)
        make_policy('vehicle', 'VEH-1', today + timedelta(days=5), email='driver@example.com')
        HealthPolicy.objects.create(
            customer_type='Individual', policy_number='H-1', email='patient@example.com',
            policy_start_date=today - timedelta(days=360), policy_end_date=today + timedelta(days=5),
            net_premium=Decimal('100.00'), gst=Decimal('18.00'), gross_premium=Decimal('118.00'),
        )

    def test_celery_task_runs_all_types(self):
        result = process_renewal_reminders.apply().get()

        self.assertEqual(result['perServiceType']['vehicle']['successful'], 1)
        self.assertEqual(result['perServiceType']['health']['status'], 'skipped')
        self.assertEqual(result['total']['successful'], 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_command_dry_run(self):
        out = StringIO()
        call_command('send_renewal_reminders', '--dry-run', stdout=out)
        self.assertIn('DRY RUN', out.getvalue())
        self.assertFalse(ReminderLog.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_command_sends_for_selected_type(self):
        out = StringIO()
        call_command('send_renewal_reminders', '--service-type', 'vehicle', stdout=out)
        self.assertIn('1 sent', out.getvalue())
        self.assertEqual(ReminderLog.objects.get().policy_type, 'vehicle')
        self.assertEqual(mail.outbox[0].to, ['driver@example.com'])
