"""
Daily renewal reminder run.

For every tracked record type with an active RenewalConfig the scheduler
finds records expiring inside the reminder window, decides which are due
today, sends one notification per due record and writes exactly one
ReminderLog row with the outcome. One record failing never stops the batch;
one service type failing at the database never stops the other types.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as SendTimeout
from dataclasses import dataclass, field
from typing import Dict

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.forms.models import model_to_dict
from django.utils import timezone

from apps.core.exceptions import ConflictError, DependencyFailure, NotFoundError, PersistenceFailure
from apps.customers.services import HolderResolver
from apps.notifications.models import ReminderLog
from apps.notifications.senders import NotificationSender, SendResult, get_default_sender
from apps.renewal_settings.services import RenewalConfigStore
from .eligibility import evaluate
from .expiry import days_until_expiry, local_date
from .registry import REMINDER_KINDS, get_reminder_kind
from .selectors import active_records, get_eligible_policies

logger = logging.getLogger(__name__)

STATUS_COMPLETED = 'completed'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'
STATUS_CANCELLED = 'cancelled'

MISSING_CONTACT = 'Client contact details not found'

COUNTERS = ('processed', 'successful', 'errors', 'skipped')


@dataclass
class ServiceRunResult:
    service_type: str
    processed: int = 0
    successful: int = 0
    errors: int = 0
    skipped: int = 0
    status: str = STATUS_COMPLETED
    message: str = ''

    def as_dict(self):
        return {
            'processed': self.processed,
            'successful': self.successful,
            'errors': self.errors,
            'skipped': self.skipped,
            'status': self.status,
            'message': self.message,
        }


@dataclass
class ReminderRunReport:
    started_at: object = None
    finished_at: object = None
    dry_run: bool = False
    cancelled: bool = False
    results: Dict[str, ServiceRunResult] = field(default_factory=dict)

    @property
    def totals(self):
        return {
            name: sum(getattr(result, name) for result in self.results.values())
            for name in COUNTERS
        }

    def as_dict(self):
        return {
            'perServiceType': {key: result.as_dict() for key, result in self.results.items()},
            'total': self.totals,
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'finishedAt': self.finished_at.isoformat() if self.finished_at else None,
            'dryRun': self.dry_run,
            'cancelled': self.cancelled,
        }


class RenewalReminderScheduler:
    def __init__(self, sender, config_store=None, holder_resolver=None, clock=timezone.now,
                 send_timeout=None, lookahead_days=None):
        self.sender = sender
        self.channel = getattr(sender, 'channel', NotificationSender.channel)
        self.config_store = config_store or RenewalConfigStore()
        self.holder_resolver = holder_resolver or HolderResolver()
        self.clock = clock
        self.send_timeout = send_timeout if send_timeout is not None else settings.RENEWAL_SEND_TIMEOUT
        self.lookahead_days = lookahead_days if lookahead_days is not None else settings.RENEWAL_LOOKAHEAD_DAYS

    def run_all(self, service_types=None, cancel_event=None, dry_run=False):
        keys = list(REMINDER_KINDS) if not service_types else list(service_types)
        for key in keys:
            get_reminder_kind(key)

        report = ReminderRunReport(started_at=self.clock(), dry_run=dry_run)
        logger.info(f"Starting renewal reminder run for {', '.join(keys)}{' (dry run)' if dry_run else ''}")

        executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='renewal-send')
        try:
            for key in keys:
                result = self.run_service_type(
                    key, cancel_event=cancel_event, dry_run=dry_run, executor=executor,
                )
                report.results[key] = result
                if result.status == STATUS_CANCELLED:
                    report.cancelled = True
                    logger.warning(f"Renewal reminder run cancelled during {key}")
                    break
        finally:
            # A send that timed out may still be running; do not wait for it
            executor.shutdown(wait=False)

        report.finished_at = self.clock()
        totals = report.totals
        logger.info(
            f"Renewal reminder run finished: processed={totals['processed']} "
            f"successful={totals['successful']} errors={totals['errors']} skipped={totals['skipped']}"
        )

        attempted = [r for r in report.results.values() if r.status != STATUS_SKIPPED]
        if attempted and all(r.status == STATUS_FAILED for r in attempted):
            raise PersistenceFailure(
                'Renewal reminder run failed for every service type',
                errors=report.as_dict(),
            )
        return report

    def run_service_type(self, service_type, cancel_event=None, dry_run=False, executor=None):
        kind = get_reminder_kind(service_type)
        result = ServiceRunResult(service_type=kind.key)
        now = self.clock()

        owns_executor = executor is None
        if owns_executor:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='renewal-send')

        try:
            config = self.config_store.get_config(kind.service_type)
            if config is None:
                logger.info(f"No renewal configuration for {kind.service_type}; skipping")
                result.status = STATUS_SKIPPED
                result.message = 'No active renewal configuration'
                return result

            window = max(self.lookahead_days, config.reminder_days)
            candidates = list(get_eligible_policies(kind.key, window, now))
            logger.debug(f"{kind.key}: {len(candidates)} candidates within {window} days")

            for record in candidates:
                self._process_candidate(kind, config, record, now, result, dry_run, executor)
                if cancel_event is not None and cancel_event.is_set():
                    result.status = STATUS_CANCELLED
                    result.message = 'Cancelled'
                    break
        except DatabaseError as e:
            logger.exception(f"Renewal reminders for {kind.key} failed at the database")
            result.status = STATUS_FAILED
            result.message = str(e)
        finally:
            if owns_executor:
                executor.shutdown(wait=False)

        logger.info(
            f"{kind.key}: processed={result.processed} successful={result.successful} "
            f"errors={result.errors} skipped={result.skipped} status={result.status}"
        )
        return result

    def remind_one(self, service_type, record_id):
        """
        Send today's reminder for a single record on demand.

        The same eligibility, dedup and logging rules as the daily run apply.
        Returns the ServiceRunResult and the ReminderLog row written.
        """
        kind = get_reminder_kind(service_type)
        config = self.config_store.require_config(kind.service_type)
        record = active_records(kind).filter(pk=record_id).first()
        if record is None:
            raise NotFoundError(f'Active {kind.label} record {record_id} not found')

        now = self.clock()
        days = days_until_expiry(getattr(record, kind.expiry_field), now)
        decision = evaluate(record.pk, kind.key, days, config, now)
        if not decision.due:
            raise ConflictError(f'No reminder due for {kind.label} record {record_id}: {decision.reason}')

        result = ServiceRunResult(service_type=kind.key)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='renewal-send')
        try:
            self._process_candidate(kind, config, record, now, result, False, executor)
        finally:
            executor.shutdown(wait=False)

        log = ReminderLog.objects.filter(
            policy_type=kind.key, policy_id=record.pk, sent_on=local_date(now),
        ).first()
        logger.info(f"Manual reminder for {kind.key} #{record.pk}: {result.as_dict()}")
        return result, log

    def _process_candidate(self, kind, config, record, now, result, dry_run, executor):
        expiry = getattr(record, kind.expiry_field)
        days = days_until_expiry(expiry, now)
        decision = evaluate(record.pk, kind.key, days, config, now)
        if not decision.due:
            result.skipped += 1
            return

        result.processed += 1
        contact = None
        subject = ''
        try:
            contact = self.holder_resolver.for_record(record)
            payload = build_payload(kind, record, days, decision.reminder_number, config)
            subject = self._subject_for(kind.template, payload)
        except DatabaseError:
            raise
        except Exception as e:
            logger.exception(f"{kind.key} #{record.pk}: reminder could not be prepared")
            outcome = SendResult(success=False, error=f'Reminder could not be prepared: {e}')
        else:
            if dry_run:
                if contact is None:
                    result.errors += 1
                else:
                    result.successful += 1
                return
            if contact is None:
                outcome = SendResult(success=False, error=MISSING_CONTACT)
            else:
                outcome = self._send(executor, kind.template, contact, payload)

        if dry_run:
            result.errors += 1
            return

        try:
            with transaction.atomic():
                ReminderLog.objects.create(
                    policy_id=record.pk,
                    policy_type=kind.key,
                    reminder_number=decision.reminder_number,
                    channel=self.channel,
                    sent_at=self.clock(),
                    sent_on=local_date(now),
                    days_until_expiry=days,
                    expiry_date=expiry,
                    status=ReminderLog.STATUS_SENT if outcome.success else ReminderLog.STATUS_FAILED,
                    client_name=contact.name if contact else '',
                    client_email=contact.email if contact else '',
                    client_phone=contact.phone if contact else '',
                    email_subject=subject[:255],
                    response_data=outcome.as_response_data(),
                    error_message=outcome.error or '',
                )
        except IntegrityError:
            # Another run logged this record today
            logger.info(f"{kind.key} #{record.pk}: reminder already logged today")
            result.processed -= 1
            result.skipped += 1
            return

        if outcome.success:
            result.successful += 1
            logger.info(f"{kind.key} #{record.pk}: reminder {decision.reminder_number} sent, {days} days to expiry")
        else:
            result.errors += 1
            logger.warning(f"{kind.key} #{record.pk}: reminder failed: {outcome.error}")

    def _subject_for(self, template, payload):
        # Senders only have to implement send()
        subject_for = getattr(self.sender, 'subject_for', None)
        if subject_for is None:
            return NotificationSender.subject_for(self.sender, template, payload)
        return subject_for(template, payload)

    def _send(self, executor, template, contact, payload):
        future = executor.submit(self.sender.send, template, contact, payload)
        try:
            outcome = future.result(timeout=self.send_timeout)
        except SendTimeout:
            future.cancel()
            return SendResult(success=False, error=f'Send timed out after {self.send_timeout}s')
        except DependencyFailure as e:
            return SendResult(success=False, error=e.message)
        except Exception as e:
            return SendResult(success=False, error=str(e))
        if not isinstance(outcome, SendResult):
            return SendResult(success=False, error='Sender returned no result')
        return outcome


def build_payload(kind, record, days, reminder_number, config):
    payload = model_to_dict(record)
    payload.update({
        'policy_type': kind.key,
        'policy_id': record.pk,
        'label': kind.label,
        'reference_label': kind.reference_label,
        'reference': getattr(record, kind.number_field),
        'expiry_date': getattr(record, kind.expiry_field),
        'days_until_expiry': days,
        'reminder_number': reminder_number,
        'reminder_times': config.reminder_times,
    })
    return payload


def process_all(sender=None, **kwargs) -> ReminderRunReport:
    """Run every configured service type with the configured sender."""
    scheduler = RenewalReminderScheduler(sender or get_default_sender())
    return scheduler.run_all(**kwargs)
