import threading
import signal

from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import ServiceError
from apps.notifications.senders import get_default_sender
from apps.renewals.registry import REMINDER_KINDS
from apps.renewals.scheduler import RenewalReminderScheduler


class Command(BaseCommand):
    help = 'Send today\'s renewal reminders for every configured policy, licence and certificate type'

    def add_arguments(self, parser):
        parser.add_argument(
            '--service-type',
            action='append',
            dest='service_types',
            choices=sorted(REMINDER_KINDS),
            help='Only process this type (repeat for several)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be sent without sending or logging anything'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        cancel_event = threading.Event()
        # Ctrl+C stops after the current record instead of mid-send
        in_main_thread = threading.current_thread() is threading.main_thread()
        previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel_event.set()) if in_main_thread else None

        self.stdout.write("📬 Processing Renewal Reminders")
        self.stdout.write("=" * 50)
        if dry_run:
            self.stdout.write(self.style.WARNING("🔍 DRY RUN: nothing will be sent or logged"))

        try:
            report = RenewalReminderScheduler(get_default_sender()).run_all(
                service_types=options['service_types'],
                cancel_event=cancel_event,
                dry_run=dry_run,
            )
        except ServiceError as e:
            raise CommandError(e.message)
        finally:
            if in_main_thread:
                signal.signal(signal.SIGINT, previous_handler)

        for service_type, result in report.results.items():
            line = (
                f"{service_type:<16} processed={result.processed} successful={result.successful} "
                f"errors={result.errors} skipped={result.skipped} [{result.status}]"
            )
            if result.status == 'failed':
                self.stdout.write(self.style.ERROR(f"❌ {line} {result.message}"))
            elif result.status == 'skipped':
                self.stdout.write(f"⏭️ {line}")
            else:
                self.stdout.write(f"✅ {line}")

        totals = report.totals
        if report.cancelled:
            self.stdout.write(self.style.WARNING("\n⚠️ Run cancelled before all types were processed"))
        self.stdout.write(self.style.SUCCESS(
            f"\n🎉 Done: {totals['successful']} sent, {totals['errors']} failed, "
            f"{totals['skipped']} skipped"
        ))
