from django.core.management.base import BaseCommand, CommandError

from apps.renewal_settings.models import RenewalConfig, check_cadence
from apps.renewals.registry import REMINDER_KINDS


class Command(BaseCommand):
    help = 'Create or update the renewal reminder cadence for a service type'

    def add_arguments(self, parser):
        parser.add_argument(
            '--service-type',
            type=str,
            required=True,
            choices=sorted(REMINDER_KINDS),
            help='Service type to configure (e.g. vehicle, health, labour_license)'
        )
        parser.add_argument(
            '--reminder-days',
            type=int,
            required=True,
            help='Number of days before expiry that reminders start'
        )
        parser.add_argument(
            '--reminder-times',
            type=int,
            required=True,
            help='How many reminders to send within that window'
        )
        parser.add_argument(
            '--cadence',
            type=str,
            help='Comma-separated bucket boundaries in days, e.g. "15,7"'
        )
        parser.add_argument(
            '--service-name',
            type=str,
            help='Display name (defaults to the type label)'
        )
        parser.add_argument(
            '--inactive',
            action='store_true',
            help='Store the configuration but do not send reminders for it'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be saved without making changes'
        )

    def handle(self, *args, **options):
        service_type = options['service_type']
        reminder_days = options['reminder_days']
        reminder_times = options['reminder_times']

        if reminder_days < 0:
            raise CommandError('--reminder-days cannot be negative')
        if reminder_times < 1:
            raise CommandError('--reminder-times must be at least 1')

        cadence_days = []
        if options['cadence']:
            try:
                cadence_days = [int(day.strip()) for day in options['cadence'].split(',') if day.strip()]
            except ValueError:
                raise CommandError('--cadence must be a comma-separated list of whole days')
        errors = check_cadence(reminder_times, reminder_days, cadence_days)
        if errors:
            raise CommandError(' '.join(errors))

        defaults = {
            'service_name': options['service_name'] or REMINDER_KINDS[service_type].label,
            'reminder_days': reminder_days,
            'reminder_times': reminder_times,
            'cadence_days': cadence_days,
            'is_active': not options['inactive'],
        }

        self.stdout.write("🔧 Configuring Renewal Reminders")
        self.stdout.write("=" * 50)
        self.stdout.write(f"🎯 Service type: {service_type}")
        self.stdout.write(
            f"📅 {reminder_times} reminder(s) within {reminder_days} days"
            f"{' at ' + ', '.join(map(str, cadence_days)) + ' days' if cadence_days else ''}"
        )

        if options['dry_run']:
            self.stdout.write(self.style.WARNING("\n🔍 DRY RUN: no changes saved"))
            return

        config, created = RenewalConfig.objects.update_or_create(
            service_type=service_type, defaults=defaults,
        )

        self.stdout.write("\n📊 Reminder buckets:")
        for bucket in config.cadence.describe():
            self.stdout.write(
                f"   #{bucket['reminder_number']}: {bucket['from_days']} to {bucket['to_days']} days before expiry"
            )

        verb = 'Created' if created else 'Updated'
        state = 'active' if config.is_active else 'inactive'
        self.stdout.write(self.style.SUCCESS(f"\n✅ {verb} {state} configuration for {service_type}"))
