from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator


class RenewalConfig(models.Model):
    # =========================================================
    #  IDENTITY (One Row Per Service Type)
    # =========================================================
    service_type = models.CharField(
        max_length=50,
        unique=True,
        help_text="Tracked record type, e.g. vehicle, health, fire, dsc, labour_license",
    )
    service_name = models.CharField(max_length=100, help_text="Display name for the service")

    # =========================================================
    #  CADENCE
    # =========================================================
    reminder_times = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="How many reminders to send before expiry",
    )
    reminder_days = models.PositiveIntegerField(
        help_text="How many days before expiry reminders start",
    )
    # Bucket boundaries, e.g. [15, 7] means <=7 is reminder #3,
    # <=15 is #2 and anything earlier is #1. Empty means equal-width buckets.
    cadence_days = models.JSONField(default=list, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'renewal_configs'
        ordering = ['service_type']

    def __str__(self):
        state = 'active' if self.is_active else 'inactive'
        return f"{self.service_name} ({self.reminder_times}x within {self.reminder_days} days, {state})"

    def clean(self):
        errors = check_cadence(self.reminder_times, self.reminder_days, self.cadence_days)
        if errors:
            raise ValidationError({'cadence_days': errors})

    @property
    def cadence(self):
        from apps.renewals.eligibility import ReminderCadence
        return ReminderCadence.from_config(self)

    def reminder_number(self, days_until_expiry):
        return self.cadence.reminder_number(days_until_expiry)


def check_cadence(reminder_times, reminder_days, cadence_days):
    """Return a list of problems with an explicit cadence; empty when valid."""
    if not cadence_days:
        return []
    if not isinstance(cadence_days, (list, tuple)) or not all(
        isinstance(d, int) and not isinstance(d, bool) for d in cadence_days
    ):
        return ["Cadence must be a list of whole days."]
    errors = []
    if reminder_times is not None and len(cadence_days) != reminder_times - 1:
        errors.append(
            f"Expected {reminder_times - 1} boundaries for {reminder_times} reminders, got {len(cadence_days)}."
        )
    if len(set(cadence_days)) != len(cadence_days):
        errors.append("Cadence boundaries must be distinct.")
    if reminder_days is not None and any(d < 0 or d >= reminder_days for d in cadence_days):
        errors.append(f"Cadence boundaries must fall between 0 and {max(reminder_days - 1, 0)}.")
    return errors
