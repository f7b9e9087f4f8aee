"""
Daily reminder decisions.

Nothing about "which reminder comes next" is stored. Each day the decision
is recomputed from the days left, the service type's cadence and whether a
reminder log row already exists for today.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from apps.notifications.models import ReminderLog
from apps.renewal_settings.services import should_consider
from .expiry import start_of_day


@dataclass(frozen=True)
class ReminderCadence:
    """
    Ordered partition of [0, reminder_days] into reminder_times buckets.

    `boundaries` holds the upper edge of every bucket after the first,
    largest first: (15, 7) means days 0-7 is reminder #3, 8-15 is #2 and
    16-reminder_days is #1.
    """

    reminder_times: int
    reminder_days: int
    boundaries: Tuple[int, ...] = ()

    @classmethod
    def from_config(cls, config):
        if config.cadence_days:
            boundaries = tuple(sorted(set(config.cadence_days), reverse=True))
        else:
            boundaries = cls.equal_boundaries(config.reminder_times, config.reminder_days)
        return cls(config.reminder_times, config.reminder_days, boundaries)

    @staticmethod
    def equal_boundaries(reminder_times, reminder_days):
        return tuple(
            reminder_days * i // reminder_times
            for i in range(reminder_times - 1, 0, -1)
        )

    def in_window(self, days):
        return 0 <= days <= self.reminder_days

    def reminder_number(self, days) -> Optional[int]:
        if not self.in_window(days):
            return None
        return 1 + sum(1 for edge in self.boundaries if days <= edge)

    def describe(self):
        buckets = []
        upper = self.reminder_days
        for number, edge in enumerate(self.boundaries, start=1):
            buckets.append({'reminder_number': number, 'from_days': upper, 'to_days': edge + 1})
            upper = edge
        buckets.append({'reminder_number': len(self.boundaries) + 1, 'from_days': upper, 'to_days': 0})
        return buckets


@dataclass(frozen=True)
class EligibilityDecision:
    due: bool
    reason: str
    reminder_number: Optional[int] = None


def already_sent_today(policy_id, policy_type, now=None):
    return ReminderLog.objects.filter(
        policy_id=policy_id,
        policy_type=policy_type,
        sent_at__gte=start_of_day(now),
    ).exists()


def is_due_today(policy_id, policy_type, days, config, now=None):
    return evaluate(policy_id, policy_type, days, config, now).due


def evaluate(policy_id, policy_type, days, config, now=None):
    if days < 0:
        return EligibilityDecision(False, 'expired')
    if not should_consider(config, days):
        return EligibilityDecision(False, 'outside reminder window')
    if already_sent_today(policy_id, policy_type, now):
        return EligibilityDecision(False, 'already sent today')
    return EligibilityDecision(True, 'due', config.reminder_number(days))
