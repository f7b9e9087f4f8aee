from datetime import timedelta

from django.db.models import Count, Q

from apps.notifications.models import ReminderLog
from .expiry import local_date
from .registry import REMINDER_KINDS, get_reminder_kind

COUNT_BUCKETS = [
    ('week', 0, 6),
    ('month', 7, 29),
    ('year', 30, 364),
]


def active_records(kind):
    queryset = kind.model.objects.all()
    if kind.active_status:
        queryset = queryset.filter(status=kind.active_status)
    holder_fields = [f for f in ('company', 'consumer') if _has_field(kind.model, f)]
    if holder_fields:
        queryset = queryset.select_related(*holder_fields)
    return queryset


def get_eligible_policies(policy_type, window_days, now=None):
    """Active records of one type expiring between today and today + window_days."""
    kind = get_reminder_kind(policy_type)
    today = local_date(now)
    return active_records(kind).filter(**{
        f'{kind.expiry_field}__gte': today,
        f'{kind.expiry_field}__lte': today + timedelta(days=window_days),
    }).order_by(kind.expiry_field, 'pk')


def get_policies_in_period(policy_type, period, now=None):
    """Active records of one type in a single counts bucket (week, month or year)."""
    kind = get_reminder_kind(policy_type)
    bounds = {name: (low, high) for name, low, high in COUNT_BUCKETS}
    if period not in bounds:
        raise ValueError(f"Unknown period: {period}")
    low, high = bounds[period]
    today = local_date(now)
    return active_records(kind).filter(**{
        f'{kind.expiry_field}__gte': today + timedelta(days=low),
        f'{kind.expiry_field}__lte': today + timedelta(days=high),
    }).order_by(kind.expiry_field, 'pk')


def get_renewal_counts(now=None):
    """
    Active records per type expiring within the next week (0-6 days), month
    (7-29) and year (30-364). The buckets do not overlap.
    """
    today = local_date(now)
    counts = {}
    for key, kind in REMINDER_KINDS.items():
        field = kind.expiry_field
        aggregates = {
            name: Count('pk', filter=Q(**{
                f'{field}__gte': today + timedelta(days=low),
                f'{field}__lte': today + timedelta(days=high),
            }))
            for name, low, high in COUNT_BUCKETS
        }
        counts[key] = active_records(kind).aggregate(**aggregates)
    counts['total'] = {
        name: sum(row[name] for row in counts.values())
        for name, _, _ in COUNT_BUCKETS
    }
    return counts


def recent_reminder_logs(limit=100, policy_type=None):
    logs = ReminderLog.objects.all()
    if policy_type:
        logs = logs.filter(policy_type=policy_type)
    return logs.order_by('-sent_at', '-id')[:limit]


def _has_field(model, name):
    return any(f.name == name for f in model._meta.get_fields())
