"""
Calendar helpers for expiry arithmetic.

A `date` expiry is read as local midnight at the start of that date in the
active time zone, so a policy ending tomorrow is "1 day" away all day today.
"""

import math
from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta
from django.utils import timezone

ONE_DAY = timedelta(days=1)


def _as_aware(value):
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value)
        return value
    if isinstance(value, date):
        return timezone.make_aware(datetime.combine(value, time.min))
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def days_until_expiry(expiry, now=None) -> int:
    """Whole days until `expiry`, rounded up. Negative once expired."""
    now = _as_aware(now) if now is not None else timezone.now()
    return math.ceil((_as_aware(expiry) - now) / ONE_DAY)


def local_date(now=None) -> date:
    now = _as_aware(now) if now is not None else timezone.now()
    return timezone.localtime(now).date()


def start_of_day(now=None) -> datetime:
    """Local midnight at the start of the day containing `now`."""
    return timezone.make_aware(datetime.combine(local_date(now), time.min))


def derive_end_date(start, term_years) -> date:
    """
    Add whole years. 29 Feb moves to 28 Feb in a non-leap target year.
    """
    if term_years is None or term_years < 0:
        raise ValueError("term_years must be a non-negative integer")
    return start + relativedelta(years=term_years)


def subtract_years(end, term_years) -> date:
    if term_years is None or term_years < 0:
        raise ValueError("term_years must be a non-negative integer")
    return end - relativedelta(years=term_years)
