from celery import shared_task
import logging

from apps.core.exceptions import PersistenceFailure
from apps.notifications.senders import get_default_sender
from .scheduler import RenewalReminderScheduler

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=2)
def process_renewal_reminders(self, service_types=None, dry_run=False):
    """
    Daily renewal reminder run (scheduled through CELERY_BEAT_SCHEDULE).
    Retries only when every service type failed at the database.
    """
    try:
        report = RenewalReminderScheduler(get_default_sender()).run_all(
            service_types=service_types, dry_run=dry_run,
        )
    except PersistenceFailure as exc:
        logger.error(f"Renewal reminder run failed: {exc.message}")
        raise self.retry(exc=exc, countdown=60 * 5 * (2 ** self.request.retries))

    totals = report.totals
    logger.info(f"Renewal reminders: {totals['successful']} sent, {totals['errors']} failed")
    return report.as_dict()
