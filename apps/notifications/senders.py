import logging
from dataclasses import dataclass
from email.utils import make_msgid
from typing import Optional

from django.conf import settings
from django.core.mail import EmailMessage, get_connection
from django.template.loader import render_to_string
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def as_response_data(self):
        if not self.success:
            return None
        return {'messageId': self.message_id or 'unknown'}


class NotificationSender:
    """
    Delivers one rendered reminder to one recipient.

    Implementations return a SendResult instead of raising for delivery
    problems. Anything they do raise is treated by callers as a failed send.
    """

    channel = 'email'

    def subject_for(self, template_kind, payload):
        prefix = getattr(settings, 'RENEWAL_NOTIFICATION_SUBJECT_PREFIX', '')
        return (
            f"{prefix}{payload.get('label', 'Policy')} Renewal Reminder - "
            f"{payload.get('days_until_expiry')} days remaining"
        )

    def send(self, template_kind, recipient, payload) -> SendResult:
        raise NotImplementedError


class EmailNotificationSender(NotificationSender):
    channel = 'email'

    def __init__(self, from_email=None, timeout=None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.timeout = timeout if timeout is not None else getattr(settings, 'EMAIL_TIMEOUT', None)

    def render(self, template_kind, recipient, payload):
        context = dict(payload, recipient=recipient)
        return render_to_string(f'notifications/{template_kind}.txt', context)

    def send(self, template_kind, recipient, payload) -> SendResult:
        try:
            body = self.render(template_kind, recipient, payload)
            domain = self.from_email.rsplit('@', 1)[-1] if '@' in self.from_email else None
            message_id = make_msgid(domain=domain)
            email = EmailMessage(
                subject=self.subject_for(template_kind, payload),
                body=body,
                from_email=self.from_email,
                to=[recipient.email],
                headers={'Message-ID': message_id},
                connection=get_connection(timeout=self.timeout),
            )
            sent = email.send(fail_silently=False)
        except Exception as e:
            logger.warning(f"Email to {recipient.email} failed: {e}")
            return SendResult(success=False, error=str(e))

        if not sent:
            return SendResult(success=False, error='Mail backend accepted no messages')
        logger.info(f"Reminder email sent to {recipient.email} ({template_kind})")
        return SendResult(success=True, message_id=message_id.strip('<>'))


def get_default_sender():
    sender_class = import_string(settings.RENEWAL_NOTIFICATION_SENDER)
    return sender_class()
