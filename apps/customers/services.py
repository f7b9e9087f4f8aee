import logging
from dataclasses import dataclass
from typing import Optional

from .models import Company, Consumer

logger = logging.getLogger(__name__)

COMPANY = 'company'
CONSUMER = 'consumer'

HOLDER_MODELS = {
    COMPANY: Company,
    CONSUMER: Consumer,
}


@dataclass(frozen=True)
class Contact:
    name: str
    email: str
    phone: str = ''


class HolderResolver:
    """
    Looks up the person or organisation to notify for a policy or licence.

    The linked holder wins. Blank holder fields fall back to the contact
    details stored on the record itself, and a record without a holder is
    addressed using only those embedded fields.
    """

    def resolve(self, kind, holder_id) -> Optional[Contact]:
        model = HOLDER_MODELS.get(kind)
        if model is None:
            raise ValueError(f"Unknown holder kind: {kind}")
        holder = model.objects.filter(pk=holder_id).first()
        if holder is None or not holder.contact_email:
            return None
        return Contact(
            name=holder.contact_name,
            email=holder.contact_email,
            phone=holder.contact_phone or '',
        )

    def for_record(self, record) -> Optional[Contact]:
        holder = getattr(record, 'company', None) or getattr(record, 'consumer', None)
        embedded_name = getattr(record, 'proposer_name', '') or ''
        embedded_email = getattr(record, 'email', '') or ''
        embedded_phone = getattr(record, 'mobile_number', '') or ''

        if holder is not None:
            name = holder.contact_name or embedded_name
            email = holder.contact_email or embedded_email
            phone = holder.contact_phone or embedded_phone
        else:
            name, email, phone = embedded_name, embedded_email, embedded_phone

        if not email:
            logger.debug(f"No contact email for {type(record).__name__} #{record.pk}")
            return None
        return Contact(name=name or 'Customer', email=email, phone=phone)
