import logging
from dataclasses import dataclass

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.core.exceptions import (
    ValidationError, NotFoundError, ConflictError, PersistenceFailure,
)
from apps.core.models import AuditLog
from apps.policies.models import (
    BUSINESS_TYPE_RENEWAL, STATUS_ACTIVE, STATUS_CANCELLED, STATUS_EXPIRED,
)
from apps.policies.registry import get_policy_kind
from .serializers import RENEWAL_SERIALIZERS

logger = logging.getLogger(__name__)

# Archive columns that describe the snapshot itself rather than the policy
SNAPSHOT_ONLY_FIELDS = {'id', 'original_policy_id', 'previous_policy_id', 'renewed_at', 'created_at', 'updated_at'}


@dataclass(frozen=True)
class RenewalResult:
    previous_policy: object
    new_policy: object


class PolicyRenewalService:
    """
    Renewal and cancellation of live policies.

    A renewal moves the current row into the archive table and replaces it
    with a new active row for the next term, in one transaction. The live
    tables only ever hold the current term of each policy.
    """

    def __init__(self, clock=timezone.now):
        self.clock = clock

    def renew(self, policy_type, policy_id, payload, document_ref, actor=None) -> RenewalResult:
        kind = get_policy_kind(policy_type)
        if not document_ref:
            raise ValidationError(
                'Policy document is required for renewal',
                errors={'policy_document': ['This field is required.']},
            )

        serializer = RENEWAL_SERIALIZERS[kind.key](
            data=payload, context={'model': kind.model, 'policy_id': policy_id},
        )
        if not serializer.is_valid():
            raise ValidationError('Invalid renewal data', errors=serializer.errors)
        data = dict(serializer.validated_data)

        logger.info(f"Starting renewal of {kind.key} policy {policy_id}")
        try:
            with transaction.atomic():
                current = self._lock_active(kind, policy_id)
                now = self.clock()
                old_id = current.pk
                old_number = current.policy_number
                old_premium = current.gross_premium

                archive = self._snapshot(kind, current, now)
                # Remove the live row before inserting its successor so the
                # new term may keep the same policy number
                current.delete()
                new_policy = kind.model.objects.create(**self._successor_fields(data, document_ref, archive))

                premium_change = new_policy.gross_premium - old_premium
                AuditLog.objects.create(
                    action='renew',
                    model_name=kind.model.__name__,
                    object_id=str(new_policy.pk),
                    object_repr=str(new_policy),
                    actor=actor or '',
                    changes={
                        'policy_number': {'old': old_number, 'new': new_policy.policy_number},
                        'gross_premium': {'old': str(old_premium), 'new': str(new_policy.gross_premium)},
                    },
                    additional_data={
                        'policy_type': kind.key,
                        'original_policy_id': old_id,
                        'archived_policy_id': archive.pk,
                        'premium_change': str(premium_change),
                    },
                )
        except IntegrityError as e:
            logger.warning(f"Renewal of {kind.key} policy {policy_id} rejected by a constraint: {e}")
            raise ConflictError(
                'Renewal conflicts with an existing policy',
                errors={'policy_number': [str(e)]},
            )
        except DatabaseError as e:
            logger.exception(f"Renewal of {kind.key} policy {policy_id} rolled back")
            raise PersistenceFailure(f'Renewal could not be saved: {e}')

        logger.info(
            f"Renewed {kind.key} policy {old_number} -> {new_policy.policy_number} "
            f"(archive #{archive.pk}, premium change {premium_change})"
        )
        return RenewalResult(previous_policy=archive, new_policy=new_policy)

    def cancel(self, policy_type, policy_id, reason='', actor=None):
        kind = get_policy_kind(policy_type)
        try:
            with transaction.atomic():
                policy = self._lock_active(kind, policy_id)
                policy.status = STATUS_CANCELLED
                policy.cancelled_at = self.clock()
                policy.cancellation_reason = reason or ''
                policy.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])
                AuditLog.objects.create(
                    action='cancel',
                    model_name=kind.model.__name__,
                    object_id=str(policy.pk),
                    object_repr=str(policy),
                    actor=actor or '',
                    changes={'status': {'old': STATUS_ACTIVE, 'new': STATUS_CANCELLED}},
                    additional_data={'policy_type': kind.key, 'reason': policy.cancellation_reason},
                )
        except DatabaseError as e:
            logger.exception(f"Cancellation of {kind.key} policy {policy_id} rolled back")
            raise PersistenceFailure(f'Cancellation could not be saved: {e}')

        logger.info(f"Cancelled {kind.key} policy {policy.policy_number}")
        return policy

    def lineage(self, policy_type, policy_id):
        """Archived terms of a live policy, most recent first."""
        kind = get_policy_kind(policy_type)
        policy = kind.model.objects.filter(pk=policy_id).first()
        if policy is None:
            raise NotFoundError(f'{kind.label} policy {policy_id} not found')

        chain = []
        seen = set()
        next_id = policy.previous_policy_id
        while next_id and next_id not in seen:
            seen.add(next_id)
            archive = kind.archive_model.objects.filter(pk=next_id).first()
            if archive is None:
                break
            chain.append(archive)
            next_id = archive.previous_policy_id
        return chain

    def _lock_active(self, kind, policy_id):
        policy = kind.model.objects.select_for_update().filter(pk=policy_id).first()
        if policy is None:
            raise NotFoundError(f'{kind.label} policy {policy_id} not found')
        if policy.status != STATUS_ACTIVE:
            raise ConflictError(f'{kind.label} policy {policy.policy_number} is {policy.status}, not active')
        return policy

    def _snapshot(self, kind, policy, now):
        values = {
            f.attname: getattr(policy, f.attname)
            for f in kind.archive_model._meta.concrete_fields
            if f.name not in SNAPSHOT_ONLY_FIELDS
        }
        values.update(
            status=STATUS_EXPIRED,
            original_policy_id=policy.pk,
            previous_policy_id=policy.previous_policy_id,
            renewed_at=now,
        )
        return kind.archive_model.objects.create(**values)

    def _successor_fields(self, data, document_ref, archive):
        holder = data.pop('holder')
        fields = dict(data)
        fields.update(holder.as_fields())
        fields.update(
            customer_type=holder.customer_type,
            business_type=BUSINESS_TYPE_RENEWAL,
            status=STATUS_ACTIVE,
            policy_document_path=document_ref,
            previous_policy=archive,
        )
        return fields
