import logging

from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework import status
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import ValidationError, DependencyFailure
from apps.core.pagination import StandardResultsSetPagination
from apps.customers.services import HolderResolver
from apps.notifications.senders import get_default_sender
from apps.notifications.serializers import ReminderLogSerializer
from apps.policies.serializers import serializer_for
from .expiry import days_until_expiry
from .registry import REMINDER_KINDS, get_reminder_kind
from .scheduler import RenewalReminderScheduler
from .selectors import (
    COUNT_BUCKETS, get_eligible_policies, get_policies_in_period, get_renewal_counts, recent_reminder_logs,
)
from .serializers import CancelPolicySerializer, ReminderRunSerializer
from .services import PolicyRenewalService

logger = logging.getLogger(__name__)

MAX_WINDOW_DAYS = 3650
MAX_LOG_LIMIT = 1000


def actor_name(request):
    user = getattr(request, 'user', None)
    return user.get_username() if user is not None and user.is_authenticated else ''


def whole_number_param(request, name, default, minimum, maximum):
    raw = request.query_params.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a whole number', errors={name: [str(raw)]})
    if not minimum <= value <= maximum:
        raise ValidationError(
            f'{name} must be between {minimum} and {maximum}',
            errors={name: [str(raw)]},
        )
    return value


def record_row(kind, record):
    expiry = getattr(record, kind.expiry_field)
    holder = getattr(record, 'holder', None)
    contact = HolderResolver().for_record(record)
    return {
        'id': record.pk,
        'policyType': kind.key,
        'reference': getattr(record, kind.number_field),
        'holderName': str(holder) if holder is not None else getattr(record, 'proposer_name', ''),
        'email': contact.email if contact else None,
        'expiryDate': expiry.isoformat(),
        'daysUntilExpiry': days_until_expiry(expiry),
        'status': getattr(record, 'status', ''),
    }


class RenewPolicyView(APIView):
    """
    PATCH /api/renewals/<policy_type>/<id>/renew/

    Accepts the new term as JSON or multipart form data. The replacement
    document is either uploaded as `policy_document` or referenced by an
    already stored `policy_document_path`. An uploaded file is removed again
    when the renewal is rejected.
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, policy_type, policy_id):
        payload = {
            key: request.data.get(key)
            for key in request.data
            if key not in ('policy_document', 'policy_document_path')
        }
        upload = request.FILES.get('policy_document')
        stored_name = None
        if upload is not None:
            stored_name = default_storage.save(f'policy_documents/{policy_type}/{upload.name}', upload)
            document_ref = stored_name
        else:
            document_ref = request.data.get('policy_document_path') or ''

        try:
            result = PolicyRenewalService().renew(
                policy_type, policy_id, payload, document_ref, actor=actor_name(request),
            )
        except Exception:
            if stored_name:
                default_storage.delete(stored_name)
                logger.info(f"Removed {stored_name} after rejected renewal of {policy_type} #{policy_id}")
            raise

        new_serializer = serializer_for(type(result.new_policy))
        previous_serializer = serializer_for(type(result.previous_policy))
        return Response({
            'message': 'Policy renewed successfully',
            'previousPolicy': previous_serializer(result.previous_policy).data,
            'newPolicy': new_serializer(result.new_policy).data,
        }, status=status.HTTP_200_OK)


class CancelPolicyView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, policy_type, policy_id):
        serializer = CancelPolicySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        policy = PolicyRenewalService().cancel(
            policy_type, policy_id,
            reason=serializer.validated_data['reason'],
            actor=actor_name(request),
        )
        return Response({
            'message': 'Policy cancelled',
            'policy': serializer_for(type(policy))(policy).data,
        })


class PolicyLineageView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, policy_type, policy_id):
        chain = PolicyRenewalService().lineage(policy_type, policy_id)
        return Response({
            'policyType': policy_type,
            'policyId': policy_id,
            'previousTerms': [serializer_for(type(archive))(archive).data for archive in chain],
        })


class SendReminderView(APIView):
    """
    POST /api/renewals/<policy_type>/<id>/remind/

    Sends today's reminder for one record now. Records that were already
    reminded today or sit outside the reminder window get a 409.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, policy_type, policy_id):
        scheduler = RenewalReminderScheduler(get_default_sender())
        result, log = scheduler.remind_one(policy_type, policy_id)
        log_data = ReminderLogSerializer(log).data if log is not None else None
        if result.errors:
            raise DependencyFailure(
                log.error_message if log is not None else 'Reminder could not be sent',
                errors={'reminderLog': log_data},
            )
        if not result.successful:
            # Logged by a concurrent run between the check and the write
            return Response({'message': 'Reminder already sent today', 'reminderLog': log_data})
        logger.info(f"Manual reminder for {policy_type} #{policy_id} sent by {actor_name(request)}")
        return Response({'message': 'Reminder sent successfully', 'reminderLog': log_data})


class EligiblePoliciesView(APIView):
    """Dashboard listing of active records expiring within `days` (default: lookahead window)."""
    permission_classes = [IsAuthenticated]

    def get(self, request, policy_type):
        kind = get_reminder_kind(policy_type)
        window_days = whole_number_param(
            request, 'days', settings.RENEWAL_LOOKAHEAD_DAYS, 0, MAX_WINDOW_DAYS,
        )
        queryset = get_eligible_policies(kind.key, window_days)
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response([record_row(kind, record) for record in page])


class RenewalPeriodListView(APIView):
    """
    GET /api/renewals/<policy_type>/period/<week|month|year>/

    The records behind one cell of the counts dashboard. `all` lists every
    tracked type.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, policy_type, period):
        periods = [name for name, _, _ in COUNT_BUCKETS]
        if period not in periods:
            raise ValidationError(
                f"Invalid period. Must be one of: {', '.join(periods)}",
                errors={'period': [period]},
            )
        kinds = list(REMINDER_KINDS.values()) if policy_type == 'all' else [get_reminder_kind(policy_type)]

        rows = []
        for kind in kinds:
            rows.extend(record_row(kind, record) for record in get_policies_in_period(kind.key, period))
        rows.sort(key=lambda row: (row['expiryDate'], row['policyType'], row['id']))

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(rows, request, view=self)
        return paginator.get_paginated_response(page)


class RenewalCountsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(get_renewal_counts())


class RunRemindersView(APIView):
    """Run the reminder job now instead of waiting for the daily schedule."""
    permission_classes = [IsAdminUser]

    def post(self, request):
        serializer = ReminderRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        scheduler = RenewalReminderScheduler(get_default_sender())
        report = scheduler.run_all(
            service_types=serializer.validated_data.get('service_types') or None,
            dry_run=serializer.validated_data['dry_run'],
        )
        logger.info(f"Manual reminder run by {actor_name(request)}: {report.totals}")
        return Response(report.as_dict())


class ReminderLogListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        limit = whole_number_param(request, 'limit', 100, 1, MAX_LOG_LIMIT)
        logs = recent_reminder_logs(limit=limit, policy_type=request.query_params.get('policy_type'))
        return Response(ReminderLogSerializer(logs, many=True).data)
