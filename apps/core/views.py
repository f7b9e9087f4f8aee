"""
Core views for health checks and the audit trail.
"""

import logging
from django.conf import settings
from django.db import connection, DatabaseError
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework import status

from .models import AuditLog
from .pagination import StandardResultsSetPagination

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([])
def health_check(request):
    """
    Simple health check endpoint for load balancers and monitoring.
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.error(f"Health check failed: {e}")
        return Response({
            'status': 'unhealthy',
            'error': str(e)
        }, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    return Response({
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'timezone': settings.TIME_ZONE,
    })


@api_view(['GET'])
@permission_classes([IsAdminUser])
def audit_logs(request):
    """
    Audit entries written by renewals and cancellations, newest first.
    Filters: action, model, object_id, date_from, date_to.
    """
    logs = AuditLog.objects.all()

    action = request.GET.get('action')
    if action:
        logs = logs.filter(action=action)

    model_name = request.GET.get('model')
    if model_name:
        logs = logs.filter(model_name=model_name)

    object_id = request.GET.get('object_id')
    if object_id:
        logs = logs.filter(object_id=object_id)

    date_from = request.GET.get('date_from')
    date_to = request.GET.get('date_to')
    if date_from:
        logs = logs.filter(created_at__date__gte=date_from)
    if date_to:
        logs = logs.filter(created_at__date__lte=date_to)

    paginator = StandardResultsSetPagination()
    page = paginator.paginate_queryset(logs, request)
    return paginator.get_paginated_response([
        {
            'id': log.id,
            'action': log.action,
            'model_name': log.model_name,
            'object_id': log.object_id,
            'object_repr': log.object_repr,
            'actor': log.actor,
            'changes': log.changes,
            'additional_data': log.additional_data,
            'created_at': log.created_at.isoformat(),
        }
        for log in page
    ])
