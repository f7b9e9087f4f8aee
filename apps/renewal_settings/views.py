import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import RenewalConfig
from .serializers import RenewalConfigSerializer

logger = logging.getLogger(__name__)


class RenewalConfigViewSet(viewsets.ModelViewSet):
    """
    Reminder configuration per service type.
    Deactivating a config stops reminders for that type from the next run.
    """
    queryset = RenewalConfig.objects.all()
    serializer_class = RenewalConfigSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['service_type', 'is_active']
    ordering_fields = ['service_type', 'reminder_days', 'updated_at']
    ordering = ['service_type']

    def perform_create(self, serializer):
        config = serializer.save()
        logger.info(f"Renewal config created for {config.service_type} by {self.request.user}")

    def perform_update(self, serializer):
        config = serializer.save()
        logger.info(f"Renewal config updated for {config.service_type} by {self.request.user}")

    def perform_destroy(self, instance):
        logger.info(f"Renewal config deleted for {instance.service_type} by {self.request.user}")
        instance.delete()

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        config = self.get_object()
        config.is_active = not config.is_active
        config.save(update_fields=['is_active', 'updated_at'])
        return Response(self.get_serializer(config).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'], url_path='by-service/(?P<service_type>[^/.]+)')
    def by_service(self, request, service_type=None):
        config = RenewalConfig.objects.filter(service_type=service_type).first()
        if config is None:
            return Response(
                {'message': f"No renewal configuration for '{service_type}'"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(self.get_serializer(config).data)
