import logging

from apps.core.exceptions import NotFoundError
from .models import RenewalConfig

logger = logging.getLogger(__name__)


class RenewalConfigStore:
    """
    Read access to reminder configuration.

    A missing or inactive row means "do not remind" for that service type;
    nothing falls back to a default cadence.
    """

    def get_config(self, service_type):
        config = RenewalConfig.objects.filter(service_type=service_type, is_active=True).first()
        if config is None:
            logger.debug(f"No active renewal configuration for {service_type}")
        return config

    def require_config(self, service_type):
        config = self.get_config(service_type)
        if config is None:
            raise NotFoundError(f"No active renewal configuration for '{service_type}'")
        return config

    def active_configs(self):
        return RenewalConfig.objects.filter(is_active=True).order_by('service_type')


def should_consider(config, days_until_expiry):
    """Coarse window check: 0 <= days <= reminder_days."""
    return 0 <= days_until_expiry <= config.reminder_days
