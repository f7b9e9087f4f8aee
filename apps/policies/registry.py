from dataclasses import dataclass
from typing import Optional, Type

from django.db import models

from apps.core.exceptions import NotFoundError
from .models import (
    FirePolicy, PreviousFirePolicy,
    HealthPolicy, PreviousHealthPolicy,
    LifePolicy, PreviousLifePolicy,
    VehiclePolicy, PreviousVehiclePolicy,
    EmployeeCompensationPolicy, PreviousEmployeeCompensationPolicy,
)


@dataclass(frozen=True)
class PolicyKind:
    """
    One tracked record type: which table holds the live rows, where renewed
    rows are archived, which reminder configuration governs it and which
    notification template addresses its holders.
    """

    key: str
    label: str
    model: Type[models.Model]
    archive_model: Optional[Type[models.Model]]
    service_type: str
    template: str
    expiry_field: str = 'policy_end_date'
    number_field: str = 'policy_number'
    active_status: Optional[str] = 'active'
    reference_label: str = 'policy'

    @property
    def renewable(self):
        return self.archive_model is not None


POLICY_KINDS = {
    kind.key: kind for kind in [
        PolicyKind('fire', 'Fire Insurance', FirePolicy, PreviousFirePolicy,
                   'fire', 'fire_policy_reminder'),
        PolicyKind('health', 'Health Insurance', HealthPolicy, PreviousHealthPolicy,
                   'health', 'health_policy_reminder'),
        PolicyKind('life', 'Life Insurance', LifePolicy, PreviousLifePolicy,
                   'life', 'life_policy_reminder'),
        PolicyKind('vehicle', 'Vehicle Insurance', VehiclePolicy, PreviousVehiclePolicy,
                   'vehicle', 'vehicle_policy_reminder'),
        PolicyKind('ecp', 'Employee Compensation', EmployeeCompensationPolicy,
                   PreviousEmployeeCompensationPolicy, 'ecp', 'ecp_policy_reminder'),
    ]
}


def get_policy_kind(key):
    try:
        return POLICY_KINDS[key]
    except KeyError:
        raise NotFoundError(f"Unknown policy type '{key}'")
