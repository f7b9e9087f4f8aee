from apps.core.exceptions import NotFoundError
from apps.compliance.registry import COMPLIANCE_KINDS
from apps.policies.registry import POLICY_KINDS

# Every record type the reminder scheduler walks, in processing order
REMINDER_KINDS = {**POLICY_KINDS, **COMPLIANCE_KINDS}


def get_reminder_kind(key):
    try:
        return REMINDER_KINDS[key]
    except KeyError:
        raise NotFoundError(f"Unknown policy type '{key}'")
