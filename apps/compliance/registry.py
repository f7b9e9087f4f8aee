from apps.policies.registry import PolicyKind
from .models import DigitalSignatureCertificate, LabourLicense

COMPLIANCE_KINDS = {
    kind.key: kind for kind in [
        # DSC status tracks token custody, not validity
        PolicyKind('dsc', 'Digital Signature Certificate', DigitalSignatureCertificate, None,
                   'dsc', 'dsc_reminder', expiry_field='expiry_date',
                   number_field='certification_name', active_status=None,
                   reference_label='certificate'),
        PolicyKind('labour_license', 'Labour License', LabourLicense, None,
                   'labour_license', 'labour_license_reminder', expiry_field='expiry_date',
                   number_field='license_number', reference_label='license'),
    ]
}
