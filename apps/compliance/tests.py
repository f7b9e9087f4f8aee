from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.customers.models import Company
from .models import LabourLicense
from .registry import COMPLIANCE_KINDS


class LabourLicenseTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(company_name='Acme Works', company_email='hr@acme.example')

    def test_past_expiry_marks_license_expired(self):
        license = LabourLicense.objects.create(
            company=self.company, license_number='LL-1',
            expiry_date=timezone.localdate() - timedelta(days=1),
        )
        self.assertEqual(license.status, 'expired')

    def test_extended_expiry_reactivates_license(self):
        license = LabourLicense.objects.create(
            company=self.company, license_number='LL-2',
            expiry_date=timezone.localdate() - timedelta(days=1),
        )
        license.expiry_date = timezone.localdate() + timedelta(days=365)
        license.save()
        self.assertEqual(license.status, 'active')

    def test_compliance_kinds_are_reminder_only(self):
        self.assertEqual(set(COMPLIANCE_KINDS), {'dsc', 'labour_license'})
        for kind in COMPLIANCE_KINDS.values():
            self.assertFalse(kind.renewable)
            self.assertEqual(kind.expiry_field, 'expiry_date')
        self.assertIsNone(COMPLIANCE_KINDS['dsc'].active_status)
