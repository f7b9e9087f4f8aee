from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from django.test import TestCase

from apps.policies.models import VehiclePolicy
from .models import Company, Consumer
from .services import HolderResolver, Contact


class HolderResolverTests(TestCase):
    def setUp(self):
        self.resolver = HolderResolver()
        self.company = Company.objects.create(
            company_name='Acme Traders', company_email='accounts@acme.example', contact_number='9800000001',
        )
        self.consumer = Consumer.objects.create(name='Asha Rao', email='', phone_number='9800000002')

    def make_policy(self, **overrides):
        fields = dict(
            customer_type='Organisation',
            policy_number='VEH-1',
            proposer_name='Embedded Name',
            email='embedded@example.com',
            mobile_number='9000000000',
            policy_start_date=date(2024, 1, 1),
            policy_end_date=date(2025, 1, 1),
            net_premium=Decimal('100.00'),
            gst=Decimal('18.00'),
            gross_premium=Decimal('118.00'),
            vehicle_number='KA01AB1234',
        )
        fields.update(overrides)
        return VehiclePolicy.objects.create(**fields)

    def test_resolve_company(self):
        contact = self.resolver.resolve('company', self.company.pk)
        self.assertEqual(contact, Contact('Acme Traders', 'accounts@acme.example', '9800000001'))

    def test_resolve_missing_or_emailless_holder(self):
        self.assertIsNone(self.resolver.resolve('company', 9999))
        self.assertIsNone(self.resolver.resolve('consumer', self.consumer.pk))

    def test_resolve_unknown_kind(self):
        with self.assertRaises(ValueError):
            self.resolver.resolve('partner', 1)

    def test_record_prefers_holder_contact(self):
        policy = self.make_policy(company=self.company)
        contact = self.resolver.for_record(policy)
        self.assertEqual(contact.email, 'accounts@acme.example')
        self.assertEqual(contact.name, 'Acme Traders')

    def test_blank_holder_fields_fall_back_to_record(self):
        policy = self.make_policy(customer_type='Individual', consumer=self.consumer)
        contact = self.resolver.for_record(policy)
        self.assertEqual(contact.name, 'Asha Rao')
        self.assertEqual(contact.email, 'embedded@example.com')
        self.assertEqual(contact.phone, '9800000002')

    def test_record_without_holder_uses_embedded_fields(self):
        policy = self.make_policy()
        contact = self.resolver.for_record(policy)
        self.assertEqual(contact, Contact('Embedded Name', 'embedded@example.com', '9000000000'))

    def test_no_email_anywhere_means_no_contact(self):
        record = SimpleNamespace(pk=1, company=None, consumer=None, proposer_name='X', email='', mobile_number='')
        self.assertIsNone(self.resolver.for_record(record))
