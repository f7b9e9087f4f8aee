from datetime import date
from decimal import Decimal

from django.db import IntegrityError
from django.test import TestCase
from django.utils import timezone

from apps.core.exceptions import NotFoundError
from .models import LifePolicy, VehiclePolicy, PreviousVehiclePolicy
from .registry import POLICY_KINDS, get_policy_kind

BASE_FIELDS = dict(
    customer_type='Individual',
    policy_start_date=date(2024, 2, 29),
    net_premium=Decimal('1000.00'),
    gst=Decimal('180.00'),
    gross_premium=Decimal('1180.00'),
)


class PolicyModelTests(TestCase):
    def test_life_policy_derives_end_date_from_term(self):
        policy = LifePolicy.objects.create(policy_number='LIFE-1', term_years=5, **BASE_FIELDS)
        # 29 Feb moves to 28 Feb in a non-leap year
        self.assertEqual(policy.policy_end_date, date(2029, 2, 28))

    def test_life_policy_keeps_supplied_end_date(self):
        policy = LifePolicy.objects.create(
            policy_number='LIFE-2', term_years=5, policy_end_date=date(2030, 1, 1), **BASE_FIELDS,
        )
        self.assertEqual(policy.policy_end_date, date(2030, 1, 1))

    def test_policy_number_unique_per_table(self):
        VehiclePolicy.objects.create(
            policy_number='DUP-1', policy_end_date=date(2025, 1, 1), vehicle_number='KA01', **BASE_FIELDS,
        )
        with self.assertRaises(IntegrityError):
            VehiclePolicy.objects.create(
                policy_number='DUP-1', policy_end_date=date(2025, 1, 1), vehicle_number='KA02', **BASE_FIELDS,
            )

    def test_archive_rows_are_immutable(self):
        archive = PreviousVehiclePolicy.objects.create(
            policy_number='OLD-1', policy_end_date=date(2024, 12, 31), vehicle_number='KA01',
            status='expired', original_policy_id=1, renewed_at=timezone.now(), **BASE_FIELDS,
        )
        archive.remarks = 'edited'
        with self.assertRaises(TypeError):
            archive.save()
        with self.assertRaises(TypeError):
            archive.delete()


class PolicyRegistryTests(TestCase):
    def test_every_kind_has_matching_archive(self):
        self.assertEqual(set(POLICY_KINDS), {'fire', 'health', 'life', 'vehicle', 'ecp'})
        for kind in POLICY_KINDS.values():
            self.assertTrue(kind.renewable)
            self.assertEqual(kind.archive_model.__name__, f'Previous{kind.model.__name__}')

    def test_unknown_kind(self):
        with self.assertRaises(NotFoundError):
            get_policy_kind('marine')
