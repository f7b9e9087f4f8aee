from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from apps.core.exceptions import NotFoundError
from .models import RenewalConfig
from .services import RenewalConfigStore, should_consider

User = get_user_model()


class RenewalConfigStoreTests(TestCase):
    def setUp(self):
        self.store = RenewalConfigStore()
        self.vehicle = RenewalConfig.objects.create(
            service_type='vehicle', service_name='Vehicle Insurance', reminder_times=3, reminder_days=30,
        )
        RenewalConfig.objects.create(
            service_type='fire', service_name='Fire Insurance', reminder_times=2, reminder_days=20, is_active=False,
        )

    def test_get_config_returns_active_rows_only(self):
        self.assertEqual(self.store.get_config('vehicle'), self.vehicle)
        self.assertIsNone(self.store.get_config('fire'))
        self.assertIsNone(self.store.get_config('health'))

    def test_require_config_raises_when_absent(self):
        with self.assertRaises(NotFoundError):
            self.store.require_config('fire')

    def test_active_configs(self):
        self.assertEqual(list(self.store.active_configs()), [self.vehicle])

    def test_should_consider_window(self):
        self.assertFalse(should_consider(self.vehicle, -1))
        self.assertTrue(should_consider(self.vehicle, 0))
        self.assertTrue(should_consider(self.vehicle, 30))
        self.assertFalse(should_consider(self.vehicle, 31))


class RenewalConfigModelTests(TestCase):
    def test_explicit_cadence_buckets(self):
        config = RenewalConfig(
            service_type='labour_license', service_name='Labour License',
            reminder_times=3, reminder_days=30, cadence_days=[15, 7],
        )
        self.assertEqual(config.reminder_number(30), 1)
        self.assertEqual(config.reminder_number(16), 1)
        self.assertEqual(config.reminder_number(15), 2)
        self.assertEqual(config.reminder_number(8), 2)
        self.assertEqual(config.reminder_number(7), 3)
        self.assertEqual(config.reminder_number(0), 3)
        self.assertIsNone(config.reminder_number(31))

    def test_clean_rejects_mismatched_cadence(self):
        config = RenewalConfig(
            service_type='dsc', service_name='DSC', reminder_times=3, reminder_days=30, cadence_days=[15],
        )
        with self.assertRaises(DjangoValidationError):
            config.clean()

    def test_clean_rejects_boundary_outside_window(self):
        config = RenewalConfig(
            service_type='dsc', service_name='DSC', reminder_times=2, reminder_days=10, cadence_days=[12],
        )
        with self.assertRaises(DjangoValidationError):
            config.clean()


class RenewalConfigApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='ops', password='testpassword123')
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_create_config(self):
        response = self.client.post('/api/renewal-settings/configs/', {
            'service_type': 'labour_license',
            'service_name': 'Labour License',
            'reminder_times': 3,
            'reminder_days': 30,
            'cadence_days': [15, 7],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['reminder_buckets'][-1], {'reminder_number': 3, 'from_days': 7, 'to_days': 0})
        self.assertTrue(RenewalConfig.objects.filter(service_type='labour_license').exists())

    def test_one_config_per_service_type(self):
        RenewalConfig.objects.create(service_type='vehicle', service_name='Vehicle', reminder_times=1, reminder_days=30)
        response = self.client.post('/api/renewal-settings/configs/', {
            'service_type': 'vehicle', 'service_name': 'Vehicle again', 'reminder_times': 2, 'reminder_days': 15,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('service_type', response.data['errors'])

    def test_invalid_cadence_rejected(self):
        response = self.client.post('/api/renewal-settings/configs/', {
            'service_type': 'health', 'service_name': 'Health', 'reminder_times': 2,
            'reminder_days': 10, 'cadence_days': [4, 2],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cadence_days', response.data['errors'])

    def test_toggle_and_lookup_by_service(self):
        config = RenewalConfig.objects.create(service_type='fire', service_name='Fire', reminder_times=1, reminder_days=30)
        response = self.client.post(f'/api/renewal-settings/configs/{config.pk}/toggle/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        response = self.client.get('/api/renewal-settings/configs/by-service/fire/')
        self.assertEqual(response.data['service_type'], 'fire')
        response = self.client.get('/api/renewal-settings/configs/by-service/ecp/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        response = APIClient().get('/api/renewal-settings/configs/')
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))


class ConfigureRenewalRemindersCommandTests(TestCase):
    def test_creates_then_updates_config(self):
        out = StringIO()
        call_command(
            'configure_renewal_reminders', '--service-type', 'labour_license',
            '--reminder-days', '30', '--reminder-times', '3', '--cadence', '15,7', stdout=out,
        )
        config = RenewalConfig.objects.get(service_type='labour_license')
        self.assertEqual(config.cadence_days, [15, 7])
        self.assertIn('Created active configuration', out.getvalue())

        call_command(
            'configure_renewal_reminders', '--service-type', 'labour_license',
            '--reminder-days', '45', '--reminder-times', '1', '--inactive', stdout=StringIO(),
        )
        config.refresh_from_db()
        self.assertEqual(config.reminder_days, 45)
        self.assertEqual(config.cadence_days, [])
        self.assertFalse(config.is_active)

    def test_dry_run_saves_nothing(self):
        call_command(
            'configure_renewal_reminders', '--service-type', 'vehicle',
            '--reminder-days', '30', '--reminder-times', '3', '--dry-run', stdout=StringIO(),
        )
        self.assertFalse(RenewalConfig.objects.exists())

    def test_bad_cadence_is_an_error(self):
        with self.assertRaises(CommandError):
            call_command(
                'configure_renewal_reminders', '--service-type', 'vehicle',
                '--reminder-days', '30', '--reminder-times', '3', '--cadence', '40,7', stdout=StringIO(),
            )
