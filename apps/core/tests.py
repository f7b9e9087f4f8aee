from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from .exceptions import (
    ServiceError, ValidationError, NotFoundError, ConflictError,
    DependencyFailure, PersistenceFailure, custom_exception_handler,
)
from .models import AuditLog

User = get_user_model()


class ExceptionHandlerTests(TestCase):
    def test_service_errors_carry_status_and_code(self):
        expected = {
            ValidationError: (400, 'validation_error'),
            NotFoundError: (404, 'not_found'),
            ConflictError: (409, 'conflict'),
            DependencyFailure: (502, 'dependency_failure'),
            PersistenceFailure: (503, 'persistence_failure'),
        }
        for error_class, (status_code, code) in expected.items():
            error = error_class('boom', errors={'field': ['bad']})
            self.assertIsInstance(error, ServiceError)
            response = custom_exception_handler(error, {})
            self.assertEqual(response.status_code, status_code)
            self.assertEqual(response.data['code'], code)
            self.assertEqual(response.data['message'], 'boom')
            self.assertEqual(response.data['errors'], {'field': ['bad']})

    def test_default_message_used_when_none_given(self):
        self.assertEqual(NotFoundError().message, 'Resource not found')

    def test_unknown_exception_becomes_500(self):
        response = custom_exception_handler(RuntimeError('unexpected'), {})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data['code'], 'server_error')


class AuditLogTests(TestCase):
    def test_entries_are_append_only(self):
        entry = AuditLog.objects.create(action='renew', model_name='VehiclePolicy', object_id='1')
        entry.object_repr = 'changed'
        with self.assertRaises(TypeError):
            entry.save()
        with self.assertRaises(TypeError):
            entry.delete()
        self.assertEqual(AuditLog.objects.count(), 1)


class CoreApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_health_check_is_public(self):
        response = self.client.get('/api/core/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')

    def test_audit_log_requires_admin(self):
        user = User.objects.create_user(username='clerk', password='testpassword123')
        self.client.force_authenticate(user=user)
        response = self.client.get('/api/core/audit/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'request_error')

    def test_audit_log_filters_by_action(self):
        admin = User.objects.create_superuser(username='admin', email='admin@example.com', password='testpassword123')
        self.client.force_authenticate(user=admin)
        AuditLog.objects.create(action='renew', model_name='VehiclePolicy', object_id='1')
        AuditLog.objects.create(action='cancel', model_name='VehiclePolicy', object_id='2')

        response = self.client.get('/api/core/audit/', {'action': 'cancel'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_id'], '2')
