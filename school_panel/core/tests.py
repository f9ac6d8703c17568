"""
Tests for core app: dashboard, request metrics middleware, exception handler, health.
"""
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIRequestFactory, APITestCase
from rest_framework.views import APIView

from academics.models import SchoolClass, Student
from attendance.models import Attendance
from finance.models import Payment
from tenants.models import Tenant, TenantMembership

from .exceptions import api_exception_handler
from .filters import date_param, id_param, uuid_param

User = get_user_model()


class DashboardAPITest(APITestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(slug='solwezi', name='Solwezi Primary', email='office@solwezi.zm')
        self.user = User.objects.create_user(email='head@solwezi.zm', password='x')
        TenantMembership.objects.create(tenant=self.tenant, user=self.user, role='owner')
        self.school_class = SchoolClass.objects.create(tenant=self.tenant, name='Grade 2A')
        self.student = Student.objects.create(
            tenant=self.tenant, first_name='Mutale', last_name='Chanda', student_id='SP-1',
            school_class=self.school_class,
        )

    def test_requires_authentication(self):
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard_numbers(self):
        Attendance.objects.create(
            tenant=self.tenant, student=self.student, school_class=self.school_class,
            date=timezone.localdate(), status=Attendance.Status.LATE,
        )
        Payment.objects.create(
            tenant=self.tenant, student=self.student, amount=Decimal('400.00'), paid_amount=Decimal('100.00'),
            term=Payment.Term.TERM_1, academic_year='2024',
        )
        self.client.force_authenticate(self.user)

        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts'], {'students': 1, 'teachers': 0, 'classes': 1})
        self.assertEqual(response.data['attendance_today']['late'], 1)
        self.assertEqual(response.data['attendance_today']['attendance_rate'], 100.0)
        self.assertEqual(response.data['fees']['total_owed'], Decimal('300.00'))
        self.assertEqual(len(response.data['recent_payments']), 1)

    def test_suspended_school_forbidden(self):
        self.tenant.status = Tenant.Status.SUSPENDED
        self.tenant.save()
        self.client.force_authenticate(self.user)
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('suspended', str(response.data['detail']))


class RequestMetricsMiddlewareTest(TestCase):

    def test_duration_header_and_log_line(self):
        with self.assertLogs('request_metrics', level='INFO') as logs:
            response = self.client.get(reverse('health-live'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('X-Request-Duration', response)
        self.assertTrue(any('path=/api/health/live/' in line for line in logs.output))

    @override_settings(SLOW_REQUEST_SECONDS=-1)
    def test_slow_request_warning(self):
        with self.assertLogs('request_metrics', level='WARNING') as logs:
            self.client.get(reverse('health-live'))
        self.assertTrue(any('SLOW_REQUEST' in line for line in logs.output))


class HealthCheckTest(TestCase):

    def test_health(self):
        response = self.client.get(reverse('health'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['checks']['database'], 'ok')


class ExceptionHandlerTest(TestCase):

    def context(self):
        return {'view': APIView(), 'request': APIRequestFactory().get('/')}

    def test_integrity_error_is_400(self):
        response = api_exception_handler(IntegrityError('UNIQUE constraint failed'), self.context())
        self.assertEqual(response.status_code, 400)
        self.assertIn('detail', response.data)

    @override_settings(DEBUG=False)
    def test_unexpected_error_is_500(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), self.context())
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'detail': 'Internal server error'})

    @override_settings(DEBUG=True)
    def test_unexpected_error_reraised_in_debug(self):
        self.assertIsNone(api_exception_handler(RuntimeError('boom'), self.context()))


class ProtectedDeleteAPITest(APITestCase):

    def test_deleting_class_with_attendance_is_400(self):
        tenant = Tenant.objects.create(slug='solwezi', name='Solwezi Primary', email='office@solwezi.zm')
        user = User.objects.create_user(email='head@solwezi.zm', password='x')
        TenantMembership.objects.create(tenant=tenant, user=user, role='admin')
        school_class = SchoolClass.objects.create(tenant=tenant, name='Grade 2A')
        student = Student.objects.create(tenant=tenant, first_name='A', last_name='B', student_id='SP-1')
        Attendance.objects.create(
            tenant=tenant, student=student, school_class=school_class,
            date=date(2024, 3, 4), status=Attendance.Status.PRESENT,
        )

        self.client.force_authenticate(user)
        response = self.client.delete(reverse('schoolclass-detail', args=[school_class.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(SchoolClass.objects.filter(pk=school_class.pk).exists())


class QueryParamTest(TestCase):

    def test_missing_or_blank_is_none(self):
        self.assertIsNone(id_param({}, 'student'))
        self.assertIsNone(id_param({'student': ' '}, 'student'))
        self.assertIsNone(date_param({'date': ''}, 'date'))

    def test_valid_values_are_coerced(self):
        self.assertEqual(id_param({'student': '12'}, 'student'), 12)
        self.assertEqual(
            str(uuid_param({'tenant': '9f1c2d3e-4b5a-6978-8a9b-0c1d2e3f4a5b'}, 'tenant')),
            '9f1c2d3e-4b5a-6978-8a9b-0c1d2e3f4a5b',
        )
        self.assertEqual(date_param({'date': '2024-03-04'}, 'date'), date(2024, 3, 4))

    def test_bad_values_raise_keyed_errors(self):
        cases = [
            (id_param, {'student': 'abc'}, 'student'),
            (id_param, {'student': '0'}, 'student'),
            (uuid_param, {'tenant': '42'}, 'tenant'),
            (date_param, {'date': '04/03/2024'}, 'date'),
            (date_param, {'date': '2024-02-30'}, 'date'),
        ]
        for parse, params, name in cases:
            with self.assertRaises(ValidationError) as ctx:
                parse(params, name)
            self.assertIn(name, ctx.exception.detail)
