"""
Tenant isolation: one school's data never leaks into another.

  python manage.py test tenants.tests_isolation -v2

Covers:
  1. contextvars tenant context
  2. TenantMiddleware host / X-Tenant-ID resolution
  3. Cache invalidation by signals
  4. Querysets, detail lookups and related ids scoped to the request's school
"""
from unittest.mock import MagicMock

from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from academics.models import SchoolClass, Student
from tenants.context import clear_current_tenant, get_current_tenant, set_current_tenant
from tenants.middleware import TenantMiddleware
from tenants.mixins import bind_request_tenant
from tenants.models import Tenant, TenantMembership

User = get_user_model()


class TenantContextTests(TestCase):

    def test_set_and_get(self):
        tenant = MagicMock()
        set_current_tenant(tenant)
        self.assertEqual(get_current_tenant(), tenant)
        clear_current_tenant()

    def test_clear(self):
        set_current_tenant(MagicMock())
        clear_current_tenant()
        self.assertIsNone(get_current_tenant())


@override_settings(
    PLATFORM_DOMAINS=['schoolpanel.app', 'www.schoolpanel.app'],
    TENANT_HEADER_HOSTS=['localhost', '127.0.0.1', 'testserver'],
)
class TenantMiddlewareResolveTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.kabulonga = Tenant.objects.create(slug='kabulonga', name='Kabulonga Boys', email='a@kabulonga.zm')
        cls.munali = Tenant.objects.create(slug='munali', name='Munali Secondary', email='a@munali.zm')

    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = TenantMiddleware(get_response=lambda r: MagicMock(status_code=200))
        TenantMiddleware.clear_cache()

    def _make_request(self, host, path='/api/students/', headers=None):
        return self.factory.get(path, HTTP_HOST=host, **(headers or {}))

    def test_subdomain_resolves_tenant(self):
        request = self._make_request('kabulonga.schoolpanel.app')
        self.middleware(request)
        self.assertEqual(request.tenant, self.kabulonga)
        self.assertIsNone(request.tenant_membership)

    def test_platform_domain_has_no_tenant(self):
        for host in ('schoolpanel.app', 'www.schoolpanel.app'):
            request = self._make_request(host)
            self.middleware(request)
            self.assertIsNone(request.tenant)

    def test_unknown_subdomain_has_no_tenant(self):
        request = self._make_request('nowhere.schoolpanel.app')
        self.middleware(request)
        self.assertIsNone(request.tenant)

    def test_header_works_on_development_host(self):
        request = self._make_request('localhost:3000', headers={'HTTP_X_TENANT_ID': 'munali'})
        self.middleware(request)
        self.assertEqual(request.tenant, self.munali)

    def test_header_ignored_on_production_host(self):
        with self.assertLogs('tenants.middleware', level='WARNING'):
            request = self._make_request('kabulonga.schoolpanel.app', headers={'HTTP_X_TENANT_ID': 'munali'})
            self.middleware(request)
        self.assertEqual(request.tenant, self.kabulonga)

    def test_header_ignored_on_bare_platform_domain(self):
        request = self._make_request('schoolpanel.app', headers={'HTTP_X_TENANT_ID': 'munali'})
        self.middleware(request)
        self.assertIsNone(request.tenant)

    def test_skip_paths_have_no_tenant(self):
        request = self._make_request('kabulonga.schoolpanel.app', path='/api/health/')
        self.middleware(request)
        self.assertIsNone(request.tenant)

    def test_context_cleared_after_request(self):
        request = self._make_request('kabulonga.schoolpanel.app')
        self.middleware(request)
        self.assertIsNone(get_current_tenant())

    def test_lookup_is_cached(self):
        self.middleware(self._make_request('kabulonga.schoolpanel.app'))
        with self.assertNumQueries(0):
            request = self._make_request('kabulonga.schoolpanel.app')
            self.middleware(request)
        self.assertEqual(request.tenant, self.kabulonga)

    def test_unknown_slug_not_cached(self):
        for slug in ('nosuch1', 'nosuch2', 'nosuch3'):
            request = self._make_request(f'{slug}.schoolpanel.app')
            self.middleware(request)
            self.assertIsNone(request.tenant)
        self.assertEqual(TenantMiddleware._tenant_cache, {})

        # a school registered after a miss is found on the next request
        school = Tenant.objects.create(slug='nosuch1', name='Late School', email='l@late.zm')
        request = self._make_request('nosuch1.schoolpanel.app')
        self.middleware(request)
        self.assertEqual(request.tenant, school)


class TenantCacheInvalidationTests(TestCase):

    def setUp(self):
        TenantMiddleware.clear_cache()

    def test_save_tenant_clears_cache(self):
        TenantMiddleware._tenant_cache['slug:stale'] = ('fake', 0)
        Tenant.objects.create(slug='fresh', name='Fresh School', email='f@fresh.zm')
        self.assertEqual(len(TenantMiddleware._tenant_cache), 0)

    def test_delete_tenant_clears_cache(self):
        tenant = Tenant.objects.create(slug='temp', name='Temp School', email='t@temp.zm')
        TenantMiddleware._tenant_cache['slug:temp'] = (tenant, 0)
        tenant.delete()
        self.assertEqual(len(TenantMiddleware._tenant_cache), 0)


class BindRequestTenantTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.school_a = Tenant.objects.create(slug='school-a', name='School A', email='a@a.zm')
        cls.school_b = Tenant.objects.create(slug='school-b', name='School B', email='b@b.zm')
        cls.single = User.objects.create_user(email='single@example.com', password='x')
        cls.multi = User.objects.create_user(email='multi@example.com', password='x')
        TenantMembership.objects.create(tenant=cls.school_a, user=cls.single, role='teacher')
        TenantMembership.objects.create(tenant=cls.school_a, user=cls.multi, role='admin')
        TenantMembership.objects.create(tenant=cls.school_b, user=cls.multi, role='bursar')

    def _request(self, user, tenant=None):
        request = RequestFactory().get('/api/students/')
        request.user = user
        request.tenant = tenant
        return request

    def tearDown(self):
        clear_current_tenant()

    def test_single_membership_selects_school(self):
        request = self._request(self.single)
        bind_request_tenant(request)
        self.assertEqual(request.tenant, self.school_a)
        self.assertEqual(request.tenant_membership.role, 'teacher')
        self.assertEqual(get_current_tenant(), self.school_a)

    def test_multiple_memberships_need_explicit_school(self):
        request = self._request(self.multi)
        bind_request_tenant(request)
        self.assertIsNone(request.tenant)
        self.assertIsNone(request.tenant_membership)

    def test_resolved_school_uses_matching_membership(self):
        request = self._request(self.multi, tenant=self.school_b)
        bind_request_tenant(request)
        self.assertEqual(request.tenant_membership.role, 'bursar')

    def test_non_member_has_no_membership(self):
        request = self._request(self.single, tenant=self.school_b)
        bind_request_tenant(request)
        self.assertEqual(request.tenant, self.school_b)
        self.assertIsNone(request.tenant_membership)


class TenantApiIsolationTests(APITestCase):
    """Two schools, two admins: neither sees nor references the other's rows."""

    @classmethod
    def setUpTestData(cls):
        cls.school_a = Tenant.objects.create(slug='school-a', name='School A', email='a@a.zm', max_students=0)
        cls.school_b = Tenant.objects.create(slug='school-b', name='School B', email='b@b.zm', max_students=0)
        cls.admin_a = User.objects.create_user(email='admin-a@example.com', password='x')
        cls.admin_b = User.objects.create_user(email='admin-b@example.com', password='x')
        TenantMembership.objects.create(tenant=cls.school_a, user=cls.admin_a, role='admin')
        TenantMembership.objects.create(tenant=cls.school_b, user=cls.admin_b, role='admin')

        cls.class_a = SchoolClass.objects.create(tenant=cls.school_a, name='Grade 5A', grade='5')
        cls.class_b = SchoolClass.objects.create(tenant=cls.school_b, name='Grade 5B', grade='5')
        cls.student_a = Student.objects.create(
            tenant=cls.school_a, first_name='Chanda', last_name='Mulenga', student_id='A-001',
        )
        cls.student_b = Student.objects.create(
            tenant=cls.school_b, first_name='Bwalya', last_name='Phiri', student_id='B-001',
        )

    def test_list_returns_only_own_school(self):
        self.client.force_authenticate(self.admin_a)
        response = self.client.get(reverse('student-list'))
        self.assertEqual(response.status_code, 200)
        ids = [row['id'] for row in response.data]
        self.assertEqual(ids, [self.student_a.id])

    def test_other_school_detail_is_404(self):
        self.client.force_authenticate(self.admin_a)
        response = self.client.get(reverse('student-detail', args=[self.student_b.id]))
        self.assertEqual(response.status_code, 404)

    def test_create_stamps_own_school(self):
        self.client.force_authenticate(self.admin_a)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'Natasha', 'last_name': 'Zulu', 'student_id': 'A-002',
        }, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(Student.objects.get(pk=response.data['id']).tenant, self.school_a)

    def test_cannot_reference_other_school_class(self):
        self.client.force_authenticate(self.admin_a)
        response = self.client.post(reverse('student-list'), {
            'first_name': 'Natasha', 'last_name': 'Zulu', 'student_id': 'A-003',
            'school_class': self.class_b.id,
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('school_class', response.data)

    def test_header_for_foreign_school_is_forbidden(self):
        self.client.force_authenticate(self.admin_a)
        response = self.client.get(reverse('student-list'), HTTP_X_TENANT_ID='school-b')
        self.assertEqual(response.status_code, 403)

    def test_suspended_school_is_forbidden(self):
        Tenant.objects.filter(pk=self.school_a.pk).update(status=Tenant.Status.SUSPENDED)
        self.client.force_authenticate(self.admin_a)
        response = self.client.get(reverse('student-list'))
        self.assertEqual(response.status_code, 403)
        self.assertIn('suspended', str(response.data['detail']))

    def test_user_without_school_is_forbidden(self):
        outsider = User.objects.create_user(email='outsider@example.com', password='x')
        self.client.force_authenticate(outsider)
        response = self.client.get(reverse('student-list'))
        self.assertEqual(response.status_code, 403)

    def test_anonymous_is_unauthorized(self):
        response = self.client.get(reverse('student-list'))
        self.assertEqual(response.status_code, 401)
