from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from academics.models import Student
from tenants.limits import TenantLimitError, check_tenant_limit, get_usage
from tenants.middleware import TenantMiddleware
from tenants.models import Tenant, TenantMembership

User = get_user_model()


class TenantModelTests(TestCase):

    def test_defaults(self):
        tenant = Tenant.objects.create(slug='chongwe', name='Chongwe Primary', email='info@chongwe.zm')
        self.assertEqual(tenant.status, Tenant.Status.TRIAL)
        self.assertEqual(tenant.tier, Tenant.Tier.FREE)
        self.assertEqual(tenant.country, 'ZM')
        self.assertEqual(tenant.currency, 'ZMW')
        self.assertTrue(tenant.is_accessible)

    def test_is_accessible_by_status(self):
        tenant = Tenant(slug='x1', name='X1', email='x1@x.zm')
        for status, expected in [
            (Tenant.Status.TRIAL, True),
            (Tenant.Status.ACTIVE, True),
            (Tenant.Status.SUSPENDED, False),
            (Tenant.Status.CANCELLED, False),
        ]:
            tenant.status = status
            self.assertEqual(tenant.is_accessible, expected, status)

    def test_slug_unique(self):
        Tenant.objects.create(slug='matero', name='Matero Boys', email='a@matero.zm')
        with self.assertRaises(IntegrityError):
            Tenant.objects.create(slug='matero', name='Matero Girls', email='b@matero.zm')

    def test_email_unique(self):
        Tenant.objects.create(slug='matero', name='Matero Boys', email='a@matero.zm')
        with self.assertRaises(IntegrityError):
            Tenant.objects.create(slug='matero-2', name='Matero Girls', email='a@matero.zm')

    def test_slug_format_validated(self):
        for bad in ('Upper', 'with space', 'a', 'under_score'):
            tenant = Tenant(slug=bad, name='Some School', email=f'{len(bad)}@x.zm')
            with self.assertRaises(ValidationError, msg=bad):
                tenant.full_clean()

    def test_frontend_config_has_no_secrets(self):
        tenant = Tenant.objects.create(
            slug='lusaka-intl', name='Lusaka International', email='hi@lis.zm',
            sms_api_key='k', sms_api_secret='s', sms_enabled=True,
            metadata={'theme': {'primary_color': '#000000'}, 'features': {'finance': False}},
        )
        config = tenant.to_frontend_config()
        self.assertEqual(config['slug'], 'lusaka-intl')
        self.assertEqual(config['primary_color'], '#000000')
        self.assertFalse(config['features']['finance'])
        self.assertTrue(config['features']['sms'])
        self.assertNotIn('sms_api_key', config)
        self.assertNotIn('sms_api_secret', config)


class TenantLimitTests(TestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(slug='small', name='Small School', email='s@small.zm', max_students=2)

    def _add_student(self, number, status='active'):
        return Student.objects.create(
            tenant=self.tenant, first_name='Pupil', last_name=str(number),
            student_id=f'S-{number}', status=status,
        )

    def test_under_limit_passes(self):
        self._add_student(1)
        check_tenant_limit(self.tenant, 'students')

    def test_limit_reached_raises(self):
        self._add_student(1)
        self._add_student(2)
        with self.assertRaises(TenantLimitError):
            check_tenant_limit(self.tenant, 'students')

    def test_only_active_students_count(self):
        self._add_student(1)
        self._add_student(2, status='graduated')
        self.assertEqual(get_usage(self.tenant, 'students'), 1)
        check_tenant_limit(self.tenant, 'students')

    def test_zero_means_unlimited(self):
        self.tenant.max_students = 0
        self._add_student(1)
        self._add_student(2)
        check_tenant_limit(self.tenant, 'students')


class TenantConfigViewTests(APITestCase):

    def setUp(self):
        TenantMiddleware.clear_cache()
        self.tenant = Tenant.objects.create(slug='kabwe', name='Kabwe High', email='info@kabwe.zm')

    def test_config_by_header(self):
        response = self.client.get(reverse('tenants:tenant-config'), HTTP_X_TENANT_ID='kabwe')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['name'], 'Kabwe High')

    def test_config_without_tenant_is_404(self):
        response = self.client.get(reverse('tenants:tenant-config'))
        self.assertEqual(response.status_code, 404)

    def test_config_of_suspended_school_is_404(self):
        self.tenant.status = Tenant.Status.SUSPENDED
        self.tenant.save()
        response = self.client.get(reverse('tenants:tenant-config'), HTTP_X_TENANT_ID='kabwe')
        self.assertEqual(response.status_code, 404)


class MyTenantsViewTests(APITestCase):

    def test_lists_active_memberships_with_role(self):
        user = User.objects.create_user(email='head@example.com', password='x')
        a = Tenant.objects.create(slug='aaa', name='Alpha School', email='a@alpha.zm')
        b = Tenant.objects.create(slug='bbb', name='Beta School', email='b@beta.zm')
        c = Tenant.objects.create(slug='ccc', name='Gamma School', email='c@gamma.zm')
        TenantMembership.objects.create(tenant=a, user=user, role='owner')
        TenantMembership.objects.create(tenant=b, user=user, role='teacher')
        TenantMembership.objects.create(tenant=c, user=user, role='teacher', is_active=False)

        self.client.force_authenticate(user)
        response = self.client.get(reverse('tenants:tenant-my'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([(row['slug'], row['role']) for row in response.data], [('aaa', 'owner'), ('bbb', 'teacher')])


class TenantMemberViewSetTests(APITestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(slug='roma', name='Roma Girls', email='info@roma.zm', max_users=3)
        self.owner = User.objects.create_user(email='owner@roma.zm', password='x')
        self.admin = User.objects.create_user(email='admin@roma.zm', password='x')
        self.teacher = User.objects.create_user(email='teacher@roma.zm', password='x')
        self.owner_membership = TenantMembership.objects.create(tenant=self.tenant, user=self.owner, role='owner')
        TenantMembership.objects.create(tenant=self.tenant, user=self.admin, role='admin')
        self.teacher_membership = TenantMembership.objects.create(
            tenant=self.tenant, user=self.teacher, role='teacher',
        )
        self.list_url = reverse('tenants:tenant-member-list')

    def test_admin_lists_members(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 3)

    def test_teacher_cannot_manage_members(self):
        self.client.force_authenticate(self.teacher)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, 403)

    def test_add_member_by_email_respects_user_limit(self):
        User.objects.create_user(email='bursar@roma.zm', password='x')
        self.client.force_authenticate(self.owner)
        response = self.client.post(self.list_url, {'email': 'bursar@roma.zm', 'role': 'bursar'}, format='json')
        self.assertEqual(response.status_code, 403)

        self.tenant.max_users = 10
        self.tenant.save()
        response = self.client.post(self.list_url, {'email': 'bursar@roma.zm', 'role': 'bursar'}, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data['role'], 'bursar')

    def test_add_unknown_email_is_400(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post(self.list_url, {'email': 'ghost@roma.zm'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.data)

    def test_add_existing_member_is_400(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post(self.list_url, {'email': 'teacher@roma.zm'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_admin_cannot_grant_owner(self):
        self.client.force_authenticate(self.admin)
        url = reverse('tenants:tenant-member-detail', args=[self.teacher_membership.id])
        response = self.client.patch(url, {'role': 'owner'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_cannot_remove_last_owner(self):
        self.client.force_authenticate(self.owner)
        url = reverse('tenants:tenant-member-detail', args=[self.owner_membership.id])
        response = self.client.delete(url)
        self.assertEqual(response.status_code, 400)
        self.assertTrue(TenantMembership.objects.filter(pk=self.owner_membership.pk).exists())

    def test_cannot_demote_last_owner(self):
        self.client.force_authenticate(self.owner)
        url = reverse('tenants:tenant-member-detail', args=[self.owner_membership.id])
        response = self.client.patch(url, {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_remove_teacher(self):
        self.client.force_authenticate(self.admin)
        url = reverse('tenants:tenant-member-detail', args=[self.teacher_membership.id])
        response = self.client.delete(url)
        self.assertEqual(response.status_code, 204)
        self.assertFalse(TenantMembership.objects.filter(pk=self.teacher_membership.pk).exists())
