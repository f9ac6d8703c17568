from django.urls import reverse
from rest_framework.test import APITestCase

from accounts.models import CustomUser
from tenants.models import Tenant, TenantMembership


class CustomUserManagerTests(APITestCase):
    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            CustomUser.objects.create_user(email='', password='StrongPass123')

    def test_create_user_normalizes_email_and_defaults_role(self):
        user = CustomUser.objects.create_user(email='Clerk@EXAMPLE.com', password='StrongPass123')
        self.assertEqual(user.email, 'Clerk@example.com')
        self.assertEqual(user.role, CustomUser.Role.SCHOOL_USER)
        self.assertFalse(user.is_platform_admin)
        self.assertTrue(user.check_password('StrongPass123'))

    def test_create_superuser_is_platform_admin(self):
        user = CustomUser.objects.create_superuser(email='root@example.com', password='StrongPass123')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, CustomUser.Role.PLATFORM_ADMIN)
        self.assertTrue(user.is_platform_admin)


class TokenAuthTests(APITestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user(
            email='bursar@example.com',
            password='StrongPass123',
            full_name='Mary Banda',
        )

    def test_obtain_and_use_token(self):
        response = self.client.post(
            reverse('accounts:token_obtain_pair'),
            {'email': 'bursar@example.com', 'password': 'StrongPass123'},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = self.client.get(reverse('accounts:me'))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data['email'], 'bursar@example.com')

    def test_wrong_password_rejected(self):
        response = self.client.post(
            reverse('accounts:token_obtain_pair'),
            {'email': 'bursar@example.com', 'password': 'nope'},
            format='json',
        )
        self.assertEqual(response.status_code, 401)

    def test_me_requires_authentication(self):
        response = self.client.get(reverse('accounts:me'))
        self.assertEqual(response.status_code, 401)


class MeViewTests(APITestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user(email='head@example.com', password='StrongPass123')
        self.tenant = Tenant.objects.create(slug='kabulonga', name='Kabulonga Boys', email='office@kabulonga.zm')
        self.other = Tenant.objects.create(slug='munali', name='Munali Secondary', email='office@munali.zm')
        TenantMembership.objects.create(tenant=self.tenant, user=self.user, role=TenantMembership.Role.OWNER)
        TenantMembership.objects.create(
            tenant=self.other, user=self.user, role=TenantMembership.Role.TEACHER, is_active=False,
        )
        self.client.force_authenticate(user=self.user)

    def test_me_lists_active_memberships(self):
        response = self.client.get(reverse('accounts:me'))
        self.assertEqual(response.status_code, 200)
        memberships = response.data['memberships']
        self.assertEqual(len(memberships), 1)
        self.assertEqual(memberships[0]['role'], 'owner')
        self.assertEqual(memberships[0]['tenant']['slug'], 'kabulonga')
        self.assertNotIn('sms_api_key', memberships[0]['tenant'])

    def test_patch_updates_profile_but_not_role(self):
        response = self.client.patch(
            reverse('accounts:me'),
            {'full_name': 'Grace Mwale', 'role': 'platform_admin'},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.full_name, 'Grace Mwale')
        self.assertEqual(self.user.role, CustomUser.Role.SCHOOL_USER)
