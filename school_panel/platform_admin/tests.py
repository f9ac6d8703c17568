"""
Tests for platform_admin app.

Covers:
- School creation (slug/email uniqueness, plan limits, trial, first owner)
- Subscription payment confirm/reject
- Suspend/activate, SMS config, settings masking, SMS credits
- Plans, platform users, announcements, dashboard
- Management commands
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from tenants.models import Tenant, TenantMembership

from .models import Plan, PlatformAnnouncement, PlatformSettings, SubscriptionPayment
from .services import PlatformService, PlatformServiceError

User = get_user_model()


def make_plan(tier='STARTER', **extra):
    defaults = {
        'name': tier.title(),
        'monthly_price_zmw': Decimal('500.00'),
        'yearly_price_zmw': Decimal('5000.00'),
        'max_students': 200,
        'max_teachers': 10,
        'max_users': 20,
        'max_classes': 10,
        'features': ['attendance', 'sms_notifications'],
    }
    defaults.update(extra)
    return Plan.objects.create(tier=tier, **defaults)


class PlatformServiceTest(TestCase):

    def tenant_data(self, **extra):
        data = {'name': 'Lusaka Academy', 'slug': 'lusaka-academy', 'email': 'info@lusaka-academy.zm'}
        data.update(extra)
        return data

    def test_create_tenant_on_trial_with_fallback_limits(self):
        tenant, owner = PlatformService.create_tenant(self.tenant_data())

        self.assertIsNone(owner)
        self.assertEqual(tenant.status, Tenant.Status.TRIAL)
        self.assertEqual(tenant.tier, Tenant.Tier.FREE)
        self.assertEqual(
            (tenant.max_students, tenant.max_teachers, tenant.max_users, tenant.max_classes),
            (50, 5, 10, 5),
        )
        remaining = tenant.trial_ends_at - timezone.now()
        self.assertTrue(timedelta(days=13) < remaining <= timedelta(days=14))

    def test_create_tenant_copies_plan_limits(self):
        make_plan('ENTERPRISE', max_students=0, max_teachers=0, max_users=1000, max_classes=100)
        tenant, _ = PlatformService.create_tenant(self.tenant_data(tier='ENTERPRISE'))
        self.assertEqual(tenant.max_students, 0)
        self.assertEqual(tenant.max_users, 1000)

    def test_duplicate_slug_rejected(self):
        PlatformService.create_tenant(self.tenant_data())
        with self.assertRaisesMessage(PlatformServiceError, 'School slug already exists.'):
            PlatformService.create_tenant(self.tenant_data(email='other@lusaka-academy.zm'))
        self.assertEqual(Tenant.objects.count(), 1)

    def test_duplicate_email_rejected(self):
        PlatformService.create_tenant(self.tenant_data())
        with self.assertRaisesMessage(PlatformServiceError, 'School email already in use.'):
            PlatformService.create_tenant(self.tenant_data(slug='lusaka-academy-2'))

    def test_create_tenant_with_owner(self):
        tenant, owner = PlatformService.create_tenant(self.tenant_data(
            admin_email='head@lusaka-academy.zm', admin_password='secret123', admin_full_name='Grace Mwansa',
        ))
        self.assertTrue(owner.check_password('secret123'))
        membership = TenantMembership.objects.get(tenant=tenant, user=owner)
        self.assertEqual(membership.role, TenantMembership.Role.OWNER)

    def test_owner_email_taken_rolls_back(self):
        User.objects.create_user(email='head@lusaka-academy.zm', password='x')
        with self.assertRaises(PlatformServiceError):
            PlatformService.create_tenant(self.tenant_data(
                admin_email='head@lusaka-academy.zm', admin_password='secret123', admin_full_name='Grace',
            ))
        self.assertFalse(Tenant.objects.exists())

    def test_confirm_payment_activates_tenant(self):
        plan = make_plan()
        tenant, _ = PlatformService.create_tenant(self.tenant_data())
        start = timezone.now()
        payment = SubscriptionPayment.objects.create(
            tenant=tenant, plan=plan, total_amount=Decimal('500.00'),
            period_start=start, period_end=start + timedelta(days=30),
        )

        PlatformService.confirm_payment(payment, external_ref='MTN-123')

        payment.refresh_from_db()
        tenant.refresh_from_db()
        self.assertEqual(payment.status, SubscriptionPayment.Status.COMPLETED)
        self.assertTrue(payment.receipt_number.startswith('SUB-'))
        self.assertIsNotNone(payment.paid_at)
        self.assertEqual(tenant.status, Tenant.Status.ACTIVE)
        self.assertEqual(tenant.tier, 'STARTER')
        self.assertEqual(tenant.max_students, 200)
        self.assertEqual(tenant.subscription_ends_at, payment.period_end)
        self.assertTrue(tenant.sms_enabled)

    def test_confirm_twice_rejected(self):
        plan = make_plan()
        tenant, _ = PlatformService.create_tenant(self.tenant_data())
        start = timezone.now()
        payment = SubscriptionPayment.objects.create(
            tenant=tenant, plan=plan, total_amount=Decimal('500.00'),
            period_start=start, period_end=start + timedelta(days=30),
        )
        PlatformService.confirm_payment(payment)
        with self.assertRaisesMessage(PlatformServiceError, 'Payment already processed.'):
            PlatformService.confirm_payment(payment)
        with self.assertRaises(PlatformServiceError):
            PlatformService.reject_payment(payment)

    def test_expire_subscriptions(self):
        now = timezone.now()
        expired_trial = Tenant.objects.create(
            slug='old-trial', name='Old Trial', email='a@a.zm', trial_ends_at=now - timedelta(days=1),
        )
        expired_paid = Tenant.objects.create(
            slug='old-paid', name='Old Paid', email='b@b.zm', status=Tenant.Status.ACTIVE,
            subscription_ends_at=now - timedelta(hours=1),
        )
        current = Tenant.objects.create(
            slug='current', name='Current', email='c@c.zm', status=Tenant.Status.ACTIVE,
            subscription_ends_at=now + timedelta(days=10),
        )

        dry = PlatformService.expire_subscriptions(dry_run=True)
        self.assertEqual({t.slug for t in dry}, {'old-trial', 'old-paid'})
        expired_trial.refresh_from_db()
        self.assertEqual(expired_trial.status, Tenant.Status.TRIAL)

        PlatformService.expire_subscriptions()
        for tenant, expected in ((expired_trial, 'SUSPENDED'), (expired_paid, 'SUSPENDED'), (current, 'ACTIVE')):
            tenant.refresh_from_db()
            self.assertEqual(tenant.status, expected)


class ManagementCommandTest(TestCase):

    def test_seed_plans_is_idempotent(self):
        call_command('seed_plans', stdout=StringIO())
        call_command('seed_plans', stdout=StringIO())
        self.assertEqual(Plan.objects.count(), 4)
        self.assertEqual(Plan.objects.get(tier='ENTERPRISE').max_students, 0)

    def test_expire_subscriptions_dry_run(self):
        Tenant.objects.create(
            slug='old-trial', name='Old Trial', email='a@a.zm', trial_ends_at=timezone.now() - timedelta(days=1),
        )
        out = StringIO()
        call_command('expire_subscriptions', '--dry-run', stdout=out)
        self.assertIn('old-trial', out.getvalue())
        self.assertEqual(Tenant.objects.get(slug='old-trial').status, Tenant.Status.TRIAL)

        call_command('expire_subscriptions', stdout=StringIO())
        self.assertEqual(Tenant.objects.get(slug='old-trial').status, Tenant.Status.SUSPENDED)


class PlatformAPITestCase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            email='ops@platform.zm', password='x', role=User.Role.PLATFORM_ADMIN,
        )
        self.school_user = User.objects.create_user(email='user@school.zm', password='x')
        self.client.force_authenticate(self.admin)


class PlatformTenantAPITest(PlatformAPITestCase):

    def test_school_user_forbidden(self):
        self.client.force_authenticate(self.school_user)
        response = self.client.get(reverse('platform_admin:tenant-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_and_duplicate_slug(self):
        payload = {'name': 'Chipata Day', 'slug': 'chipata-day', 'email': 'office@chipata.zm'}
        response = self.client.post(reverse('platform_admin:tenant-list'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['tenant']['status'], 'TRIAL')

        payload['email'] = 'another@chipata.zm'
        response = self.client.post(reverse('platform_admin:tenant-list'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'School slug already exists.')

    def test_invalid_slug(self):
        response = self.client.post(reverse('platform_admin:tenant-list'), {
            'name': 'Bad', 'slug': 'Bad Slug!', 'email': 'bad@school.zm',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('slug', response.data)

    def test_list_paginated_and_filtered(self):
        for i in range(3):
            Tenant.objects.create(slug=f'school-{i}', name=f'School {i}', email=f's{i}@school.zm')
        Tenant.objects.create(slug='kafue', name='Kafue High', email='kafue@school.zm', status=Tenant.Status.ACTIVE)

        response = self.client.get(reverse('platform_admin:tenant-list'), {'page': 1, 'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['tenants']), 2)
        self.assertEqual(response.data['pagination'], {'page': 1, 'limit': 2, 'total': 4, 'total_pages': 2})

        response = self.client.get(reverse('platform_admin:tenant-list'), {'status': 'active'})
        self.assertEqual([t['slug'] for t in response.data['tenants']], ['kafue'])

        response = self.client.get(reverse('platform_admin:tenant-list'), {'search': 'KAFUE'})
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_detail_masks_secrets(self):
        tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm', sms_api_key='live-key')
        response = self.client.get(reverse('platform_admin:tenant-detail', args=[tenant.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tenant']['sms_api_key'], '********')
        self.assertIsNone(response.data['tenant']['sms_api_secret'])
        self.assertEqual(response.data['counts']['students'], 0)

    def test_suspend_and_activate(self):
        tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm')
        response = self.client.post(
            reverse('platform_admin:tenant-suspend', args=[tenant.pk]), {'reason': 'Unpaid'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        tenant.refresh_from_db()
        self.assertEqual(tenant.status, Tenant.Status.SUSPENDED)

        response = self.client.post(
            reverse('platform_admin:tenant-activate', args=[tenant.pk]),
            {'subscription_ends_at': '2030-01-01T00:00:00Z'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        tenant.refresh_from_db()
        self.assertEqual(tenant.status, Tenant.Status.ACTIVE)
        self.assertEqual(tenant.subscription_ends_at.year, 2030)

    def test_update_subscription(self):
        tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm')
        response = self.client.patch(
            reverse('platform_admin:tenant-subscription', args=[tenant.pk]),
            {'tier': 'PROFESSIONAL', 'max_students': 500}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        tenant.refresh_from_db()
        self.assertEqual(tenant.tier, 'PROFESSIONAL')
        self.assertEqual(tenant.max_students, 500)

    def test_sms_config(self):
        tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm')
        url = reverse('platform_admin:tenant-sms-config', args=[tenant.pk])

        response = self.client.patch(url, {'sms_sender_id': 'mongu1', 'sms_enabled': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        tenant.refresh_from_db()
        self.assertEqual(tenant.sms_sender_id, 'MONGU1')
        self.assertTrue(tenant.sms_enabled)

        for bad in ('ab', 'has space', 'waytoolongsender'):
            response = self.client.patch(url, {'sms_sender_id': bad}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, bad)

        response = self.client.get(reverse('platform_admin:tenant-sms-config-overview'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tenants'][0]['sms_sender_id'], 'MONGU1')


class SubscriptionPaymentAPITest(PlatformAPITestCase):

    def setUp(self):
        super().setUp()
        self.plan = make_plan()
        self.tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm')

    def test_create_defaults_from_plan(self):
        response = self.client.post(reverse('platform_admin:payment-list'), {
            'tenant': str(self.tenant.pk), 'plan': self.plan.pk, 'billing_cycle': 'YEARLY',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        payment = SubscriptionPayment.objects.get(pk=response.data['id'])
        self.assertEqual(payment.total_amount, Decimal('5000.00'))
        self.assertEqual((payment.period_end - payment.period_start).days, 365)
        self.assertEqual(payment.status, SubscriptionPayment.Status.PENDING)

    def test_confirm_and_reject(self):
        start = timezone.now()
        pending = SubscriptionPayment.objects.create(
            tenant=self.tenant, plan=self.plan, total_amount=Decimal('500.00'),
            period_start=start, period_end=start + timedelta(days=30),
        )
        other = SubscriptionPayment.objects.create(
            tenant=self.tenant, plan=self.plan, total_amount=Decimal('500.00'),
            period_start=start, period_end=start + timedelta(days=30),
        )

        response = self.client.post(reverse('platform_admin:payment-confirm', args=[pending.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.tenant.refresh_from_db()
        self.assertEqual(self.tenant.status, Tenant.Status.ACTIVE)

        response = self.client.post(reverse('platform_admin:payment-confirm', args=[pending.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            reverse('platform_admin:payment-reject', args=[other.pk]), {'reason': 'Reference not found'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        other.refresh_from_db()
        self.assertEqual(other.status, SubscriptionPayment.Status.FAILED)
        self.assertEqual(other.failure_reason, 'Reference not found')

        response = self.client.get(reverse('platform_admin:payment-list'), {'status': 'completed'})
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['payments'][0]['id'], pending.pk)


class PlanAPITest(PlatformAPITestCase):

    def test_duplicate_tier_rejected(self):
        make_plan('STARTER')
        response = self.client.post(reverse('platform_admin:plan-list'), {
            'name': 'Starter 2', 'tier': 'STARTER',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tier', response.data)

    def test_toggle(self):
        plan = make_plan()
        response = self.client.post(reverse('platform_admin:plan-toggle', args=[plan.pk]), {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        plan.refresh_from_db()
        self.assertFalse(plan.is_active)

        self.client.post(reverse('platform_admin:plan-toggle', args=[plan.pk]), {}, format='json')
        plan.refresh_from_db()
        self.assertTrue(plan.is_active)


class PlatformSettingsAPITest(PlatformAPITestCase):

    def test_secrets_masked_and_mask_ignored(self):
        response = self.client.patch(reverse('platform_admin:settings'), {
            'sms_api_key': 'real-key', 'support_email': 'help@platform.zm',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['settings']['sms_api_key'], '********')
        self.assertIsNone(response.data['settings']['email_api_key'])

        response = self.client.patch(reverse('platform_admin:settings'), {'sms_api_key': '********'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PlatformSettings.load().sms_api_key, 'real-key')

    def test_add_sms_credits(self):
        url = reverse('platform_admin:add-sms-credits')
        response = self.client.post(url, {'credits': 500}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['new_balance'], 500)

        response = self.client.post(url, {'credits': 250}, format='json')
        self.assertEqual(response.data['new_balance'], 750)

        response = self.client.post(url, {'credits': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PlatformUsersAPITest(PlatformAPITestCase):

    def test_create_and_list(self):
        url = reverse('platform_admin:users')
        response = self.client.post(url, {
            'email': 'Support@Platform.zm', 'full_name': 'Support Desk', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['role'], 'platform_support')
        self.assertNotIn('password', response.data)

        response = self.client.post(url, {'email': 'support@platform.zm', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(url)
        self.assertEqual({u['email'] for u in response.data}, {'support@platform.zm', 'ops@platform.zm'})


class PlatformAnnouncementAPITest(PlatformAPITestCase):

    def test_active_feed_for_any_user(self):
        PlatformAnnouncement.objects.create(title='Maintenance', message='Sunday 02:00')
        PlatformAnnouncement.objects.create(title='Old', message='.', ends_at=timezone.now() - timedelta(days=1))
        hidden = PlatformAnnouncement.objects.create(title='Hidden', message='.')

        response = self.client.post(reverse('platform_admin:announcement-toggle', args=[hidden.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        self.client.force_authenticate(self.school_user)
        response = self.client.get(reverse('platform_admin:announcement-active'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['title'] for a in response.data], ['Maintenance'])

        response = self.client.get(reverse('platform_admin:announcement-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PlatformDashboardAPITest(PlatformAPITestCase):

    def test_dashboard(self):
        plan = make_plan()
        tenant = Tenant.objects.create(
            slug='mongu', name='Mongu', email='m@school.zm', status=Tenant.Status.ACTIVE,
            subscription_ends_at=timezone.now() + timedelta(days=3),
        )
        Tenant.objects.create(slug='kasama', name='Kasama', email='k@school.zm')
        start = timezone.now()
        SubscriptionPayment.objects.create(
            tenant=tenant, plan=plan, total_amount=Decimal('500.00'), status=SubscriptionPayment.Status.COMPLETED,
            paid_at=start, period_start=start, period_end=start + timedelta(days=30),
        )

        response = self.client.get(reverse('platform_admin:dashboard'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totals']['tenants'], 2)
        self.assertEqual(response.data['totals']['revenue'], Decimal('500.00'))
        self.assertEqual(response.data['tenants_by_status'], {'ACTIVE': 1, 'TRIAL': 1})
        self.assertEqual(len(response.data['recent_payments']), 1)
        self.assertEqual([t['slug'] for t in response.data['expiring_subscriptions']], ['mongu'])
        self.assertEqual(list(response.data['revenue_by_month'].values()), [Decimal('500.00')])


class PlatformSupportAccessTest(PlatformAPITestCase):

    def setUp(self):
        super().setUp()
        self.support = User.objects.create_user(
            email='desk@platform.zm', password='x', role=User.Role.PLATFORM_SUPPORT,
        )
        self.tenant = Tenant.objects.create(slug='mongu', name='Mongu', email='m@school.zm')
        self.client.force_authenticate(self.support)

    def test_support_reads_back_office(self):
        for url in (
            reverse('platform_admin:tenant-list'),
            reverse('platform_admin:tenant-detail', args=[self.tenant.pk]),
            reverse('platform_admin:payment-list'),
            reverse('platform_admin:lead-list'),
            reverse('platform_admin:deal-list'),
            reverse('platform_admin:dashboard'),
        ):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK, url)

    def test_support_cannot_write(self):
        response = self.client.post(reverse('platform_admin:tenant-list'), {
            'name': 'Chipata Day', 'slug': 'chipata-day', 'email': 'office@chipata.zm',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Tenant.objects.filter(slug='chipata-day').exists())

        response = self.client.post(reverse('platform_admin:tenant-suspend', args=[self.tenant.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.tenant.refresh_from_db()
        self.assertEqual(self.tenant.status, Tenant.Status.TRIAL)

        response = self.client.post(reverse('platform_admin:lead-list'), {
            'school_name': 'Kabwe High', 'contact_name': 'Head',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_support_has_no_admin_only_endpoints(self):
        for url in (
            reverse('platform_admin:settings'),
            reverse('platform_admin:plan-list'),
            reverse('platform_admin:users'),
        ):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, url)


class PlatformFilterValidationTest(PlatformAPITestCase):

    def test_malformed_tenant_filter_is_400(self):
        response = self.client.get(reverse('platform_admin:payment-list'), {'tenant': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tenant', response.data)

    def test_malformed_lead_filter_is_400(self):
        response = self.client.get(reverse('platform_admin:deal-list'), {'lead': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('lead', response.data)
