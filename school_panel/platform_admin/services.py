"""
Platform back-office business logic.

Tenant creation and payment confirmation run in a transaction: a school is
either created with its first owner or not at all, and a confirmed payment
always activates the school it pays for.
"""
from datetime import timedelta
from decimal import Decimal
import logging
import uuid

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from academics.models import Student
from tenants.models import Tenant, TenantMembership

from .models import Plan, SubscriptionPayment

logger = logging.getLogger(__name__)

User = get_user_model()

EXPIRY_WARNING_DAYS = 7
REVENUE_MONTHS = 6

# plan feature code -> Tenant flag switched on confirmation
FEATURE_FLAGS = {
    'sms_notifications': 'sms_enabled',
    'email_notifications': 'email_enabled',
}


class PlatformServiceError(Exception):
    """Back-office operation rejected."""
    pass


def receipt_number():
    return f'SUB-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}'


def limits_for_tier(tier):
    """Limits of the Plan for `tier`, or Tenant.DEFAULT_LIMITS when no plan exists."""
    plan = Plan.objects.filter(tier=tier).first()
    if plan is None:
        return dict(Tenant.DEFAULT_LIMITS)
    return plan.limits()


def period_end_for(start, billing_cycle):
    days = 365 if billing_cycle == SubscriptionPayment.BillingCycle.YEARLY else 30
    return start + timedelta(days=days)


def plan_price(plan, billing_cycle, currency='ZMW'):
    cycle = 'yearly' if billing_cycle == SubscriptionPayment.BillingCycle.YEARLY else 'monthly'
    field = f'{cycle}_price_{"usd" if currency == "USD" else "zmw"}'
    return getattr(plan, field)


class PlatformService:

    @staticmethod
    @transaction.atomic
    def create_tenant(data, created_by=None):
        """
        Create a school on trial, optionally with its first owner.

        Args:
            data: validated TenantCreateSerializer data
            created_by: platform admin performing the action

        Returns:
            (Tenant, owner user or None)

        Raises:
            PlatformServiceError: slug, school email or owner email taken
        """
        slug = data['slug']
        if Tenant.objects.filter(slug__iexact=slug).exists():
            raise PlatformServiceError('School slug already exists.')
        if Tenant.objects.filter(email__iexact=data['email']).exists():
            raise PlatformServiceError('School email already in use.')

        admin_email = data.get('admin_email')
        if admin_email and User.objects.filter(email__iexact=admin_email).exists():
            raise PlatformServiceError('Admin email already in use.')

        tier = data.get('tier') or Tenant.Tier.FREE
        tenant = Tenant(
            name=data['name'],
            slug=slug,
            email=data['email'],
            phone=data.get('phone', ''),
            address=data.get('address', ''),
            city=data.get('city', ''),
            country=data.get('country') or 'ZM',
            tier=tier,
            status=Tenant.Status.TRIAL,
            trial_ends_at=timezone.now() + timedelta(days=settings.TENANT_TRIAL_DAYS),
        )
        tenant.apply_limits(limits_for_tier(tier))
        tenant.save()

        owner = None
        if admin_email:
            owner = User.objects.create_user(
                email=admin_email,
                password=data['admin_password'],
                full_name=data.get('admin_full_name', ''),
            )
            TenantMembership.objects.create(tenant=tenant, user=owner, role=TenantMembership.Role.OWNER)

        logger.info(
            f'Tenant created: {tenant.slug} tier={tenant.tier} owner={getattr(owner, "email", None)} '
            f'by={getattr(created_by, "email", None)}'
        )
        return tenant, owner

    @staticmethod
    def suspend_tenant(tenant, reason=''):
        tenant.status = Tenant.Status.SUSPENDED
        if reason:
            tenant.metadata = {**(tenant.metadata or {}), 'suspension_reason': reason}
        tenant.save(update_fields=['status', 'metadata', 'updated_at'])
        logger.warning(f'Tenant suspended: {tenant.slug} reason={reason!r}')
        return tenant

    @staticmethod
    def activate_tenant(tenant, subscription_ends_at=None):
        tenant.status = Tenant.Status.ACTIVE
        if subscription_ends_at is not None:
            tenant.subscription_ends_at = subscription_ends_at
        metadata = dict(tenant.metadata or {})
        metadata.pop('suspension_reason', None)
        tenant.metadata = metadata
        tenant.save(update_fields=['status', 'subscription_ends_at', 'metadata', 'updated_at'])
        logger.info(f'Tenant activated: {tenant.slug} until={tenant.subscription_ends_at}')
        return tenant

    @staticmethod
    @transaction.atomic
    def confirm_payment(payment, external_ref='', notes=''):
        """
        Mark a PENDING payment COMPLETED and activate the school on the paid plan.

        Raises:
            PlatformServiceError: payment is not PENDING
        """
        payment = (
            SubscriptionPayment.objects
            .select_for_update()
            .select_related('plan')
            .get(pk=payment.pk)
        )
        if payment.status != SubscriptionPayment.Status.PENDING:
            raise PlatformServiceError('Payment already processed.')

        payment.status = SubscriptionPayment.Status.COMPLETED
        payment.paid_at = timezone.now()
        payment.receipt_number = payment.receipt_number or receipt_number()
        if external_ref:
            payment.external_ref = external_ref
        if notes:
            payment.notes = notes
        payment.save()

        plan = payment.plan
        tenant = Tenant.objects.select_for_update().get(pk=payment.tenant_id)
        tenant.tier = plan.tier
        tenant.status = Tenant.Status.ACTIVE
        tenant.subscription_started_at = payment.period_start
        tenant.subscription_ends_at = payment.period_end
        tenant.apply_limits(plan.limits())
        for feature, flag in FEATURE_FLAGS.items():
            setattr(tenant, flag, plan.has_feature(feature))
        tenant.save()

        logger.info(
            f'Subscription payment confirmed: {payment.id} tenant={tenant.slug} '
            f'tier={tenant.tier} until={tenant.subscription_ends_at}'
        )
        return payment

    @staticmethod
    @transaction.atomic
    def reject_payment(payment, reason=''):
        payment = SubscriptionPayment.objects.select_for_update().get(pk=payment.pk)
        if payment.status != SubscriptionPayment.Status.PENDING:
            raise PlatformServiceError('Payment already processed.')

        payment.status = SubscriptionPayment.Status.FAILED
        payment.failure_reason = reason or 'Payment rejected by admin'
        payment.save(update_fields=['status', 'failure_reason', 'updated_at'])
        logger.warning(f'Subscription payment rejected: {payment.id} reason={payment.failure_reason!r}')
        return payment

    @staticmethod
    def expired_tenants(now=None):
        """TRIAL schools past trial_ends_at and ACTIVE schools past subscription_ends_at."""
        now = now or timezone.now()
        trials = Tenant.objects.filter(status=Tenant.Status.TRIAL, trial_ends_at__lt=now)
        subscriptions = Tenant.objects.filter(status=Tenant.Status.ACTIVE, subscription_ends_at__lt=now)
        return (trials | subscriptions).order_by('name')

    @staticmethod
    def expire_subscriptions(now=None, dry_run=False):
        """Suspend expired schools. Returns the list of affected tenants."""
        tenants = list(PlatformService.expired_tenants(now))
        if dry_run:
            return tenants
        for tenant in tenants:
            tenant.status = Tenant.Status.SUSPENDED
            # save() per row so post_save clears the middleware cache
            tenant.save(update_fields=['status', 'updated_at'])
            logger.warning(f'Tenant expired and suspended: {tenant.slug}')
        return tenants

    @staticmethod
    def dashboard_stats(now=None):
        now = now or timezone.now()
        completed = SubscriptionPayment.objects.filter(status=SubscriptionPayment.Status.COMPLETED)

        tenants_by_status = dict(
            Tenant.objects.values_list('status').annotate(count=Count('id')).order_by()
        )
        tenants_by_tier = dict(
            Tenant.objects.values_list('tier').annotate(count=Count('id')).order_by()
        )

        revenue_by_month = {}
        since = now - timedelta(days=REVENUE_MONTHS * 31)
        for amount, paid_at in completed.filter(paid_at__gte=since).values_list('total_amount', 'paid_at'):
            month = paid_at.strftime('%Y-%m')
            revenue_by_month[month] = revenue_by_month.get(month, Decimal('0.00')) + amount

        recent_payments = [
            {
                'id': p.id,
                'tenant_name': p.tenant.name,
                'plan_name': p.plan.name,
                'amount': p.total_amount,
                'currency': p.currency,
                'paid_at': p.paid_at,
            }
            for p in completed.select_related('tenant', 'plan').order_by('-paid_at')[:5]
        ]

        expiring = (
            Tenant.objects
            .filter(
                status=Tenant.Status.ACTIVE,
                subscription_ends_at__gte=now,
                subscription_ends_at__lte=now + timedelta(days=EXPIRY_WARNING_DAYS),
            )
            .order_by('subscription_ends_at')
            .values('id', 'name', 'slug', 'tier', 'subscription_ends_at')[:10]
        )

        return {
            'totals': {
                'tenants': Tenant.objects.count(),
                'students': Student.objects.count(),
                'users': User.objects.count(),
                'revenue': completed.aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00'),
            },
            'tenants_by_status': tenants_by_status,
            'tenants_by_tier': tenants_by_tier,
            'revenue_by_month': dict(sorted(revenue_by_month.items())),
            'recent_payments': recent_payments,
            'expiring_subscriptions': list(expiring),
        }
