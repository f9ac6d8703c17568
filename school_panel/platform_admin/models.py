"""
Back-office models of the platform operator.

Plan                - subscription plan per tier (prices, limits, features)
SubscriptionPayment - a school paying for a plan; confirmed by a platform admin
Lead / Deal         - sales pipeline
PlatformAnnouncement - banner shown to every school
PlatformSettings    - singleton with messaging provider keys and SMS balance
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from tenants.models import Tenant


class Plan(models.Model):
    """Subscription plan. Limits use 0 for unlimited."""

    name = models.CharField(max_length=100)
    tier = models.CharField(max_length=20, choices=Tenant.Tier.choices, unique=True)
    description = models.TextField(blank=True)

    monthly_price_zmw = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    yearly_price_zmw = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    monthly_price_usd = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    yearly_price_usd = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    max_students = models.PositiveIntegerField(default=50)
    max_teachers = models.PositiveIntegerField(default=5)
    max_users = models.PositiveIntegerField(default=10)
    max_classes = models.PositiveIntegerField(default=5)
    max_storage_gb = models.PositiveIntegerField(default=1)

    # feature codes, e.g. ["attendance", "sms_notifications"]
    features = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    is_popular = models.BooleanField(default=False)
    sort_order = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'name']

    def __str__(self):
        return f'{self.name} ({self.tier})'

    def limits(self):
        return {
            'max_students': self.max_students,
            'max_teachers': self.max_teachers,
            'max_users': self.max_users,
            'max_classes': self.max_classes,
        }

    def has_feature(self, code):
        return code in (self.features or [])


class SubscriptionPayment(models.Model):

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        COMPLETED = 'COMPLETED', 'Completed'
        FAILED = 'FAILED', 'Failed'

    class BillingCycle(models.TextChoices):
        MONTHLY = 'MONTHLY', 'Monthly'
        YEARLY = 'YEARLY', 'Yearly'

    class Method(models.TextChoices):
        MOBILE_MONEY = 'MOBILE_MONEY', 'Mobile money'
        BANK_TRANSFER = 'BANK_TRANSFER', 'Bank transfer'
        CARD = 'CARD', 'Card'
        CASH = 'CASH', 'Cash'

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='subscription_payments')
    plan = models.ForeignKey(Plan, on_delete=models.PROTECT, related_name='payments')
    billing_cycle = models.CharField(max_length=10, choices=BillingCycle.choices, default=BillingCycle.MONTHLY)

    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    overage_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='ZMW')

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    payment_method = models.CharField(max_length=20, choices=Method.choices, default=Method.MOBILE_MONEY)
    external_ref = models.CharField(max_length=100, blank=True)
    receipt_number = models.CharField(max_length=50, blank=True)

    period_start = models.DateTimeField()
    period_end = models.DateTimeField()
    paid_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant', 'status'], name='subpay_tenant_status_idx'),
        ]

    def __str__(self):
        return f'{self.tenant.slug} {self.plan.tier} {self.total_amount} {self.currency} ({self.status})'


class Lead(models.Model):

    class Status(models.TextChoices):
        NEW = 'NEW', 'New'
        CONTACTED = 'CONTACTED', 'Contacted'
        QUALIFIED = 'QUALIFIED', 'Qualified'
        CONVERTED = 'CONVERTED', 'Converted'
        LOST = 'LOST', 'Lost'

    school_name = models.CharField(max_length=200)
    contact_name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    source = models.CharField(max_length=50, blank=True, help_text='website, referral, event...')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.NEW, db_index=True)
    notes = models.TextField(blank=True)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_leads',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.school_name} ({self.status})'


class Deal(models.Model):

    class Stage(models.TextChoices):
        PROSPECTING = 'prospecting', 'Prospecting'
        PROPOSAL = 'proposal', 'Proposal'
        NEGOTIATION = 'negotiation', 'Negotiation'
        CLOSED_WON = 'closed_won', 'Closed won'
        CLOSED_LOST = 'closed_lost', 'Closed lost'

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='deals')
    title = models.CharField(max_length=200)
    value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='ZMW')
    stage = models.CharField(max_length=20, choices=Stage.choices, default=Stage.PROSPECTING, db_index=True)
    expected_close_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.title} ({self.stage})'


class PlatformAnnouncementQuerySet(models.QuerySet):

    def active(self, now=None):
        now = now or timezone.now()
        return (
            self.filter(is_active=True)
            .filter(Q(starts_at__isnull=True) | Q(starts_at__lte=now))
            .filter(Q(ends_at__isnull=True) | Q(ends_at__gt=now))
        )


class PlatformAnnouncement(models.Model):
    """Banner shown to users of every school."""

    class Level(models.TextChoices):
        INFO = 'info', 'Info'
        WARNING = 'warning', 'Warning'
        CRITICAL = 'critical', 'Critical'

    title = models.CharField(max_length=200)
    message = models.TextField()
    level = models.CharField(max_length=10, choices=Level.choices, default=Level.INFO)
    is_active = models.BooleanField(default=True)
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PlatformAnnouncementQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class PlatformSettings(models.Model):
    """
    Single row (pk=1). Use PlatformSettings.load().
    """

    SINGLETON_PK = 1

    sms_provider = models.CharField(max_length=50, default='zamtel')
    sms_api_url = models.URLField(blank=True)
    sms_api_key = models.CharField(max_length=255, blank=True)
    sms_api_secret = models.CharField(max_length=255, blank=True)
    sms_default_sender_id = models.CharField(max_length=11, default='SYNC')
    sms_cost_per_unit = models.DecimalField(max_digits=8, decimal_places=4, default=Decimal('0.15'))
    sms_balance_units = models.PositiveIntegerField(default=0)

    email_provider = models.CharField(max_length=50, blank=True)
    email_api_key = models.CharField(max_length=255, blank=True)
    email_from_address = models.EmailField(blank=True)
    email_from_name = models.CharField(max_length=100, blank=True)

    platform_name = models.CharField(max_length=100, default='School Panel')
    platform_logo_url = models.URLField(blank=True)
    support_email = models.EmailField(blank=True)
    support_phone = models.CharField(max_length=30, blank=True)

    allow_tenant_custom_sms = models.BooleanField(default=False)
    allow_tenant_custom_email = models.BooleanField(default=False)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'platform settings'
        verbose_name_plural = 'platform settings'

    def __str__(self):
        return self.platform_name

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj

    def add_sms_credits(self, credits):
        """Atomic increment of the SMS balance; returns the new balance."""
        type(self).objects.filter(pk=self.pk).update(sms_balance_units=F('sms_balance_units') + credits)
        self.refresh_from_db(fields=['sms_balance_units', 'updated_at'])
        return self.sms_balance_units
