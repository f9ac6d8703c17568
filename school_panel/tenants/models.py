"""
Tenant models: the core of the multi-tenant design.

Shared database, shared schema: every school-level model carries a tenant FK
(see mixins.TenantModelMixin). Tenant = one school account.
"""

import uuid

from django.conf import settings
from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models

slug_validator = RegexValidator(
    r'^[a-z0-9-]+$',
    'Slug may contain only lowercase letters, digits and hyphens.',
)


class Tenant(models.Model):
    """
    A school. All school data is bound to a tenant through a FK.
    """

    class Tier(models.TextChoices):
        FREE = 'FREE', 'Free'
        STARTER = 'STARTER', 'Starter'
        PROFESSIONAL = 'PROFESSIONAL', 'Professional'
        ENTERPRISE = 'ENTERPRISE', 'Enterprise'

    class Status(models.TextChoices):
        TRIAL = 'TRIAL', 'Trial'
        ACTIVE = 'ACTIVE', 'Active'
        SUSPENDED = 'SUSPENDED', 'Suspended'
        CANCELLED = 'CANCELLED', 'Cancelled'

    # Used when no Plan row exists for the requested tier
    DEFAULT_LIMITS = {
        'max_students': 50,
        'max_teachers': 5,
        'max_users': 10,
        'max_classes': 5,
    }

    # === Identity ===
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    slug = models.CharField(
        max_length=50, unique=True, db_index=True,
        validators=[slug_validator, MinLengthValidator(2)],
        help_text='Subdomain: <slug>.<platform domain>',
    )
    name = models.CharField(max_length=200, validators=[MinLengthValidator(2)])

    # === Contacts ===
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=2, default='ZM')
    currency = models.CharField(max_length=3, default='ZMW')
    timezone = models.CharField(max_length=50, default='Africa/Lusaka')
    logo_url = models.URLField(blank=True)

    # === Subscription ===
    tier = models.CharField(max_length=20, choices=Tier.choices, default=Tier.FREE)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.TRIAL, db_index=True)
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    subscription_started_at = models.DateTimeField(null=True, blank=True)
    subscription_ends_at = models.DateTimeField(null=True, blank=True)

    # === Limits (0 = unlimited) ===
    max_students = models.PositiveIntegerField(default=50)
    max_teachers = models.PositiveIntegerField(default=5)
    max_users = models.PositiveIntegerField(default=10)
    max_classes = models.PositiveIntegerField(default=5)

    # === Messaging configuration (providers are not called from here) ===
    sms_enabled = models.BooleanField(default=False)
    sms_sender_id = models.CharField(max_length=11, blank=True)
    sms_api_key = models.CharField(max_length=255, blank=True)
    sms_api_secret = models.CharField(max_length=255, blank=True)
    email_enabled = models.BooleanField(default=True)

    # theme, feature toggles
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'School (tenant)'
        verbose_name_plural = 'Schools (tenants)'

    def __str__(self):
        return f'{self.name} ({self.slug})'

    @property
    def is_accessible(self):
        return self.status in (self.Status.TRIAL, self.Status.ACTIVE)

    def apply_limits(self, limits):
        for field, value in limits.items():
            setattr(self, field, value)

    def to_frontend_config(self):
        """Public config for the front end (used by /api/tenant/config/ and /api/me/). No secrets."""
        metadata = self.metadata or {}
        theme = metadata.get('theme', {})
        features_meta = metadata.get('features', {})
        return {
            'id': str(self.id),
            'slug': self.slug,
            'name': self.name,
            'logo_url': self.logo_url or '',
            'country': self.country,
            'currency': self.currency,
            'timezone': self.timezone,
            'tier': self.tier,
            'status': self.status,
            'primary_color': theme.get('primary_color', '#1e40af'),
            'secondary_color': theme.get('secondary_color', '#f59e0b'),
            'features': {
                'attendance': features_meta.get('attendance', True),
                'finance': features_meta.get('finance', True),
                'announcements': features_meta.get('announcements', True),
                'sms': self.sms_enabled,
                'email': self.email_enabled,
            },
        }


class TenantMembership(models.Model):
    """
    User <-> school link. One user may belong to several schools with different roles.
    """

    class Role(models.TextChoices):
        OWNER = 'owner', 'Owner'
        ADMIN = 'admin', 'Administrator'
        TEACHER = 'teacher', 'Teacher'
        BURSAR = 'bursar', 'Bursar'
        SECRETARY = 'secretary', 'Secretary'

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE,
        related_name='memberships',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tenant_memberships',
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.TEACHER)
    is_active = models.BooleanField(default=True)
    joined_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'School membership'
        verbose_name_plural = 'School memberships'
        unique_together = ['tenant', 'user']
        indexes = [
            models.Index(fields=['tenant', 'role'], name='membership_tenant_role_idx'),
            models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
        ]

    def __str__(self):
        return f'{self.user} -> {self.tenant} ({self.role})'
