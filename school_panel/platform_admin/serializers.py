from django.contrib.auth import get_user_model
from django.core.validators import RegexValidator
from django.utils import timezone
from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from tenants.models import Tenant, slug_validator

from .models import Deal, Lead, Plan, PlatformAnnouncement, PlatformSettings, SubscriptionPayment
from .services import period_end_for, plan_price

User = get_user_model()

SECRET_MASK = '********'

PLATFORM_ROLES = [
    (User.Role.PLATFORM_ADMIN.value, User.Role.PLATFORM_ADMIN.label),
    (User.Role.PLATFORM_SUPPORT.value, User.Role.PLATFORM_SUPPORT.label),
]

sender_id_validator = RegexValidator(
    r'^[A-Za-z0-9]{3,11}$',
    'Sender ID must be 3-11 alphanumeric characters.',
)


def mask(value):
    return SECRET_MASK if value else None


# ═══════════════════════════════════════════════════════════════
# TENANTS
# ═══════════════════════════════════════════════════════════════

class PlatformTenantSerializer(serializers.ModelSerializer):
    """Row of the schools list. Counts come from queryset annotations."""
    user_count = serializers.IntegerField(read_only=True, default=0)
    student_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Tenant
        fields = [
            'id', 'name', 'slug', 'email', 'phone', 'tier', 'status',
            'max_students', 'max_teachers', 'max_users', 'max_classes',
            'trial_ends_at', 'subscription_ends_at',
            'user_count', 'student_count', 'created_at',
        ]
        read_only_fields = fields


class PlatformTenantDetailSerializer(serializers.ModelSerializer):
    """Full school record for the back office; provider secrets are masked."""

    class Meta:
        model = Tenant
        fields = [
            'id', 'name', 'slug', 'email', 'phone', 'address', 'city', 'country',
            'currency', 'timezone', 'logo_url',
            'tier', 'status', 'trial_ends_at', 'subscription_started_at', 'subscription_ends_at',
            'max_students', 'max_teachers', 'max_users', 'max_classes',
            'sms_enabled', 'sms_sender_id', 'sms_api_key', 'sms_api_secret', 'email_enabled',
            'metadata', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['sms_api_key'] = mask(instance.sms_api_key)
        data['sms_api_secret'] = mask(instance.sms_api_secret)
        return data


class TenantCreateSerializer(serializers.Serializer):
    """
    New school. Uniqueness of slug and email is checked by PlatformService
    inside its transaction.
    """
    name = serializers.CharField(min_length=2, max_length=200)
    slug = serializers.CharField(min_length=2, max_length=50, validators=[slug_validator])
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    country = serializers.CharField(required=False, max_length=2, default='ZM')
    tier = serializers.ChoiceField(choices=Tenant.Tier.choices, default=Tenant.Tier.FREE)

    # first owner of the school (optional)
    admin_email = serializers.EmailField(required=False)
    admin_password = serializers.CharField(required=False, write_only=True, min_length=6)
    admin_full_name = serializers.CharField(required=False, min_length=2, max_length=255)

    def validate(self, attrs):
        if attrs.get('admin_email'):
            missing = [f for f in ('admin_password', 'admin_full_name') if not attrs.get(f)]
            if missing:
                raise serializers.ValidationError({f: ['Required when admin_email is given.'] for f in missing})
        return attrs


class TenantSubscriptionSerializer(serializers.ModelSerializer):
    """PATCH /api/platform/tenants/{id}/subscription/"""

    class Meta:
        model = Tenant
        fields = [
            'tier', 'status', 'subscription_ends_at',
            'max_students', 'max_teachers', 'max_users', 'max_classes',
        ]


class TenantSmsConfigSerializer(serializers.ModelSerializer):
    sms_sender_id = serializers.CharField(required=False, validators=[sender_id_validator])

    class Meta:
        model = Tenant
        fields = ['id', 'name', 'slug', 'tier', 'status', 'sms_enabled', 'sms_sender_id']
        read_only_fields = ['id', 'name', 'slug', 'tier', 'status']

    def validate_sms_sender_id(self, value):
        return value.upper()


# ═══════════════════════════════════════════════════════════════
# PLANS & PAYMENTS
# ═══════════════════════════════════════════════════════════════

class PlanSerializer(serializers.ModelSerializer):
    tier = serializers.ChoiceField(
        choices=Tenant.Tier.choices,
        validators=[UniqueValidator(queryset=Plan.objects.all(), message='Plan with this tier already exists.')],
    )
    payments_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Plan
        fields = [
            'id', 'name', 'tier', 'description',
            'monthly_price_zmw', 'yearly_price_zmw', 'monthly_price_usd', 'yearly_price_usd',
            'max_students', 'max_teachers', 'max_users', 'max_classes', 'max_storage_gb',
            'features', 'is_active', 'is_popular', 'sort_order', 'payments_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_features(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('Features must be a list of feature codes.')
        return value


class SubscriptionPaymentSerializer(serializers.ModelSerializer):
    """
    Amounts default to the plan price for the billing cycle, the period to
    30 days (monthly) or 365 days (yearly) from period_start.
    """
    tenant = serializers.PrimaryKeyRelatedField(queryset=Tenant.objects.all())
    tenant_name = serializers.CharField(source='tenant.name', read_only=True)
    tenant_slug = serializers.CharField(source='tenant.slug', read_only=True)
    plan_name = serializers.CharField(source='plan.name', read_only=True)
    plan_tier = serializers.CharField(source='plan.tier', read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    period_start = serializers.DateTimeField(required=False)
    period_end = serializers.DateTimeField(required=False)

    class Meta:
        model = SubscriptionPayment
        fields = [
            'id', 'tenant', 'tenant_name', 'tenant_slug', 'plan', 'plan_name', 'plan_tier',
            'billing_cycle', 'base_amount', 'overage_amount', 'total_amount', 'currency',
            'status', 'payment_method', 'external_ref', 'receipt_number',
            'period_start', 'period_end', 'paid_at', 'failure_reason', 'notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'status', 'receipt_number', 'paid_at', 'failure_reason', 'created_at', 'updated_at',
        ]
        extra_kwargs = {
            'base_amount': {'required': False},
            'overage_amount': {'required': False},
        }

    def validate(self, attrs):
        plan = attrs.get('plan')
        cycle = attrs.get('billing_cycle', SubscriptionPayment.BillingCycle.MONTHLY)
        currency = attrs.get('currency', 'ZMW')

        if 'base_amount' not in attrs and plan is not None:
            attrs['base_amount'] = plan_price(plan, cycle, currency)
        if 'total_amount' not in attrs:
            attrs['total_amount'] = attrs.get('base_amount', 0) + attrs.get('overage_amount', 0)
        if attrs['total_amount'] < 0:
            raise serializers.ValidationError({'total_amount': ['Amount cannot be negative.']})

        attrs.setdefault('period_start', timezone.now())
        attrs.setdefault('period_end', period_end_for(attrs['period_start'], cycle))
        if attrs['period_end'] <= attrs['period_start']:
            raise serializers.ValidationError({'period_end': ['period_end must be after period_start.']})
        return attrs


class PaymentDecisionSerializer(serializers.Serializer):
    external_ref = serializers.CharField(required=False, allow_blank=True, default='', max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)


# ═══════════════════════════════════════════════════════════════
# CRM
# ═══════════════════════════════════════════════════════════════

class LeadSerializer(serializers.ModelSerializer):
    assigned_to_email = serializers.EmailField(source='assigned_to.email', read_only=True, default=None)
    deals_count = serializers.SerializerMethodField()

    class Meta:
        model = Lead
        fields = [
            'id', 'school_name', 'contact_name', 'email', 'phone', 'source', 'status',
            'notes', 'assigned_to', 'assigned_to_email', 'deals_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_deals_count(self, obj):
        return obj.deals.count()


class DealSerializer(serializers.ModelSerializer):
    lead_school_name = serializers.CharField(source='lead.school_name', read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id', 'lead', 'lead_school_name', 'title', 'value', 'currency', 'stage',
            'expected_close_date', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


# ═══════════════════════════════════════════════════════════════
# ANNOUNCEMENTS, SETTINGS, USERS
# ═══════════════════════════════════════════════════════════════

class PlatformAnnouncementSerializer(serializers.ModelSerializer):

    class Meta:
        model = PlatformAnnouncement
        fields = ['id', 'title', 'message', 'level', 'is_active', 'starts_at', 'ends_at', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        starts_at = attrs.get('starts_at')
        ends_at = attrs.get('ends_at')
        if starts_at and ends_at and ends_at <= starts_at:
            raise serializers.ValidationError({'ends_at': ['ends_at must be after starts_at.']})
        return attrs


class PlatformSettingsSerializer(serializers.ModelSerializer):
    """
    Secrets are returned masked. Sending the mask (or an empty value) back
    keeps the stored secret.
    """
    SECRET_FIELDS = ('sms_api_key', 'sms_api_secret', 'email_api_key')

    class Meta:
        model = PlatformSettings
        fields = [
            'sms_provider', 'sms_api_url', 'sms_api_key', 'sms_api_secret',
            'sms_default_sender_id', 'sms_cost_per_unit', 'sms_balance_units',
            'email_provider', 'email_api_key', 'email_from_address', 'email_from_name',
            'platform_name', 'platform_logo_url', 'support_email', 'support_phone',
            'allow_tenant_custom_sms', 'allow_tenant_custom_email', 'updated_at',
        ]
        read_only_fields = ['sms_balance_units', 'updated_at']
        extra_kwargs = {
            'sms_default_sender_id': {'validators': [sender_id_validator]},
        }

    def validate(self, attrs):
        for field in self.SECRET_FIELDS:
            if field in attrs and attrs[field] in ('', SECRET_MASK):
                attrs.pop(field)
        return attrs

    def to_representation(self, instance):
        data = super().to_representation(instance)
        for field in self.SECRET_FIELDS:
            data[field] = mask(getattr(instance, field))
        return data


class SmsCreditsSerializer(serializers.Serializer):
    credits = serializers.IntegerField(min_value=1)


class PlatformUserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(
        choices=PLATFORM_ROLES,
        default=User.Role.PLATFORM_SUPPORT,
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name', 'phone_number', 'role', 'password', 'is_active', 'created_at']
        read_only_fields = ['id', 'is_active', 'created_at']
        extra_kwargs = {
            # checked case-insensitively in validate_email
            'email': {'validators': []},
        }

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('Email already in use.')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)
