from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Tenant, TenantMembership

User = get_user_model()


class TenantPrimaryKeyRelatedField(serializers.PrimaryKeyRelatedField):
    """
    PrimaryKeyRelatedField limited to rows of the request's school.

    An id from another school behaves like an id that does not exist.
    """

    def get_queryset(self):
        queryset = super().get_queryset()
        request = self.context.get('request')
        tenant = getattr(request, 'tenant', None) if request is not None else None
        if tenant is None:
            return queryset.none()
        return queryset.filter(tenant=tenant)


class TenantMembershipSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True)
    user_full_name = serializers.CharField(source='user.full_name', read_only=True)

    class Meta:
        model = TenantMembership
        fields = [
            'id', 'user', 'role', 'is_active',
            'user_email', 'user_full_name',
            'joined_at', 'updated_at',
        ]
        read_only_fields = ['id', 'user', 'joined_at', 'updated_at']


class TenantMembershipCreateSerializer(serializers.Serializer):
    """Adds an existing user to the school by email."""
    email = serializers.EmailField()
    role = serializers.ChoiceField(
        choices=TenantMembership.Role.choices,
        default=TenantMembership.Role.TEACHER,
    )

    def validate_email(self, value):
        user = User.objects.filter(email__iexact=value.strip()).first()
        if user is None:
            raise serializers.ValidationError('No user with this email.')
        self.context['user'] = user
        return user.email


class MyTenantSerializer(serializers.ModelSerializer):
    """A school in the user's school switcher."""
    role = serializers.SerializerMethodField()
    config = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = ['id', 'slug', 'name', 'status', 'role', 'config']

    def get_role(self, obj):
        return self.context.get('roles', {}).get(obj.pk)

    def get_config(self, obj):
        return obj.to_frontend_config()


class TenantUniqueFieldsMixin:
    """
    Validates fields that are unique per school (tenant is not a serializer field,
    so DRF does not build these validators itself).

        class StudentSerializer(TenantUniqueFieldsMixin, serializers.ModelSerializer):
            tenant_unique_fields = ('student_id',)
    """

    tenant_unique_fields = ()

    def validate(self, attrs):
        attrs = super().validate(attrs)
        request = self.context.get('request')
        tenant = getattr(request, 'tenant', None) if request is not None else None
        if tenant is None:
            return attrs

        model = self.Meta.model
        errors = {}
        for field in self.tenant_unique_fields:
            value = attrs.get(field)
            if not value:
                continue
            qs = model.objects.filter(tenant=tenant, **{f'{field}__iexact': value})
            if self.instance is not None:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                label = model._meta.get_field(field).verbose_name
                errors[field] = [f'A record with this {label} already exists in this school.']
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
