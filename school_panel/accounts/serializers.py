from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Adds the platform role to the JWT."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        # Role always comes from the database row
        token['role'] = user.role
        token['is_superuser'] = getattr(user, 'is_superuser', False)
        token['email'] = user.email

        return token


class UserProfileSerializer(serializers.ModelSerializer):
    """Current user profile with active school memberships."""

    memberships = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = [
            'id',
            'email',
            'full_name',
            'phone_number',
            'role',
            'is_platform_admin',
            'memberships',
            'date_joined',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['email', 'role', 'is_platform_admin', 'date_joined', 'created_at', 'updated_at']
        extra_kwargs = {
            'full_name': {'allow_blank': True, 'required': False},
            'phone_number': {'allow_blank': True, 'required': False},
        }

    def get_memberships(self, obj):
        memberships = (
            obj.tenant_memberships
            .filter(is_active=True)
            .select_related('tenant')
            .order_by('tenant__name')
        )
        return [
            {'tenant': m.tenant.to_frontend_config(), 'role': m.role}
            for m in memberships
        ]
